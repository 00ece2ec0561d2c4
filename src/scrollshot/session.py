"""
Scrolling capture session.

A tick-driven state machine. The host calls :meth:`ScrollCaptureSession.tick`
from whatever timer it has, waiting ``settle_delay`` between calls so the
scrolled content can repaint. Each tick does one thing and returns:

    capture -> scroll -> capture -> scroll -> ...

Capture ticks grab the selection, convert it to RGBA straight away and
compare it with the previous frame to decide whether scrolling should go
on. Scroll ticks inject a downward scroll of ``scroll_fraction`` of the
selection height (2/3 by default, leaving at least a third of overlap).
"""

from typing import Any, Callable, List, Optional, Protocol, Tuple

from PIL import Image

from scrollshot.actuator.platform import overlay_to_global
from scrollshot.config import CaptureConfig
from scrollshot.logging import get_logger
from scrollshot.state import CapturedFrame, CapturePhase, Point, Rect, StopReason
from scrollshot.stitching.overlap import find_overlap
from scrollshot.stitching.pixelizer import PixelizeError

logger = get_logger(__name__)

DEFAULT_MAX_STEPS = 50
DEFAULT_SETTLE_DELAY = 0.5
DEFAULT_SCROLL_FRACTION = 2.0 / 3.0


class ScreenCaptureService(Protocol):
    """Captures a pixel region of a display."""

    def capture(
        self,
        display_id: int,
        exclude_window_id: Optional[int],
        region: Tuple[int, int, int, int],
    ) -> Optional[Image.Image]:
        ...


class ScrollService(Protocol):
    """Posts a synthetic scroll at a screen point (negative = down the page)."""

    def scroll(self, screen_point: Point, delta_pixels: int) -> Any:
        ...


StatusCallback = Callable[..., None]


class ScrollCaptureSession:
    """
    State of one scroll-and-capture run.

    The frame list is append-only and owned by the session until it
    finishes; after that, :attr:`frames` is handed to the stitcher.
    """

    def __init__(
        self,
        selection: Rect,
        scale_factor: float,
        screen_origin: Point,
        display_id: int,
        *,
        capture_service: ScreenCaptureService,
        scroll_service: ScrollService,
        max_steps: int = DEFAULT_MAX_STEPS,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        scroll_fraction: float = DEFAULT_SCROLL_FRACTION,
        on_status: Optional[StatusCallback] = None,
    ):
        """
        Initialize a capture session.

        Args:
            selection: Region to capture, in logical display coordinates
            scale_factor: Logical to pixel multiplier (2.0 on Retina)
            screen_origin: Top-left of the display in scroll-service coordinates
            display_id: Display to capture, fixed for the session
            capture_service: Screen capture collaborator
            scroll_service: Scroll injection collaborator
            max_steps: Hard cap on scroll steps
            settle_delay: Seconds the host should wait between ticks
            scroll_fraction: Fraction of the selection height scrolled per step
            on_status: Optional ``callback(event, **details)`` for host UI updates
        """
        if selection.is_empty:
            raise ValueError(f"Selection must be non-empty: {selection}")
        if scale_factor <= 0:
            raise ValueError(f"scale_factor must be positive: {scale_factor}")

        self.selection = selection
        self.scale_factor = scale_factor
        self.screen_origin = screen_origin
        self.display_id = display_id
        self.max_steps = max_steps
        self.settle_delay = settle_delay
        self.scroll_fraction = scroll_fraction

        self._capture_service = capture_service
        self._scroll_service = scroll_service
        self._on_status = on_status

        self._frames: List[CapturedFrame] = []
        self._phase = CapturePhase.CAPTURE
        self._step_count = 0
        self._retries = 0
        self._exclusion_window_id: Optional[int] = None
        self._stop_reason: Optional[StopReason] = None

        logger.info(
            "Capture session created",
            selection=(selection.x, selection.y, selection.width, selection.height),
            scale_factor=scale_factor,
            display_id=display_id,
            max_steps=max_steps,
        )

    @classmethod
    def from_config(
        cls,
        selection: Rect,
        scale_factor: float,
        screen_origin: Point,
        config: CaptureConfig,
        *,
        capture_service: ScreenCaptureService,
        scroll_service: ScrollService,
        display_id: Optional[int] = None,
        on_status: Optional[StatusCallback] = None,
    ) -> "ScrollCaptureSession":
        """Create a session using capture settings from config."""
        return cls(
            selection,
            scale_factor,
            screen_origin,
            config.display if display_id is None else display_id,
            capture_service=capture_service,
            scroll_service=scroll_service,
            max_steps=config.max_steps,
            settle_delay=config.settle_delay,
            scroll_fraction=config.scroll_fraction,
            on_status=on_status,
        )

    def set_exclusion_window(self, window_id: int) -> None:
        """Omit an overlay window (e.g. the selection border) from captures."""
        self._exclusion_window_id = window_id

    @property
    def exclusion_window_id(self) -> Optional[int]:
        return self._exclusion_window_id

    @property
    def frames(self) -> Tuple[CapturedFrame, ...]:
        """Frames stored so far, in capture order."""
        return tuple(self._frames)

    @property
    def phase(self) -> CapturePhase:
        return self._phase

    @property
    def step_count(self) -> int:
        return self._step_count

    @property
    def retries(self) -> int:
        return self._retries

    @property
    def finished(self) -> bool:
        return self._stop_reason is not None

    @property
    def stop_reason(self) -> Optional[StopReason]:
        return self._stop_reason

    @property
    def frame_size(self) -> Optional[Tuple[int, int]]:
        """(width, height) fixed by the first stored frame."""
        if not self._frames:
            return None
        return (self._frames[0].width, self._frames[0].height)

    def tick(self) -> bool:
        """
        Advance the session by one phase.

        Returns:
            True to keep ticking, False once the session has terminated
        """
        if self.finished:
            return False

        if self._phase == CapturePhase.SCROLL:
            return self._scroll_step()
        return self._capture_step()

    def cancel(self) -> None:
        """Stop on external request, keeping every frame stored so far."""
        if not self.finished:
            self._stop(StopReason.CANCELLED)

    def _scroll_step(self) -> bool:
        self._step_count += 1
        if self._step_count > self.max_steps:
            return self._stop(StopReason.MAX_STEPS)

        center = self.selection.center
        screen_point = overlay_to_global(center.x, center.y, self.screen_origin)
        delta = -int(self.selection.height * self.scroll_fraction)

        result = self._scroll_service.scroll(screen_point, delta)
        if getattr(result, "success", True) is False:
            logger.warning(
                "Scroll injection failed",
                step=self._step_count,
                error=getattr(result, "error", None),
            )

        logger.debug("Scrolled", step=self._step_count, delta=delta)
        self._phase = CapturePhase.CAPTURE
        return True

    def _capture_step(self) -> bool:
        image = self._capture_selection()
        if image is None:
            return self._retry("capture_failed")

        try:
            frame = CapturedFrame.from_image(image, index=len(self._frames))
        except PixelizeError as e:
            return self._retry("pixelize_failed", error=str(e))

        if self._frames:
            width, height = self.frame_size
            if frame.width != width or frame.height != height:
                return self._retry(
                    "size_mismatch",
                    got=(frame.width, frame.height),
                    expected=(width, height),
                )

            previous = self._frames[-1]
            overlap = find_overlap(previous.rgba, frame.rgba, width, height)

            if overlap >= height * 19 // 20:
                # Content did not move; the duplicate is not stored
                return self._stop(StopReason.CONTENT_STOPPED, overlap=overlap, height=height)

            if overlap > height * 4 // 5:
                self._store(frame, overlap=overlap)
                return self._stop(StopReason.END_OF_CONTENT, overlap=overlap, height=height)

            self._store(frame, overlap=overlap)
        else:
            self._store(frame)

        self._phase = CapturePhase.SCROLL
        return True

    def _capture_selection(self) -> Optional[Image.Image]:
        region = self.selection.scaled(self.scale_factor)
        if region[2] == 0 or region[3] == 0:
            return None
        return self._capture_service.capture(
            self.display_id,
            self._exclusion_window_id,
            region,
        )

    def _store(self, frame: CapturedFrame, **details: Any) -> None:
        self._frames.append(frame)
        logger.info("Frame captured", frame=len(self._frames), **details)
        self._emit("frame_captured", frame=len(self._frames), **details)

    def _retry(self, cause: str, **details: Any) -> bool:
        self._retries += 1
        logger.warning("Capture attempt skipped", cause=cause, **details)
        self._emit("capture_retry", cause=cause, **details)
        self._phase = CapturePhase.SCROLL
        return True

    def _stop(self, reason: StopReason, **details: Any) -> bool:
        self._stop_reason = reason
        logger.info(
            "Capture session stopped",
            reason=reason.value,
            frames=len(self._frames),
            steps=self._step_count,
            **details,
        )
        self._emit("stopped", reason=reason, frames=len(self._frames))
        return False

    def _emit(self, event: str, **details: Any) -> None:
        if self._on_status is not None:
            self._on_status(event, **details)
