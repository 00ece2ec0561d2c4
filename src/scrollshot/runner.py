"""
Host-side driver for a capture session.

Owns one :class:`ScrollCaptureSession`, calls ``tick()`` with the
session's settle delay between calls, and when the session terminates
(or the stop hotkey fires) stitches the gathered frames exactly once and
hands the image to a sink.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import List, Optional

from PIL import Image

from scrollshot.logging import capture_context, get_logger
from scrollshot.safety.stopswitch import (
    StopRequested,
    StopSwitch,
    async_wait_with_stop,
    wait_with_stop,
)
from scrollshot.session import ScrollCaptureSession
from scrollshot.sinks import StitchSink
from scrollshot.state import StopReason
from scrollshot.stitching.stitcher import stitch_with_report

logger = get_logger(__name__)


@dataclass
class CaptureResult:
    """Outcome of a complete capture run."""

    image: Optional[Image.Image]
    frames: int
    steps: int
    stop_reason: Optional[StopReason]
    overlaps: List[int] = field(default_factory=list)
    unmatched_pairs: List[int] = field(default_factory=list)
    duration_ms: int = 0
    run_id: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.image is not None

    @property
    def width(self) -> int:
        return self.image.width if self.image is not None else 0

    @property
    def height(self) -> int:
        return self.image.height if self.image is not None else 0


class CaptureRunner:
    """Drives a session to completion on the calling thread."""

    def __init__(
        self,
        session: ScrollCaptureSession,
        sink: Optional[StitchSink] = None,
        stop_switch: Optional[StopSwitch] = None,
    ):
        self.session = session
        self.sink = sink
        self.stop_switch = stop_switch
        self._result: Optional[CaptureResult] = None
        self._started_at: Optional[float] = None
        self._run_id: Optional[str] = None

    @property
    def result(self) -> Optional[CaptureResult]:
        return self._result

    def run(self) -> CaptureResult:
        """Tick until the session stops, then stitch."""
        with capture_context(display=self.session.display_id) as run_id:
            self._start(run_id)
            try:
                self._check_stop()
                while self.session.tick():
                    self._wait(self.session.settle_delay)
            except StopRequested as e:
                logger.info("Capture interrupted", reason=str(e))
                self.session.cancel()
            return self.finish()

    async def run_async(self) -> CaptureResult:
        """Same as :meth:`run`, sleeping with asyncio between ticks."""
        with capture_context(display=self.session.display_id) as run_id:
            self._start(run_id)
            try:
                self._check_stop()
                while self.session.tick():
                    await self._wait_async(self.session.settle_delay)
            except StopRequested as e:
                logger.info("Capture interrupted", reason=str(e))
                self.session.cancel()
            return self.finish()

    def finish(self) -> CaptureResult:
        """
        Stitch the session's frames and deliver the image.

        Safe to call more than once; stitching only happens the first time.
        """
        if self._result is not None:
            return self._result

        self.session.cancel()
        frames = self.session.frames
        report = stitch_with_report(frames)

        started = self._started_at if self._started_at is not None else time.time()
        self._result = CaptureResult(
            image=report.image,
            frames=len(frames),
            steps=self.session.step_count,
            stop_reason=self.session.stop_reason,
            overlaps=report.overlaps,
            unmatched_pairs=report.unmatched_pairs,
            duration_ms=int((time.time() - started) * 1000),
            run_id=self._run_id,
        )

        if report.image is None:
            logger.warning("Nothing captured", frames=len(frames))
        elif self.sink is not None:
            self.sink.open_image(report.image, report.width, report.height)

        return self._result

    def _start(self, run_id: str) -> None:
        self._started_at = time.time()
        self._run_id = run_id
        logger.info("Capture started", max_steps=self.session.max_steps)

    def _check_stop(self) -> None:
        if self.stop_switch is not None:
            self.stop_switch.check()

    def _wait(self, delay: float) -> None:
        if self.stop_switch is not None:
            wait_with_stop(self.stop_switch, delay)
        elif delay > 0:
            time.sleep(delay)

    async def _wait_async(self, delay: float) -> None:
        if self.stop_switch is not None:
            await async_wait_with_stop(self.stop_switch, delay)
        elif delay > 0:
            await asyncio.sleep(delay)
