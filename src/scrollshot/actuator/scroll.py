"""
Scroll injection service.

Posts synthetic scroll-wheel input at a screen point. On macOS a
pixel-unit Quartz event is used so the content moves by exactly the
requested distance; elsewhere pyautogui scrolls by wheel clicks.
"""

import time
from typing import Optional, Callable
from dataclasses import dataclass
from enum import Enum

from scrollshot.logging import get_logger
from scrollshot.actuator.platform import IS_MACOS, HAS_QUARTZ
from scrollshot.state import Point

logger = get_logger(__name__)

try:
    import pyautogui
    pyautogui.FAILSAFE = True  # Move to corner to abort
    pyautogui.PAUSE = 0.0
    HAS_PYAUTOGUI = True
except Exception:
    # ImportError, or no X display on headless Linux
    HAS_PYAUTOGUI = False
    logger.warning("pyautogui not available")

if HAS_QUARTZ:
    import Quartz


class ActionType(str, Enum):
    """Types of input actions."""

    SCROLL = "scroll"


@dataclass
class ActionResult:
    """Result of an action execution."""

    success: bool
    action_type: ActionType
    message: str = ""
    duration_ms: int = 0
    error: Optional[str] = None


class ScrollInjector:
    """
    Injects scroll input with stop-switch checks and dry-run support.
    """

    def __init__(
        self,
        pixels_per_click: int = 40,
        dry_run: bool = False,
        stop_check: Optional[Callable[[], bool]] = None,
        prefer_pixel_events: bool = True,
    ):
        """
        Initialize ScrollInjector.

        Args:
            pixels_per_click: Distance of one wheel click when only clicks are available
            dry_run: If True, only log scrolls without posting them
            stop_check: Function that returns True if the stop hotkey fired
            prefer_pixel_events: Use Quartz pixel scrolling when available
        """
        if pixels_per_click <= 0:
            raise ValueError("pixels_per_click must be positive")

        self.pixels_per_click = pixels_per_click
        self.dry_run = dry_run
        self._stop_check = stop_check

        if prefer_pixel_events and IS_MACOS and HAS_QUARTZ:
            self._method = "quartz"
        elif HAS_PYAUTOGUI:
            self._method = "pyautogui"
        else:
            self._method = None

        logger.info(
            "ScrollInjector initialized",
            method=self._method,
            dry_run=dry_run,
            pixels_per_click=pixels_per_click,
        )

    @property
    def method(self) -> Optional[str]:
        return self._method

    def _stopped(self) -> bool:
        if self._stop_check is not None:
            return self._stop_check()
        return False

    def clicks_for(self, delta_pixels: int) -> int:
        """Convert a pixel delta to wheel clicks, keeping sign and at least one click."""
        if delta_pixels == 0:
            return 0
        clicks = max(1, round(abs(delta_pixels) / self.pixels_per_click))
        return clicks if delta_pixels > 0 else -clicks

    def scroll(self, screen_point: Point, delta_pixels: int) -> ActionResult:
        """
        Scroll at ``screen_point``.

        Args:
            screen_point: Global screen coordinates of the scroll target
            delta_pixels: Negative scrolls down the page (content moves up)
        """
        if self._stopped():
            return ActionResult(
                success=False,
                action_type=ActionType.SCROLL,
                error="Stop requested - scroll aborted",
            )

        x, y = int(screen_point.x), int(screen_point.y)

        if self.dry_run:
            logger.info("DRY-RUN: scroll", x=x, y=y, delta=delta_pixels)
            return ActionResult(
                success=True,
                action_type=ActionType.SCROLL,
                message=f"Would scroll {delta_pixels}px at ({x}, {y})",
            )

        if self._method is None:
            return ActionResult(
                success=False,
                action_type=ActionType.SCROLL,
                error="No scroll backend available",
            )

        start = time.time()
        try:
            if self._method == "quartz":
                self._post_quartz(screen_point, delta_pixels)
                message = f"Scrolled {delta_pixels}px"
            else:
                clicks = self.clicks_for(delta_pixels)
                pyautogui.scroll(clicks, x=x, y=y)
                message = f"Scrolled {clicks} clicks"

            return ActionResult(
                success=True,
                action_type=ActionType.SCROLL,
                message=message,
                duration_ms=int((time.time() - start) * 1000),
            )
        except Exception as e:
            logger.error("Scroll failed", x=x, y=y, delta=delta_pixels, error=str(e))
            return ActionResult(
                success=False,
                action_type=ActionType.SCROLL,
                error=f"Scroll failed: {str(e)}",
            )

    def _post_quartz(self, screen_point: Point, delta_pixels: int) -> None:
        event = Quartz.CGEventCreateScrollWheelEvent(
            None,
            Quartz.kCGScrollEventUnitPixel,
            1,
            delta_pixels,
        )
        if event is None:
            raise RuntimeError("Failed to create scroll event")
        Quartz.CGEventSetLocation(event, Quartz.CGPointMake(screen_point.x, screen_point.y))
        Quartz.CGEventPost(Quartz.kCGHIDEventTap, event)
