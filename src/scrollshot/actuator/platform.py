"""
Platform detection, display enumeration and coordinate helpers.
"""

import sys
from typing import List, Optional
from dataclasses import dataclass

from scrollshot.logging import get_logger
from scrollshot.state import Point

logger = get_logger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"
IS_LINUX = sys.platform.startswith("linux")
IS_MACOS = sys.platform == "darwin"

try:
    import mss
    HAS_MSS = True
except ImportError:
    HAS_MSS = False

try:
    import Quartz
    HAS_QUARTZ = True
except ImportError:
    HAS_QUARTZ = False


@dataclass
class ScreenInfo:
    """Information about a display."""

    index: int  # mss monitor index, 1-based
    x: int
    y: int
    width: int
    height: int
    scale_factor: float  # pixels per logical point (2.0 on Retina)
    is_primary: bool = False
    native_id: Optional[int] = None  # CGDirectDisplayID on macOS

    @property
    def origin(self) -> Point:
        return Point(float(self.x), float(self.y))


def get_screen_info() -> List[ScreenInfo]:
    """
    Get information about all displays.

    Returns one ScreenInfo per mss monitor (index 1 and up).
    """
    screens: List[ScreenInfo] = []

    if not HAS_MSS:
        logger.warning("mss not available, cannot enumerate displays")
        return screens

    try:
        with mss.mss() as sct:
            monitors = sct.monitors[1:]
    except Exception as e:
        logger.error("Error enumerating displays", error=str(e))
        return screens

    quartz_displays = _quartz_displays() if IS_MACOS and HAS_QUARTZ else {}

    for i, monitor in enumerate(monitors, start=1):
        left, top = monitor["left"], monitor["top"]
        native_id, scale = quartz_displays.get((left, top), (None, 1.0))
        screens.append(ScreenInfo(
            index=i,
            x=left,
            y=top,
            width=monitor["width"],
            height=monitor["height"],
            scale_factor=scale,
            is_primary=(left == 0 and top == 0),
            native_id=native_id,
        ))

    return screens


def _quartz_displays() -> dict:
    """Map display origin -> (CGDirectDisplayID, scale factor)."""
    displays = {}
    try:
        err, ids, count = Quartz.CGGetActiveDisplayList(32, None, None)
        if err:
            return displays
        for display_id in ids[:count]:
            bounds = Quartz.CGDisplayBounds(display_id)
            mode = Quartz.CGDisplayCopyDisplayMode(display_id)
            logical = Quartz.CGDisplayModeGetWidth(mode)
            physical = Quartz.CGDisplayModeGetPixelWidth(mode)
            scale = physical / logical if logical else 1.0
            key = (int(bounds.origin.x), int(bounds.origin.y))
            displays[key] = (int(display_id), scale)
    except Exception as e:
        logger.debug("Quartz display query failed", error=str(e))
    return displays


def get_screen(index: int) -> Optional[ScreenInfo]:
    """Get the display with the given mss index."""
    for screen in get_screen_info():
        if screen.index == index:
            return screen
    return None


def overlay_to_global(x: float, y: float, screen_origin: Point) -> Point:
    """
    Convert a point relative to a display into global screen coordinates.

    Both spaces are top-left based, so this is an offset by the display origin.
    """
    return Point(screen_origin.x + x, screen_origin.y + y)

