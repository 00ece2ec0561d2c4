"""
Actuator module - the platform services a capture session drives.

- platform: platform detection, display enumeration, coordinates
- screenshot: display capture cropped to a pixel region (mss, Quartz)
- scroll: synthetic scroll injection (Quartz, pyautogui)
"""

from scrollshot.actuator.platform import (
    IS_WINDOWS,
    IS_LINUX,
    IS_MACOS,
    ScreenInfo,
    get_screen_info,
    get_screen,
    overlay_to_global,
)
from scrollshot.actuator.screenshot import ScreenshotCapture
from scrollshot.actuator.scroll import (
    ScrollInjector,
    ActionResult,
    ActionType,
)

__all__ = [
    # Platform
    "IS_WINDOWS",
    "IS_LINUX",
    "IS_MACOS",
    "ScreenInfo",
    "get_screen_info",
    "get_screen",
    "overlay_to_global",
    # Screenshot
    "ScreenshotCapture",
    # Scroll
    "ScrollInjector",
    "ActionResult",
    "ActionType",
]
