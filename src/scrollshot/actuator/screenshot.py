"""
Screen capture service.

Grabs a whole display with mss and crops it to the selection in pixel
coordinates. On macOS, when an overlay window must be left out of the
capture, Quartz ``CGWindowListCreateImage`` is used to composite only the
windows below it.
"""

import time
from typing import Optional, Tuple

from PIL import Image

from scrollshot.logging import get_logger
from scrollshot.actuator.platform import IS_MACOS, HAS_QUARTZ, get_screen

logger = get_logger(__name__)

try:
    import mss
    HAS_MSS = True
except ImportError:
    HAS_MSS = False
    logger.warning("mss not available, screen capture disabled")

if HAS_QUARTZ:
    import Quartz

PixelRegion = Tuple[int, int, int, int]


class ScreenshotCapture:
    """
    Captures cropped display regions.

    Every failure is reported as ``None`` so the capture session can retry
    on its next cycle.
    """

    def __init__(self, dry_run: bool = False):
        """
        Initialize screenshot capture.

        Args:
            dry_run: If True, return blank frames instead of grabbing the screen
        """
        self.dry_run = dry_run

        if HAS_MSS:
            self._method = "mss"
        else:
            self._method = None

        logger.info(
            "ScreenshotCapture initialized",
            method=self._method,
            quartz=IS_MACOS and HAS_QUARTZ,
            dry_run=dry_run,
        )

    def capture(
        self,
        display_id: int,
        exclude_window_id: Optional[int],
        region: PixelRegion,
    ) -> Optional[Image.Image]:
        """
        Capture ``region`` (x, y, width, height in display pixels).

        Args:
            display_id: mss monitor index of the display
            exclude_window_id: Window to leave out of the capture, if any
            region: Crop rectangle relative to the display's top-left corner

        Returns:
            Cropped image, or None on failure
        """
        x, y, width, height = region
        if width <= 0 or height <= 0:
            logger.warning("Invalid capture region", region=region)
            return None

        if self.dry_run:
            logger.info("DRY-RUN: capture", display=display_id, region=region)
            return Image.new("RGBA", (width, height), (128, 128, 128, 255))

        start = time.time()
        try:
            if exclude_window_id is not None and IS_MACOS and HAS_QUARTZ:
                full = self._capture_quartz(display_id, exclude_window_id)
            elif self._method == "mss":
                full = self._capture_mss(display_id)
            else:
                logger.error("No screenshot library available")
                return None
        except Exception as e:
            logger.error("Screen capture failed", display=display_id, error=str(e))
            return None

        if full is None:
            return None

        if x < 0 or y < 0 or x + width > full.width or y + height > full.height:
            logger.warning(
                "Capture region outside display",
                region=region,
                display_size=full.size,
            )
            return None

        cropped = full.crop((x, y, x + width, y + height))
        logger.debug(
            "Display captured",
            display=display_id,
            region=region,
            duration_ms=int((time.time() - start) * 1000),
        )
        return cropped

    def _capture_mss(self, display_id: int) -> Optional[Image.Image]:
        """Grab a full monitor using mss."""
        with mss.mss() as sct:
            # mss monitors: 0 = all monitors, 1+ = individual
            if display_id < 1 or display_id >= len(sct.monitors):
                logger.warning("Unknown display", display=display_id, available=len(sct.monitors) - 1)
                return None
            shot = sct.grab(sct.monitors[display_id])
            return Image.frombytes("RGB", shot.size, shot.bgra, "raw", "BGRX")

    def _capture_quartz(self, display_id: int, exclude_window_id: int) -> Optional[Image.Image]:
        """Composite every on-screen window below ``exclude_window_id``."""
        screen = get_screen(display_id)
        if screen is None or screen.native_id is None:
            logger.warning("Display not known to Quartz, using mss", display=display_id)
            return self._capture_mss(display_id)

        bounds = Quartz.CGDisplayBounds(screen.native_id)
        cg_image = Quartz.CGWindowListCreateImage(
            bounds,
            Quartz.kCGWindowListOptionOnScreenBelowWindow,
            exclude_window_id,
            Quartz.kCGWindowImageDefault,
        )
        if cg_image is None:
            return None

        width = Quartz.CGImageGetWidth(cg_image)
        height = Quartz.CGImageGetHeight(cg_image)
        bytes_per_row = Quartz.CGImageGetBytesPerRow(cg_image)
        provider = Quartz.CGImageGetDataProvider(cg_image)
        data = Quartz.CGDataProviderCopyData(provider)

        return Image.frombytes("RGBA", (width, height), bytes(data), "raw", "BGRA", bytes_per_row)
