"""
Tests for the platform services: displays, screen capture and scroll injection.
"""

import pytest
from unittest.mock import MagicMock, Mock, patch
from PIL import Image

from scrollshot.actuator.platform import (
    IS_WINDOWS,
    IS_LINUX,
    IS_MACOS,
    ScreenInfo,
    get_screen,
    get_screen_info,
    overlay_to_global,
)
from scrollshot.actuator.screenshot import ScreenshotCapture
from scrollshot.actuator.scroll import ActionResult, ActionType, ScrollInjector
from scrollshot.state import Point


def _fake_mss(monitors):
    module = MagicMock()
    module.mss.return_value.__enter__.return_value.monitors = monitors
    return module


MONITORS = [
    {"left": 0, "top": 0, "width": 3000, "height": 1080},
    {"left": 0, "top": 0, "width": 1920, "height": 1080},
    {"left": 1920, "top": 0, "width": 1080, "height": 1080},
]


class TestPlatform:
    """Tests for platform utilities."""

    def test_platform_detection(self):
        assert sum([IS_WINDOWS, IS_LINUX, IS_MACOS]) <= 1

    def test_overlay_to_global(self):
        assert overlay_to_global(20, 150, Point(1920, 0)) == Point(1940, 150)

    def test_screen_origin(self):
        info = ScreenInfo(index=2, x=1920, y=0, width=1080, height=1080, scale_factor=1.0)
        assert info.origin == Point(1920, 0)

    def test_get_screen_info(self):
        with patch("scrollshot.actuator.platform.mss", _fake_mss(MONITORS), create=True), \
             patch("scrollshot.actuator.platform.HAS_MSS", True), \
             patch("scrollshot.actuator.platform.IS_MACOS", False):
            screens = get_screen_info()

        assert [s.index for s in screens] == [1, 2]
        assert screens[0].is_primary
        assert not screens[1].is_primary
        assert screens[1].x == 1920
        assert screens[1].scale_factor == 1.0

    def test_get_screen(self):
        with patch("scrollshot.actuator.platform.mss", _fake_mss(MONITORS), create=True), \
             patch("scrollshot.actuator.platform.HAS_MSS", True), \
             patch("scrollshot.actuator.platform.IS_MACOS", False):
            assert get_screen(2).width == 1080
            assert get_screen(5) is None

    def test_no_mss(self):
        with patch("scrollshot.actuator.platform.HAS_MSS", False):
            assert get_screen_info() == []


class TestScreenshotCapture:
    """Tests for ScreenshotCapture."""

    def test_dry_run_returns_blank_frame(self):
        capture = ScreenshotCapture(dry_run=True)
        image = capture.capture(1, None, (10, 10, 40, 30))
        assert image.size == (40, 30)

    def test_invalid_region(self):
        capture = ScreenshotCapture(dry_run=True)
        assert capture.capture(1, None, (0, 0, 0, 30)) is None

    def test_crops_display(self):
        display = Image.new("RGB", (100, 100), (0, 0, 0))
        display.putpixel((10, 20), (255, 0, 0))

        capture = ScreenshotCapture()
        capture._method = "mss"
        with patch.object(capture, "_capture_mss", return_value=display):
            image = capture.capture(1, None, (10, 20, 30, 40))

        assert image.size == (30, 40)
        assert image.getpixel((0, 0)) == (255, 0, 0)

    def test_region_outside_display(self):
        capture = ScreenshotCapture()
        capture._method = "mss"
        with patch.object(capture, "_capture_mss", return_value=Image.new("RGB", (100, 100))):
            assert capture.capture(1, None, (90, 0, 20, 20)) is None

    def test_capture_error_returns_none(self):
        capture = ScreenshotCapture()
        capture._method = "mss"
        with patch.object(capture, "_capture_mss", side_effect=OSError("no display")):
            assert capture.capture(1, None, (0, 0, 10, 10)) is None

    def test_exclusion_ignored_without_quartz(self):
        capture = ScreenshotCapture()
        capture._method = "mss"
        grab = Mock(return_value=Image.new("RGB", (50, 50)))
        with patch("scrollshot.actuator.screenshot.HAS_QUARTZ", False), \
             patch.object(capture, "_capture_mss", grab):
            image = capture.capture(1, 99, (0, 0, 10, 10))

        assert image.size == (10, 10)
        grab.assert_called_once_with(1)

    def test_no_backend(self):
        capture = ScreenshotCapture()
        capture._method = None
        with patch("scrollshot.actuator.screenshot.HAS_QUARTZ", False):
            assert capture.capture(1, None, (0, 0, 10, 10)) is None


class TestScrollInjector:
    """Tests for ScrollInjector."""

    def test_dry_run(self):
        injector = ScrollInjector(dry_run=True)
        result = injector.scroll(Point(100, 200), -400)
        assert isinstance(result, ActionResult)
        assert result.success
        assert result.action_type == ActionType.SCROLL
        assert "-400" in result.message

    def test_stop_check_aborts(self):
        injector = ScrollInjector(dry_run=True, stop_check=lambda: True)
        result = injector.scroll(Point(0, 0), -100)
        assert not result.success
        assert "Stop requested" in result.error

    @pytest.mark.parametrize("delta,clicks", [(-200, -5), (200, 5), (-10, -1), (0, 0), (-59, -1), (-61, -2)])
    def test_clicks_for(self, delta, clicks):
        assert ScrollInjector(pixels_per_click=40, dry_run=True).clicks_for(delta) == clicks

    def test_invalid_click_size(self):
        with pytest.raises(ValueError):
            ScrollInjector(pixels_per_click=0)

    def test_no_backend(self):
        with patch("scrollshot.actuator.scroll.HAS_PYAUTOGUI", False), \
             patch("scrollshot.actuator.scroll.HAS_QUARTZ", False):
            injector = ScrollInjector()
            result = injector.scroll(Point(0, 0), -100)

        assert injector.method is None
        assert not result.success

    def test_pyautogui_clicks(self):
        fake = Mock()
        with patch("scrollshot.actuator.scroll.HAS_PYAUTOGUI", True), \
             patch("scrollshot.actuator.scroll.IS_MACOS", False), \
             patch("scrollshot.actuator.scroll.pyautogui", fake, create=True):
            injector = ScrollInjector(pixels_per_click=40)
            result = injector.scroll(Point(130.7, 220.2), -200)

        assert injector.method == "pyautogui"
        assert result.success
        fake.scroll.assert_called_once_with(-5, x=130, y=220)

    def test_backend_error(self):
        fake = Mock()
        fake.scroll.side_effect = RuntimeError("no X server")
        with patch("scrollshot.actuator.scroll.HAS_PYAUTOGUI", True), \
             patch("scrollshot.actuator.scroll.IS_MACOS", False), \
             patch("scrollshot.actuator.scroll.pyautogui", fake, create=True):
            result = ScrollInjector().scroll(Point(0, 0), -100)

        assert not result.success
        assert "no X server" in result.error
