"""
Pytest configuration and fixtures.
"""

import pytest
import tempfile
from pathlib import Path
from typing import List, Optional

import numpy as np
from PIL import Image

from scrollshot.state import CapturedFrame


@pytest.fixture(scope="session")
def temp_dir():
    """Session-scoped temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_file(temp_dir):
    """Create a temporary file."""
    def _create(name: str, content: str = "") -> Path:
        path = temp_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path
    return _create


@pytest.fixture
def make_document():
    """Create an opaque RGBA document of random rows: (rows, width, 4) uint8."""
    def _create(rows: int, width: int = 32, seed: int = 0) -> np.ndarray:
        rng = np.random.default_rng(seed)
        doc = rng.integers(0, 256, size=(rows, width, 4), dtype=np.uint8)
        doc[..., 3] = 255
        return doc
    return _create


@pytest.fixture
def to_image():
    """Wrap a (rows, width, 4) array in a PIL image."""
    def _convert(pixels: np.ndarray) -> Image.Image:
        return Image.fromarray(np.ascontiguousarray(pixels))
    return _convert


@pytest.fixture
def to_frame(to_image):
    """Build a CapturedFrame from a (rows, width, 4) array."""
    def _convert(pixels: np.ndarray, index: int = 0) -> CapturedFrame:
        return CapturedFrame.from_image(to_image(pixels), index=index)
    return _convert


class FakeCapture:
    """Capture service returning queued images; repeats the last one when exhausted."""

    def __init__(self, images: List[Optional[Image.Image]]):
        self.images = list(images)
        self.calls = []

    def capture(self, display_id, exclude_window_id, region):
        self.calls.append((display_id, exclude_window_id, region))
        index = min(len(self.calls) - 1, len(self.images) - 1)
        return self.images[index]


class FakeScroll:
    """Scroll service that records every request."""

    def __init__(self):
        self.calls = []

    def scroll(self, screen_point, delta_pixels):
        self.calls.append((screen_point, delta_pixels))


@pytest.fixture
def fake_capture():
    return FakeCapture


@pytest.fixture
def fake_scroll():
    return FakeScroll()
