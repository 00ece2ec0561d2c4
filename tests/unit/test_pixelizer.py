"""
Unit tests for bitmap to RGBA conversion.
"""

import pytest
from PIL import Image

from scrollshot.stitching.pixelizer import (
    BYTES_PER_PIXEL,
    PixelizeError,
    from_rgba,
    to_rgba,
)


class TestToRgba:
    """Tests for to_rgba()."""

    def test_rgb_image_is_opaque(self):
        image = Image.new("RGB", (3, 2), (10, 20, 30))
        data = to_rgba(image)
        assert len(data) == 3 * 2 * BYTES_PER_PIXEL
        assert data[:4] == bytes([10, 20, 30, 255])

    def test_row_order_top_first(self):
        image = Image.new("RGB", (1, 2), (0, 0, 0))
        image.putpixel((0, 1), (1, 2, 3))
        data = to_rgba(image)
        assert data[4:8] == bytes([1, 2, 3, 255])

    def test_premultiplies_alpha(self):
        image = Image.new("RGBA", (1, 1), (200, 100, 50, 128))
        assert to_rgba(image) == bytes([100, 50, 25, 128])

    def test_opaque_rgba_unchanged(self):
        image = Image.new("RGBA", (2, 2), (200, 100, 50, 255))
        assert to_rgba(image) == bytes([200, 100, 50, 255]) * 4

    def test_zero_size(self):
        with pytest.raises(PixelizeError):
            to_rgba(Image.new("RGB", (0, 5)))

    def test_not_an_image(self):
        with pytest.raises(PixelizeError):
            to_rgba(b"not an image")


class TestFromRgba:
    """Tests for from_rgba()."""

    def test_wraps_buffer(self):
        data = bytes([1, 2, 3, 255]) * 6
        image = from_rgba(data, 3, 2)
        assert image.mode == "RGBa"
        assert image.size == (3, 2)
        assert image.getpixel((2, 1)) == (1, 2, 3, 255)

    def test_translucent_roundtrip(self):
        source = Image.new("RGBA", (2, 1), (200, 100, 50, 128))
        restored = from_rgba(to_rgba(source), 2, 1).convert("RGBA")
        for got, want in zip(restored.getpixel((1, 0)), (200, 100, 50, 128)):
            assert abs(got - want) <= 2

    def test_wrong_length(self):
        with pytest.raises(PixelizeError):
            from_rgba(b"\x00" * 7, 1, 2)

    def test_zero_size(self):
        with pytest.raises(PixelizeError):
            from_rgba(b"", 0, 0)
