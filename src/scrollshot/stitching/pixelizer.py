"""
Bitmap to raw RGBA conversion.

Every buffer produced here is top-down, row-major, 4 bytes per pixel in
R, G, B, A order with premultiplied alpha.
"""

import numpy as np
from PIL import Image

from scrollshot.logging import get_logger

logger = get_logger(__name__)

BYTES_PER_PIXEL = 4


class PixelizeError(Exception):
    """Raised when a bitmap cannot be rendered into an RGBA buffer."""


def to_rgba(bitmap: Image.Image) -> bytes:
    """
    Render ``bitmap`` into a premultiplied RGBA byte buffer.

    Args:
        bitmap: Source image with positive width and height

    Returns:
        Exactly ``width * height * 4`` bytes, top row first

    Raises:
        PixelizeError: On zero dimensions or if the image cannot be decoded
    """
    if not isinstance(bitmap, Image.Image):
        raise PixelizeError(f"Unsupported bitmap type: {type(bitmap).__name__}")

    width, height = bitmap.size
    if width <= 0 or height <= 0:
        raise PixelizeError(f"Invalid bitmap size: {width}x{height}")

    try:
        pixels = np.asarray(bitmap.convert("RGBA"), dtype=np.uint8)
    except (OSError, ValueError, MemoryError) as e:
        raise PixelizeError(f"Bitmap conversion failed: {e}") from e

    alpha = pixels[..., 3]
    if not np.all(alpha == 255):
        pixels = _premultiply(pixels)

    data = pixels.tobytes()
    expected = width * height * BYTES_PER_PIXEL
    if len(data) != expected:
        raise PixelizeError(f"Unexpected buffer size {len(data)} for {width}x{height}")
    return data


def _premultiply(pixels: np.ndarray) -> np.ndarray:
    """Scale colour channels by alpha, rounding to nearest."""
    out = pixels.astype(np.uint16)
    alpha = out[..., 3:4]
    out[..., :3] = (out[..., :3] * alpha + 127) // 255
    return out.astype(np.uint8)


def from_rgba(data: bytes, width: int, height: int) -> Image.Image:
    """
    Wrap a premultiplied RGBA buffer back into an image handle.

    The image has PIL mode ``RGBa`` (premultiplied); convert it to ``RGBA``
    before writing it to a file format.
    """
    if width <= 0 or height <= 0:
        raise PixelizeError(f"Invalid bitmap size: {width}x{height}")
    if len(data) != width * height * BYTES_PER_PIXEL:
        raise PixelizeError(
            f"Buffer of {len(data)} bytes does not match {width}x{height}"
        )
    return Image.frombytes("RGBa", (width, height), bytes(data))
