"""
Capture data model.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

import numpy as np
from PIL import Image

from scrollshot.stitching.pixelizer import to_rgba


class CapturePhase(str, Enum):
    """Phase of the scroll/capture tick cycle."""

    CAPTURE = "capture"
    SCROLL = "scroll"


class StopReason(str, Enum):
    """Why a capture session terminated."""

    CONTENT_STOPPED = "content_stopped"  # new frame duplicated the previous one
    END_OF_CONTENT = "end_of_content"
    MAX_STEPS = "max_steps"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Point:
    """Point in screen coordinates."""

    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle, origin top-left."""

    x: float
    y: float
    width: float
    height: float

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2.0, self.y + self.height / 2.0)

    def scaled(self, factor: float) -> Tuple[int, int, int, int]:
        """Return (x, y, width, height) in pixels, truncating each component."""
        return (
            int(self.x * factor),
            int(self.y * factor),
            int(self.width * factor),
            int(self.height * factor),
        )

    @classmethod
    def parse(cls, text: str) -> "Rect":
        """Parse an ``"x,y,width,height"`` string."""
        parts = [p.strip() for p in text.split(",")]
        if len(parts) != 4:
            raise ValueError(f"Expected x,y,width,height but got: {text!r}")
        x, y, width, height = (float(p) for p in parts)
        rect = cls(x, y, width, height)
        if rect.is_empty:
            raise ValueError(f"Region must have positive size: {text!r}")
        return rect


@dataclass(frozen=True)
class CapturedFrame:
    """
    One captured, cropped image plus its RGBA bytes.

    Both representations are taken at the same instant; the byte buffer is
    the one used for overlap detection and stitching and is never
    re-derived from the image afterwards.
    """

    image: Image.Image = field(repr=False, compare=False)
    rgba: bytes = field(repr=False)
    width: int
    height: int
    index: int = 0

    @classmethod
    def from_image(cls, image: Image.Image, index: int = 0) -> "CapturedFrame":
        """
        Build a frame by pixelizing ``image`` immediately.

        Raises:
            PixelizeError: If the image cannot be converted
        """
        rgba = to_rgba(image)
        return cls(
            image=image,
            rgba=rgba,
            width=image.width,
            height=image.height,
            index=index,
        )

    @property
    def array(self) -> np.ndarray:
        """Read-only (height, width, 4) view of the RGBA bytes."""
        return np.frombuffer(self.rgba, dtype=np.uint8).reshape(self.height, self.width, 4)
