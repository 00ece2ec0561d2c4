"""
Frame stitching.

Composes an ordered list of captured frames into one tall image by
dropping the overlapping head of every frame after the first. No
resampling and no recompression: rows are copied byte for byte.
"""

import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
from PIL import Image

from scrollshot.logging import get_logger
from scrollshot.state import CapturedFrame
from scrollshot.stitching.overlap import find_overlap
from scrollshot.stitching.pixelizer import BYTES_PER_PIXEL, from_rgba

logger = get_logger(__name__)


@dataclass
class StitchResult:
    """Stitched image plus the overlaps used to build it."""

    image: Optional[Image.Image]
    overlaps: List[int] = field(default_factory=list)
    # Pairs (i, i + 1) where no overlap was found; frame i + 1 was appended whole
    unmatched_pairs: List[int] = field(default_factory=list)
    width: int = 0
    height: int = 0

    @property
    def success(self) -> bool:
        return self.image is not None


def stitch(frames: Sequence[CapturedFrame]) -> Optional[Image.Image]:
    """
    Stitch ``frames`` (in capture order) into a single image.

    Returns None for an empty list or an empty canvas.
    """
    return stitch_with_report(frames).image


def stitch_with_report(frames: Sequence[CapturedFrame]) -> StitchResult:
    """
    Stitch ``frames`` and report per-pair overlaps.

    Raises:
        ValueError: If the frames do not share one width and height
    """
    if not frames:
        return StitchResult(image=None)

    width = frames[0].width
    height = frames[0].height
    for frame in frames[1:]:
        if frame.width != width or frame.height != height:
            raise ValueError(
                f"Frame {frame.index} is {frame.width}x{frame.height}, "
                f"expected {width}x{height}"
            )

    if width <= 0 or height <= 0:
        return StitchResult(image=None)

    if len(frames) == 1:
        return StitchResult(
            image=from_rgba(frames[0].rgba, width, height),
            width=width,
            height=height,
        )

    start = time.time()
    overlaps = [
        find_overlap(frames[i].rgba, frames[i + 1].rgba, width, height)
        for i in range(len(frames) - 1)
    ]
    detect_ms = int((time.time() - start) * 1000)

    unmatched = [i for i, overlap in enumerate(overlaps) if overlap == 0]
    if unmatched:
        logger.warning(
            "No overlap found, appending frames whole",
            pairs=[(i, i + 1) for i in unmatched],
        )

    total_height = height + sum(max(0, height - overlap) for overlap in overlaps)
    if total_height == 0:
        return StitchResult(image=None, overlaps=overlaps, unmatched_pairs=unmatched)

    start = time.time()
    canvas = np.empty((total_height, width, BYTES_PER_PIXEL), dtype=np.uint8)
    canvas[:height] = frames[0].array
    cursor = height
    for overlap, frame in zip(overlaps, frames[1:]):
        addition = height - overlap
        if addition <= 0:
            continue
        canvas[cursor:cursor + addition] = frame.array[overlap:]
        cursor += addition
    compose_ms = int((time.time() - start) * 1000)

    logger.info(
        "Frames stitched",
        frames=len(frames),
        overlaps=overlaps,
        width=width,
        height=total_height,
        detect_ms=detect_ms,
        compose_ms=compose_ms,
    )

    return StitchResult(
        image=from_rgba(canvas.tobytes(), width, total_height),
        overlaps=overlaps,
        unmatched_pairs=unmatched,
        width=width,
        height=total_height,
    )
