"""
Stitching engine - pixel conversion, overlap detection and composition.

Import the stitcher from ``scrollshot.stitching.stitcher``; it depends on
``scrollshot.state``, which imports the pixelizer from this package.
"""
from scrollshot.stitching.pixelizer import (
    PixelizeError,
    to_rgba,
    from_rgba,
)
from scrollshot.stitching.overlap import (
    MatchTier,
    OverlapMatch,
    find_overlap,
    detect_overlap,
)

__all__ = [
    "PixelizeError",
    "to_rgba",
    "from_rgba",
    "MatchTier",
    "OverlapMatch",
    "find_overlap",
    "detect_overlap",
]
