"""
Vertical overlap detection between consecutive captures.

Two tiers, cheapest first:

1. Row-hash matching. A reference row is taken from the earlier frame
   ``height // 6`` rows above its bottom edge. Every row of the later frame
   with the same hash yields a candidate overlap ``K`` algebraically (row
   ``height - K + r`` of A maps to row ``r`` of B), and each candidate is
   verified over its whole band. If nothing is accepted, the row eight rows
   above the bottom is tried the same way, which reaches overlaps down to
   eight rows.
2. Intensity matching. When rows are not byte-identical (sub-pixel text
   rendering after a fractional scroll), a fixed 10-row strip from the same
   neighbourhood is slid through B and scored by mean absolute difference,
   then the bottom 10 rows of A are tried.

Anchoring on a fixed-size reference and deriving ``K`` keeps small overlaps
from winning just because fewer pixels were compared.
"""

import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

import numpy as np

from scrollshot.logging import get_logger
from scrollshot.stitching.pixelizer import BYTES_PER_PIXEL

logger = get_logger(__name__)

Buffer = Union[bytes, bytearray, memoryview, np.ndarray]

# Tier 1
MIN_EVIDENCE_ROWS = 8
MATCH_RATE_SCALE = 1000

# Tier 2
STRIP_ROWS = 10
STRIP_COLUMN_STEP = 4
INTENSITY_THRESHOLD = 15.0


class MatchTier(str, Enum):
    """Which detection tier produced an overlap."""

    ROW_HASH = "row_hash"
    INTENSITY = "intensity"
    NONE = "none"


@dataclass(frozen=True)
class OverlapMatch:
    """Detected overlap with diagnostics."""

    rows: int
    tier: MatchTier
    score: float = 0.0  # match rate (per mille) for row hashes, mean diff for intensity

    @property
    def found(self) -> bool:
        return self.rows > 0


NO_MATCH = OverlapMatch(rows=0, tier=MatchTier.NONE)


@dataclass
class _Candidate:
    overlap: int
    matches: int
    longest_run: int

    @property
    def rate(self) -> int:
        return self.matches * MATCH_RATE_SCALE // self.overlap

    @property
    def accepted(self) -> bool:
        return (
            self.longest_run >= MIN_EVIDENCE_ROWS
            or self.matches >= max(MIN_EVIDENCE_ROWS, self.overlap // 4)
        )


def find_overlap(rows_a: Buffer, rows_b: Buffer, width: int, height: int) -> int:
    """
    Number of rows by which ``rows_b`` continues ``rows_a``.

    ``rows_a`` is the earlier frame, ``rows_b`` the one captured after
    scrolling down. Returns 0 when no reliable match exists; callers treat
    that as "do not deduplicate this pair".
    """
    return detect_overlap(rows_a, rows_b, width, height).rows


def detect_overlap(rows_a: Buffer, rows_b: Buffer, width: int, height: int) -> OverlapMatch:
    """Like :func:`find_overlap` but reports the tier and score."""
    if width <= 0 or height <= 0:
        return NO_MATCH

    a = _as_rows(rows_a, width, height)
    b = _as_rows(rows_b, width, height)
    if a is None or b is None:
        logger.warning(
            "Overlap buffers do not match frame size",
            width=width,
            height=height,
        )
        return NO_MATCH

    # Right-most 5% of columns is where scrollbars live
    col_end = width - width // 20

    match = _match_row_hashes(a, b, height, col_end)
    if match is None:
        match = _match_intensity(a, b, height, col_end)

    if match is None:
        logger.debug("No reliable overlap", height=height)
        return NO_MATCH

    logger.debug(
        "Overlap detected",
        rows=match.rows,
        tier=match.tier.value,
        score=round(match.score, 2),
    )
    return match


def _as_rows(buf: Buffer, width: int, height: int) -> Optional[np.ndarray]:
    if isinstance(buf, np.ndarray):
        flat = buf.reshape(-1)
        if flat.dtype != np.uint8:
            flat = flat.astype(np.uint8)
    else:
        flat = np.frombuffer(buf, dtype=np.uint8)
    if flat.size != width * height * BYTES_PER_PIXEL:
        return None
    return flat.reshape(height, width, BYTES_PER_PIXEL)


def _row_hashes(rows: np.ndarray, col_end: int) -> np.ndarray:
    """64-bit hash of every row over columns ``[0, col_end)``."""
    band = np.ascontiguousarray(rows[:, :col_end])
    hashes = [
        int.from_bytes(hashlib.blake2b(band[r].tobytes(), digest_size=8).digest(), "little")
        for r in range(band.shape[0])
    ]
    return np.array(hashes, dtype=np.uint64)


def _longest_run(flags: np.ndarray) -> int:
    longest = run = 0
    for flag in flags:
        if flag:
            run += 1
            if run > longest:
                longest = run
        else:
            run = 0
    return longest


def _anchor_offsets(height: int) -> List[int]:
    """
    Distances of the reference rows from A's bottom edge, in trial order.

    ``height // 6`` matches the default 2/3 scroll step. The row
    ``MIN_EVIDENCE_ROWS`` above the bottom catches overlaps smaller than that.
    """
    offsets: List[int] = []
    for offset in (height // 6, MIN_EVIDENCE_ROWS):
        if 0 < offset <= height and offset not in offsets:
            offsets.append(offset)
    return offsets


def _match_row_hashes(
    a: np.ndarray, b: np.ndarray, height: int, col_end: int
) -> Optional[OverlapMatch]:
    offsets = _anchor_offsets(height)
    if not offsets:
        return None

    # Bottom-most 5% of B is often clipped or mid-repaint
    search_range = height * 19 // 20

    hashes_a = _row_hashes(a, col_end)
    hashes_b = _row_hashes(b, col_end)

    for offset in offsets:
        positions = np.nonzero(hashes_b[:search_range] == hashes_a[height - offset])[0]

        candidates: List[_Candidate] = []
        for j in positions:
            k = int(j) + offset
            if k < 1 or k > height:
                continue
            # Whole band, so an isolated changed row (cursor blink) cannot veto
            equal = hashes_a[height - k:] == hashes_b[:k]
            candidates.append(_Candidate(
                overlap=k,
                matches=int(np.count_nonzero(equal)),
                longest_run=_longest_run(equal),
            ))

        accepted = [c for c in candidates if c.accepted]
        if accepted:
            best = max(accepted, key=lambda c: (c.rate, c.longest_run))
            return OverlapMatch(rows=best.overlap, tier=MatchTier.ROW_HASH, score=float(best.rate))

    return None


def _match_intensity(
    a: np.ndarray, b: np.ndarray, height: int, col_end: int
) -> Optional[OverlapMatch]:
    strip_rows = min(STRIP_ROWS, height)
    columns = slice(0, col_end, STRIP_COLUMN_STEP)
    search = b[:, columns, :3].astype(np.int16)

    starts: List[int] = []
    for start in (min(height - height // 6, height - strip_rows), height - strip_rows):
        if start not in starts:
            starts.append(start)

    for start in starts:
        strip = a[start:start + strip_rows, columns, :3].astype(np.int16)
        if strip.size == 0:
            return None
        distance = height - start

        last = min(height - distance, height - strip_rows)
        best_position = -1
        best_diff = float("inf")
        for j in range(last + 1):
            diff = float(np.abs(search[j:j + strip_rows] - strip).mean())
            if diff < best_diff:
                best_diff = diff
                best_position = j

        if best_position >= 0 and best_diff < INTENSITY_THRESHOLD:
            return OverlapMatch(
                rows=best_position + distance,
                tier=MatchTier.INTENSITY,
                score=best_diff,
            )

    return None
