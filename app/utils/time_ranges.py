"""Minute-of-day arithmetic for same-day ``"HH:MM"`` time blocks.

All functions here are pure. Intervals are half-open in spirit: two ranges
that only touch (``a_end == b_start``) do not overlap, and an inner range may
share either endpoint with the outer one and still be contained.
"""

import re
from typing import Iterable, Tuple

from app.utils.validation import ParseError

MINUTES_PER_DAY = 24 * 60

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")


def to_minutes(hhmm: str) -> int:
    """Parse ``"HH:MM"`` into minutes since midnight."""
    if not isinstance(hhmm, str):
        raise ParseError(hhmm)

    match = _HHMM.match(hhmm.strip())
    if not match:
        raise ParseError(hhmm)

    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ParseError(hhmm)

    return hour * 60 + minute


def format_minutes(minutes: int) -> str:
    """Render minutes since midnight as zero-padded ``"HH:MM"``."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"{minutes} is outside a single day")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def ranges_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """True when the two ranges share more than an endpoint."""
    return a_start < b_end and b_start < a_end


def contains(outer_start: int, outer_end: int, inner_start: int, inner_end: int) -> bool:
    """True when ``[inner_start, inner_end]`` lies within ``[outer_start, outer_end]``."""
    return inner_start >= outer_start and inner_end <= outer_end


def union_range(blocks: Iterable) -> Tuple[int, int]:
    """Smallest single span covering every block, as ``(min_start, max_end)``.

    Accepts ``TimeBlock`` values or ``(start, end)`` string pairs. Gaps between
    blocks (a lunch break, say) are swallowed by the result.
    """
    starts = []
    ends = []
    for block in blocks:
        start, end = _block_bounds(block)
        starts.append(start)
        ends.append(end)

    if not starts:
        raise ValueError("union_range() needs at least one block")

    return min(starts), max(ends)


def _block_bounds(block) -> Tuple[int, int]:
    if isinstance(block, tuple):
        start, end = block
    else:
        start, end = block.start, block.end
    if isinstance(start, str):
        start = to_minutes(start)
    if isinstance(end, str):
        end = to_minutes(end)
    return start, end
