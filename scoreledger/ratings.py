"""Analyst star ratings: averaging and quarter-star moon display."""

import math
from typing import Any, Dict, Optional

from scoreledger.models import _to_float

FULL_MOON = "\U0001F315"
# Quarter-star glyphs indexed by the rounded remainder (0-3 quarters)
PARTIAL_MOONS = (
    "\U0001F311",  # new moon
    "\U0001F312",  # quarter
    "\U0001F313",  # half
    "\U0001F314",  # three-quarter
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def average_stars(ms_stars: Any = None, tips_stars: Any = None) -> Optional[float]:
    """
    Average of a 1-5 rating and a 1-10 rating (halved onto the 1-5 scale).

    Out-of-range or unparseable ratings are ignored; None when neither is valid.
    """
    ratings = []
    ms = _to_float(ms_stars)
    if ms is not None and 1 <= ms <= 5:
        ratings.append(ms)
    tips = _to_float(tips_stars)
    if tips is not None and 1 <= tips <= 10:
        ratings.append(tips / 2)
    if not ratings:
        return None
    return sum(ratings) / len(ratings)


def star_breakdown(avg_stars: Optional[float]) -> Optional[Dict[str, int]]:
    """Quarter-star rounding of an average rating."""
    if avg_stars is None:
        return None
    hundred = min(_round_half_up(avg_stars * 20), 100)
    full = hundred // 20
    remainder = hundred - full * 20
    partial = _round_half_up(min(max(0, remainder), 20) / 5)
    return {"hundred": hundred, "full": full, "remainder": remainder, "partial": partial}


def star_display(avg_stars: Optional[float]) -> str:
    """Moon glyphs for an average rating ("" when there is no rating)."""
    parts = star_breakdown(avg_stars)
    if parts is None:
        return ""
    display = FULL_MOON * parts["full"]
    if parts["remainder"] > 0:
        # Four quarters round up to a full moon
        display += FULL_MOON if parts["partial"] >= 4 else PARTIAL_MOONS[parts["partial"]]
    return display
