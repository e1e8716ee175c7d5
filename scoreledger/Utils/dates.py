"""Date helpers shared across the engine."""

import re
from datetime import date, datetime
from pathlib import PurePosixPath
from typing import Any

import pandas as pd

MONTHS = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
}

_BATCH_PATH = re.compile(r"(\d{4})/([A-Za-z]+)/(\d{1,2})\.tsv$")


def to_date(value: Any) -> date:
    """Coerce a date-like value (str, datetime, Timestamp) to a naive date."""
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    ts = pd.to_datetime(value)
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts.date()


def to_timestamp(value: Any) -> pd.Timestamp:
    """Midnight, timezone-naive Timestamp for index lookups."""
    ts = pd.Timestamp(to_date(value))
    return ts.normalize()


def days_between(start: Any, end: Any) -> int:
    """Whole calendar days from start to end (negative if end is earlier)."""
    return (to_date(end) - to_date(start)).days


def month_number(name: str) -> int:
    """Month number for a full or three-letter month name."""
    key = name.strip().lower()
    for full, number in MONTHS.items():
        if key == full or (len(key) == 3 and full.startswith(key)):
            return number
    raise ValueError(f"Invalid month: {name}")


def score_date_from_path(path: Any) -> date:
    """
    Extract the score date from a batch path such as ``2025/June/20.tsv``.

    Leading directories (``docs/scores/...``) are ignored.
    """
    text = PurePosixPath(str(path).replace("\\", "/")).as_posix()
    match = _BATCH_PATH.search(text)
    if not match:
        raise ValueError(f"Could not extract date from path: {path}")
    year, month, day = match.groups()
    try:
        return date(int(year), month_number(month), int(day))
    except ValueError as exc:
        raise ValueError(f"Invalid date in path {path}: {exc}") from exc
