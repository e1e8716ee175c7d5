"""Exceptions raised by the scoring engine."""

from datetime import date
from typing import Optional


class ScoreLedgerError(Exception):
    """Base class for engine errors."""

    pass


class MissingPriceDataError(ScoreLedgerError):
    """Raised when no usable price bar exists within the buy-price window."""

    def __init__(self, stock: str, score_date: date, window_days: int = 5):
        self.stock = stock
        self.score_date = score_date
        self.window_days = window_days
        super().__init__(
            f"No market price for {stock} within {window_days} days of "
            f"{score_date.isoformat()}"
        )


class InsufficientDataError(ScoreLedgerError):
    """Raised when a regression is requested with too few sample points."""

    def __init__(self, points: int, required: int = 3, stock: Optional[str] = None):
        self.points = points
        self.required = required
        self.stock = stock
        label = f" for {stock}" if stock else ""
        super().__init__(
            f"Insufficient data points{label} ({points} < {required})"
        )
