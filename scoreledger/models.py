"""
Record types consumed and produced by the scoring engine.

Inputs (ScoreRecord, PriceBar, DividendEvent) are immutable once loaded.
Everything else is a derived value recomputed per call and never fed back
into the inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from numbers import Real
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pandas as pd


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass

    text = str(value).strip().replace("$", "").replace(",", "")
    if text == "":
        return None
    try:
        return float(text)
    except (TypeError, ValueError):
        return None


def _to_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    text = str(value).strip()
    if text == "" or text.upper() in {"N/A", "NA", "NONE"}:
        return None
    try:
        return pd.to_datetime(text).date()
    except (TypeError, ValueError):
        return None


def _require_price(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise TypeError(
            f"{field_name} must be a real number, got {type(value).__name__}"
        )
    if value < 0:
        raise ValueError(f"{field_name} must be non-negative, got {value}")
    return float(value)


# ==============================================================================
# INPUT RECORDS
# ==============================================================================


@dataclass(frozen=True)
class ScoreRecord:
    """One recommended stock in a published score batch."""

    stock: str
    score: float
    target: Optional[float]
    ex_div_date: Optional[date] = None
    dividend_per_share: Optional[float] = None
    notes: str = ""
    intrinsic_value: Optional[float] = None
    intrinsic_value_alt: Optional[float] = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "ScoreRecord":
        """
        Build a record from a loosely-typed row (e.g. a DataFrame row).

        Malformed or absent target/dividend fields become None rather than
        raising, so a bad cell only removes that term from later sums.
        """
        stock = str(row.get("stock", "")).strip().upper()
        if not stock:
            raise ValueError("Score row is missing a stock identifier")
        score = _to_float(row.get("score"))
        notes = row.get("notes")
        return cls(
            stock=stock,
            score=score if score is not None else 0.0,
            target=_to_float(row.get("target")),
            ex_div_date=_to_date(row.get("ex_div_date")),
            dividend_per_share=_to_float(row.get("dividend_per_share")),
            notes="" if notes is None or pd.isna(notes) else str(notes),
            intrinsic_value=_to_float(row.get("intrinsic_value")),
            intrinsic_value_alt=_to_float(row.get("intrinsic_value_alt")),
        )


@dataclass(frozen=True)
class PriceBar:
    """Daily bar for one stock. split_coefficient > 1.0 marks a split that day."""

    date: date
    high: float
    low: float
    open: float
    close: float
    split_coefficient: float = 1.0

    def __post_init__(self):
        for name in ("high", "low", "open", "close"):
            _require_price(getattr(self, name), name)
        if _require_price(self.split_coefficient, "split_coefficient") == 0:
            raise ValueError("split_coefficient must be positive")

    @property
    def mid(self) -> float:
        return (self.high + self.low) / 2


@dataclass(frozen=True)
class DividendEvent:
    """Ex-dividend event with a per-share amount."""

    ex_div_date: date
    amount: float


# ==============================================================================
# DERIVED VALUES
# ==============================================================================


@dataclass(frozen=True)
class BuyPrice:
    """Resolved entry price and the trading date it came from."""

    price: float
    date_used: date


@dataclass(frozen=True)
class ReturnBreakdown:
    """Total return split into its price and dividend components (percent)."""

    price_return: float
    dividend_return: float
    current_price: float
    buy_price: float
    dividend_total: float
    dividend_count: int
    as_of: date

    @property
    def total_return(self) -> float:
        return self.price_return + self.dividend_return


@dataclass(frozen=True)
class TrendLine:
    """Through-origin trend of cumulative return (%) against days since score."""

    slope: float
    r_squared: float
    data_points: Tuple[Tuple[float, float], ...]
    predicted_90_day: float
    intercept: float = 0.0

    def value_at(self, day: float) -> float:
        return self.slope * day + self.intercept


@dataclass(frozen=True)
class Projection:
    """Forecast of the 90-day outcome before the window closes."""

    projected_90_day_performance: float
    method: str
    confidence: float
    days_elapsed: int
    current_performance: float
    target_percentage: Optional[float]

    def is_reliable(self, min_confidence: float = 0.2) -> bool:
        return self.confidence > min_confidence


@dataclass(frozen=True)
class Judgement:
    """Status label with the performance or projection value it was based on."""

    label: str
    value: Optional[float] = None
    basis: str = "performance"

    def __str__(self) -> str:
        if self.value is None:
            return self.label
        if self.basis == "early":
            sign = "+" if self.value > 0 else ""
            return f"{self.label} ({sign}{self.value:.1f}%)"
        return f"{self.label} ({self.value:.1f}%)"


@dataclass
class StockResult:
    """Per-stock outputs for the persistence/rendering collaborator."""

    stock: str
    score: float
    buy_price: BuyPrice
    target_price: Optional[float]
    target_percentage: Optional[float]
    current_price: Optional[float]
    performance: Optional[float]
    progress_vs_cost_of_capital: Optional[float]
    annualized_return: Optional[float]
    judgement: Judgement
    dividend_total: float = 0.0
    dividend_count: int = 0
    next_ex_dividend: Optional[date] = None
    projection: Optional[Projection] = None
    trend: Optional[TrendLine] = None
    days_elapsed: int = 0


@dataclass
class PortfolioResult:
    """Portfolio-level aggregate over one score batch."""

    score_date: date
    stocks: List[StockResult]
    excluded: List[str]
    target_percentage: float
    performance: float
    annualized_return: float
    progress_vs_cost_of_capital: float
    days_elapsed: int
    latest_market_date: Optional[date]
    trend: Optional[TrendLine] = None
    trend_threshold: float = 0.05
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def trend_trusted(self) -> bool:
        return self.trend is not None and self.trend.r_squared >= self.trend_threshold
