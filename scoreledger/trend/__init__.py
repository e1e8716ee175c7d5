"""Through-origin trend regression of cumulative return."""

from .regression import (
    PORTFOLIO_TREND_THRESHOLDS,
    fit_trend,
    portfolio_trend,
    r_squared,
    require_trend,
    stock_trend,
    trend_confidence_threshold,
)

__all__ = [
    "PORTFOLIO_TREND_THRESHOLDS",
    "fit_trend",
    "portfolio_trend",
    "r_squared",
    "require_trend",
    "stock_trend",
    "trend_confidence_threshold",
]
