"""
Trend Regressor - cumulative return against days since the score date.

The slope is the ordinary least-squares slope; the intercept is then pinned
to zero so the line passes through the score date at 0% return. R-squared
is measured against that pinned line and only serves as a confidence proxy.
"""

from typing import Any, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from scoreledger.config import DEFAULT_CONFIG, EngineConfig
from scoreledger.errors import InsufficientDataError
from scoreledger.market.market_data import MarketData
from scoreledger.models import TrendLine
from scoreledger.returns.return_calculator import return_series

# (min elapsed days, R-squared above which the portfolio trend is trusted)
PORTFOLIO_TREND_THRESHOLDS: Tuple[Tuple[int, float], ...] = (
    (80, 0.001),
    (60, 0.01),
    (30, 0.03),
)
DEFAULT_TREND_THRESHOLD = 0.05


def _as_points(points: Any) -> Tuple[np.ndarray, np.ndarray]:
    if isinstance(points, pd.DataFrame):
        x = points["days"].to_numpy(dtype=float)
        y = points["return_pct"].to_numpy(dtype=float)
    else:
        pairs = [(float(px), float(py)) for px, py in points]
        x = np.array([p[0] for p in pairs], dtype=float)
        y = np.array([p[1] for p in pairs], dtype=float)
    keep = np.isfinite(x) & np.isfinite(y)
    return x[keep], y[keep]


def r_squared(x: Sequence[float], y: Sequence[float], slope: float) -> float:
    """Coefficient of determination of y against the line y = slope * x."""
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if y.size == 0:
        return 0.0
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    if ss_tot == 0:
        return 0.0
    ss_res = float(np.sum((y - slope * x) ** 2))
    return 1 - ss_res / ss_tot


def fit_trend(
    points: Any, config: Optional[EngineConfig] = None
) -> Optional[TrendLine]:
    """
    Fit a through-origin trend line.

    Parameters:
    -----------
    points : iterable of (days, return_pct) or DataFrame
        DataFrame input needs "days" and "return_pct" columns (the shape
        return_series produces).

    Returns:
    --------
    TrendLine or None
        None with fewer than min_trend_points usable points or when every
        point shares the same day.
    """
    cfg = config or DEFAULT_CONFIG
    x, y = _as_points(points)
    if x.size < cfg.min_trend_points:
        return None
    if np.all(x == x[0]):
        return None

    slope = float(stats.linregress(x, y).slope)
    return TrendLine(
        slope=slope,
        r_squared=r_squared(x, y, slope),
        data_points=tuple(zip(x.tolist(), y.tolist())),
        predicted_90_day=max(slope * cfg.window_days, cfg.min_return_pct),
        intercept=0.0,
    )


def require_trend(
    points: Any,
    config: Optional[EngineConfig] = None,
    stock: Optional[str] = None,
) -> TrendLine:
    """Like fit_trend, but raises InsufficientDataError instead of returning None."""
    cfg = config or DEFAULT_CONFIG
    trend = fit_trend(points, cfg)
    if trend is None:
        x, _ = _as_points(points)
        raise InsufficientDataError(int(x.size), required=cfg.min_trend_points, stock=stock)
    return trend


def stock_trend(
    market: MarketData,
    stock: str,
    score_date: Any,
    end_date: Any = None,
    config: Optional[EngineConfig] = None,
) -> Optional[TrendLine]:
    """Trend of one stock's total return from the score date to end_date."""
    cfg = config or DEFAULT_CONFIG
    series = return_series(market, stock, score_date, end_date, cfg)
    if series.empty:
        return None
    return fit_trend(series, cfg)


def portfolio_trend(
    series: pd.DataFrame, config: Optional[EngineConfig] = None
) -> Optional[TrendLine]:
    """Trend of a portfolio return series (see portfolio_return_series)."""
    cfg = config or DEFAULT_CONFIG
    if series is None or series.empty:
        return None
    sample = series[series["days"] <= cfg.window_days]
    return fit_trend(sample, cfg)


def trend_confidence_threshold(days_elapsed: int) -> float:
    """R-squared a portfolio trend must exceed to be trusted at this age."""
    for min_days, threshold in PORTFOLIO_TREND_THRESHOLDS:
        if days_elapsed >= min_days:
            return threshold
    return DEFAULT_TREND_THRESHOLD
