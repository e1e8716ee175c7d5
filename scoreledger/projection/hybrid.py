"""
Hybrid Projector - tiered forecast of the 90-day outcome.

The tier is chosen by days elapsed since the score date (measured to the
latest market-data date, never wall-clock time):

- < 30 days: dampened trend, falling back to a target-anchored blend
- 30-60 days: dampened trend with a wider target-anchored fallback
- >= 60 days: realistic trajectory reconciled against the target,
  or mean reversion when there is no target

Every projection is clamped to [-100, +200] percent.
"""

import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional, Tuple

import pandas as pd

from scoreledger.config import DEFAULT_CONFIG, EngineConfig
from scoreledger.market.market_data import MarketData
from scoreledger.models import Projection, ScoreRecord, TrendLine
from scoreledger.returns.return_calculator import target_percentage, total_return
from scoreledger.trend.regression import stock_trend
from scoreledger.Utils.dates import days_between, to_date

DAMPENED_TREND = "dampened_trend"
TARGET_BASED = "target_based"
REALISTIC_TRAJECTORY = "realistic_trajectory"
MEAN_REVERSION = "mean_reversion"


@dataclass(frozen=True)
class ProjectionTier:
    """Trend-driven tier: dampened slope with a target-anchored fallback."""

    max_days: int  # exclusive upper bound on days elapsed
    dampening: float  # share of the fitted slope kept
    min_r_squared: float  # trend must beat this to be used
    confidence_scale: float  # confidence = min(R^2 * scale, cap)
    confidence_cap: float
    gap_share: float  # share of the remaining gap to target recovered
    loss_retained: float  # share of a current loss carried to day 90
    fallback_confidence: float
    no_target_projection: float = -5.0


@dataclass(frozen=True)
class TrajectoryTier:
    """Late tier: extrapolate the realised pace and reconcile with the target."""

    max_daily_rate: float = 2.0  # % per day beyond which the target is out of reach
    miss_cap_ratio: float = 0.6  # projection cap (x target) when out of reach
    miss_floor_ratio: float = 1.2  # ...but at least this multiple of current
    conservative_cap_ratio: float = 0.8  # cap (x target) while still reachable
    miss_confidence: float = 0.7
    ahead_confidence: float = 0.7
    conservative_confidence: float = 0.6
    reversion_rate: float = 0.4  # pull toward 0% without a target
    reversion_confidence: float = 0.3


PROJECTION_TIERS: Tuple[ProjectionTier, ...] = (
    ProjectionTier(
        max_days=30,
        dampening=0.3,
        min_r_squared=0.1,
        confidence_scale=0.7,
        confidence_cap=0.8,
        gap_share=0.1,
        loss_retained=0.5,
        fallback_confidence=0.3,
    ),
    ProjectionTier(
        max_days=60,
        dampening=0.5,
        min_r_squared=0.05,
        confidence_scale=0.8,
        confidence_cap=0.9,
        gap_share=0.15,
        loss_retained=0.6,
        fallback_confidence=0.5,
    ),
)

TRAJECTORY_TIER = TrajectoryTier()


def projection_tier(days_elapsed: int) -> Optional[ProjectionTier]:
    """Trend tier for this age, or None once the trajectory tier applies."""
    for tier in PROJECTION_TIERS:
        if days_elapsed < tier.max_days:
            return tier
    return None


def _clamp(value: float, cfg: EngineConfig) -> float:
    return max(min(value, cfg.max_projection_pct), cfg.min_return_pct)


def _target_anchored(
    tier: ProjectionTier, current: float, target: Optional[float], cfg: EngineConfig
) -> float:
    if target is None:
        return tier.no_target_projection
    if current > 0:
        projected = current + (target - current) * tier.gap_share
    else:
        projected = current * tier.loss_retained
    return max(min(projected, target), cfg.min_return_pct)


def _required_daily_rate(gap: float, remaining_days: int) -> float:
    if remaining_days > 0:
        return gap / remaining_days
    # Window already closed: an open gap can no longer be made up.
    return math.inf if gap > 0 else 0.0


def _trajectory(
    days_elapsed: int,
    current: float,
    target: Optional[float],
    cfg: EngineConfig,
    tier: TrajectoryTier = TRAJECTORY_TIER,
) -> Tuple[float, str, float]:
    if target is None:
        return (
            current * (1 - tier.reversion_rate),
            MEAN_REVERSION,
            tier.reversion_confidence,
        )

    trajectory = current / days_elapsed * cfg.window_days
    required = _required_daily_rate(target - current, cfg.window_days - days_elapsed)

    if required > tier.max_daily_rate:
        projected = max(
            min(trajectory, target * tier.miss_cap_ratio),
            current * tier.miss_floor_ratio,
        )
        return projected, REALISTIC_TRAJECTORY, tier.miss_confidence
    if current > target:
        return trajectory, REALISTIC_TRAJECTORY, tier.ahead_confidence
    return (
        min(trajectory, target * tier.conservative_cap_ratio),
        REALISTIC_TRAJECTORY,
        tier.conservative_confidence,
    )


def project_90_day(
    days_elapsed: int,
    current_performance: float,
    target_pct: Optional[float],
    trend: Optional[TrendLine] = None,
    config: Optional[EngineConfig] = None,
) -> Projection:
    """
    Project the day-90 return from the current state of one position.

    Parameters:
    -----------
    days_elapsed : int
        Whole days from the score date to the latest market-data date.
    current_performance : float
        Total return (%) as of that date.
    target_pct : float or None
        Target upside (%); None when the stock has no usable target.
    trend : TrendLine, optional
        Fitted trend of the return series. Only the two early tiers use it;
        a missing trend sends them to the target-anchored fallback.

    Returns:
    --------
    Projection
        Confidence is a plain output. Callers decide whether to trust it
        (see Projection.is_reliable).
    """
    cfg = config or DEFAULT_CONFIG
    tier = projection_tier(days_elapsed)

    if tier is not None:
        if trend is not None and trend.r_squared > tier.min_r_squared:
            projected = max(trend.slope * tier.dampening * cfg.window_days, cfg.min_return_pct)
            method = DAMPENED_TREND
            confidence = min(trend.r_squared * tier.confidence_scale, tier.confidence_cap)
        else:
            projected = _target_anchored(tier, current_performance, target_pct, cfg)
            method = TARGET_BASED
            confidence = tier.fallback_confidence
    else:
        projected, method, confidence = _trajectory(
            days_elapsed, current_performance, target_pct, cfg
        )

    return Projection(
        projected_90_day_performance=_clamp(projected, cfg),
        method=method,
        confidence=confidence,
        days_elapsed=days_elapsed,
        current_performance=current_performance,
        target_percentage=target_pct,
    )


def hybrid_projection(
    market: MarketData,
    record: ScoreRecord,
    score_date: Any,
    config: Optional[EngineConfig] = None,
    verbose: bool = False,
    trend: Optional[TrendLine] = None,
    fit_missing_trend: bool = True,
) -> Optional[Projection]:
    """
    Projection for one scored stock against the loaded market data.

    Pass trend when the stock trend was already fitted. When the fit was
    attempted and came back empty, pass fit_missing_trend=False so the
    series is not refitted. Returns None when the stock has no history,
    no buy price or no current performance.
    """
    cfg = config or DEFAULT_CONFIG
    stock = record.stock

    latest = market.latest_date(stock)
    if latest is None:
        if verbose:
            print(f"  (Warning) {stock}: no market data, cannot project")
        return None

    current = total_return(market, stock, score_date, config=cfg)
    if current is None:
        if verbose:
            print(f"  (Warning) {stock}: no buy price or current price, cannot project")
        return None

    days_elapsed = days_between(score_date, latest)
    target_pct = target_percentage(market, stock, record.target, score_date, cfg)

    if trend is None and projection_tier(days_elapsed) is not None:
        if fit_missing_trend:
            trend = stock_trend(market, stock, score_date, config=cfg)
        if trend is None and verbose:
            print(f"  (Warning) {stock}: insufficient data for a trend, using target-based projection")

    projection = project_90_day(days_elapsed, current, target_pct, trend, cfg)
    if verbose:
        print(
            f"  {stock}: {projection.projected_90_day_performance:.1f}% "
            f"({projection.method}, confidence {projection.confidence:.2f}, "
            f"day {days_elapsed})"
        )
    return projection


def projection_path(
    projection: Projection,
    trend: Optional[TrendLine] = None,
    score_date: Any = None,
    config: Optional[EngineConfig] = None,
    step_days: int = 7,
) -> pd.DataFrame:
    """
    Weekly projected return from day 0 to day 90 for charting.

    A dampened-trend projection needs the trend it came from; without it the
    path is empty. When score_date is given a "date" column is added.
    """
    cfg = config or DEFAULT_CONFIG
    horizon = cfg.window_days
    days = list(range(0, horizon + 1, step_days))
    if days[-1] != horizon:
        days.append(horizon)

    projected = projection.projected_90_day_performance
    values = []
    if projection.method == DAMPENED_TREND:
        tier = projection_tier(projection.days_elapsed)
        if trend is None or tier is None:
            return pd.DataFrame(columns=["day", "projected_pct"])
        slope = trend.slope * tier.dampening
        values = [max(slope * day, cfg.min_return_pct) for day in days]
    elif projection.method == REALISTIC_TRAJECTORY:
        elapsed = projection.days_elapsed
        pace = projection.current_performance / elapsed if elapsed > 0 else 0.0
        for day in days:
            if day == horizon:
                values.append(projected)
            elif day <= elapsed:
                values.append(pace * day)
            else:
                values.append(projected * day / horizon)
    else:
        values = [projected * min(day / horizon, 1.0) for day in days]

    out = pd.DataFrame(
        {"day": days, "projected_pct": [_clamp(v, cfg) for v in values]}
    )
    if score_date is not None:
        start = to_date(score_date)
        out.insert(0, "date", [pd.Timestamp(start + timedelta(days=d)) for d in days])
    return out
