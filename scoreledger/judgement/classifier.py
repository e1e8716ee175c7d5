"""
Judgement Classifier - map performance against target onto a status label.

Labels are recomputed from scratch on every call; there is no state carried
between evaluations.
"""

from typing import Any, Optional

from scoreledger.config import DEFAULT_CONFIG, EngineConfig
from scoreledger.market.market_data import MarketData
from scoreledger.models import Judgement, Projection, ScoreRecord
from scoreledger.projection.hybrid import hybrid_projection
from scoreledger.returns.annualizer import actual_days
from scoreledger.returns.return_calculator import target_percentage, total_return

HIT_TARGET = "Hit Target"
PARTIAL_SUCCESS = "Partial Success"
MISSED_TARGET = "Missed Target"
ON_TRACK = "On Track"
BELOW_TARGET = "Below Target"
DECLINING = "Declining"
EARLY_DAYS = "Early Days"
PENDING = "Pending"

# Projected share of target needed for each pre-term label
ON_TRACK_SHARE = 0.95
DECLINING_SHARE = 0.2
EARLY_DAYS_LIMIT = 30

_CLASSES = {
    HIT_TARGET: "hit",
    ON_TRACK: "hit",
    PARTIAL_SUCCESS: "partial",
    BELOW_TARGET: "partial",
    MISSED_TARGET: "miss",
    DECLINING: "miss",
}


def _against_threshold(value: float, threshold: float) -> Judgement:
    if value >= threshold:
        return Judgement(ON_TRACK, value)
    if value > 0:
        return Judgement(BELOW_TARGET, value)
    return Judgement(DECLINING, value)


def classify(
    performance: Optional[float],
    target_pct: Optional[float],
    days_elapsed: int,
    projection: Optional[Projection] = None,
    config: Optional[EngineConfig] = None,
) -> Judgement:
    """
    Classify one position (or the whole portfolio).

    Parameters:
    -----------
    performance : float or None
        Realised total return (%). None yields Pending.
    target_pct : float or None
        Target upside (%). Missing or zero targets use the default (20%).
    days_elapsed : int
        Days since the score date, measured to the latest market data.
    projection : Projection, optional
        Only consulted before day 90, and only when its confidence is
        strictly above the minimum.
    """
    cfg = config or DEFAULT_CONFIG
    if performance is None:
        return Judgement(PENDING)

    target = target_pct or cfg.default_target_pct
    threshold = target * cfg.judgement_threshold_ratio

    if days_elapsed >= cfg.window_days:
        if performance >= threshold:
            return Judgement(HIT_TARGET, performance)
        if performance > 0:
            return Judgement(PARTIAL_SUCCESS, performance)
        return Judgement(MISSED_TARGET, performance)

    if projection is not None and projection.is_reliable(cfg.min_confidence):
        predicted = projection.projected_90_day_performance
        share = predicted / target
        if predicted < 0 or share < DECLINING_SHARE:
            return Judgement(DECLINING, predicted, basis="projection")
        if share >= ON_TRACK_SHARE:
            return Judgement(ON_TRACK, predicted, basis="projection")
        return Judgement(BELOW_TARGET, predicted, basis="projection")

    if days_elapsed < EARLY_DAYS_LIMIT:
        return Judgement(EARLY_DAYS, performance, basis="early")
    return _against_threshold(performance, threshold)


def judge_stock(
    market: MarketData,
    record: ScoreRecord,
    score_date: Any,
    days_elapsed: Optional[int] = None,
    projection: Optional[Projection] = None,
    config: Optional[EngineConfig] = None,
) -> Judgement:
    """
    Judgement for one scored stock straight from market data.

    days_elapsed defaults to the stock's own data coverage (capped at the
    window). Pass the projection when one was already computed.
    """
    cfg = config or DEFAULT_CONFIG
    if days_elapsed is None:
        days_elapsed = actual_days(score_date, market.latest_date(record.stock), cfg)

    performance = total_return(market, record.stock, score_date, config=cfg)
    target_pct = target_percentage(market, record.stock, record.target, score_date, cfg)

    if projection is None and performance is not None and days_elapsed < cfg.window_days:
        projection = hybrid_projection(market, record, score_date, cfg)

    return classify(performance, target_pct, days_elapsed, projection, cfg)


def judgement_class(judgement: Any) -> str:
    """
    Display class for a judgement: hit, partial, miss, info or neutral.

    Early Days is coloured by the sign of its value.
    """
    if isinstance(judgement, Judgement):
        label, value = judgement.label, judgement.value
    else:
        text = str(judgement)
        label = text.split(" (", 1)[0]
        value = None
        if label == EARLY_DAYS:
            if "(+" in text:
                value = 1.0
            elif "(-" in text:
                value = -1.0

    if label in _CLASSES:
        return _CLASSES[label]
    if label == EARLY_DAYS:
        if value is not None and value > 0:
            return "hit"
        if value is not None and value < 0:
            return "miss"
        return "info"
    return "neutral"
