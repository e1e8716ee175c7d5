import numpy as np
import pandas as pd
import pytest

from scoreledger.judgement.classifier import (
    BELOW_TARGET,
    DECLINING,
    EARLY_DAYS,
    HIT_TARGET,
    MISSED_TARGET,
    ON_TRACK,
    PARTIAL_SUCCESS,
    PENDING,
    classify,
    judge_stock,
    judgement_class,
)
from scoreledger.market.market_data import MarketData
from scoreledger.models import Judgement, Projection, ScoreRecord


def _projection(value: float, confidence: float) -> Projection:
    return Projection(
        projected_90_day_performance=value,
        method="dampened_trend",
        confidence=confidence,
        days_elapsed=45,
        current_performance=5.0,
        target_percentage=20.0,
    )


def test_terminal_threshold_is_inclusive():
    judgement = classify(16.0, 20.0, 90)

    assert judgement.label == HIT_TARGET
    assert str(judgement) == "Hit Target (16.0%)"


@pytest.mark.parametrize(
    "performance,label",
    [(25.0, HIT_TARGET), (15.99, PARTIAL_SUCCESS), (0.01, PARTIAL_SUCCESS), (0.0, MISSED_TARGET), (-3.0, MISSED_TARGET)],
)
def test_terminal_labels(performance, label):
    assert classify(performance, 20.0, 120).label == label


def test_terminal_ignores_projection():
    judgement = classify(5.0, 20.0, 90, _projection(30.0, 0.9))

    assert judgement.label == PARTIAL_SUCCESS


@pytest.mark.parametrize(
    "confidence,label",
    [(0.199, BELOW_TARGET), (0.2, BELOW_TARGET), (0.201, ON_TRACK)],
)
def test_projection_needs_confidence_strictly_above_threshold(confidence, label):
    # Projection says on track (19.5 of 20); realised 5% says below target.
    judgement = classify(5.0, 20.0, 45, _projection(19.5, confidence))

    assert judgement.label == label


@pytest.mark.parametrize(
    "predicted,label",
    [(-1.0, DECLINING), (3.0, DECLINING), (4.0, BELOW_TARGET), (18.99, BELOW_TARGET), (19.0, ON_TRACK)],
)
def test_projection_share_of_target(predicted, label):
    judgement = classify(5.0, 20.0, 45, _projection(predicted, 0.8))

    assert judgement.label == label
    assert judgement.value == predicted
    assert judgement.basis == "projection"


def test_early_days_carry_sign():
    assert str(classify(3.24, 20.0, 10)) == "Early Days (+3.2%)"
    assert str(classify(-1.5, 20.0, 10)) == "Early Days (-1.5%)"
    assert classify(0.0, 20.0, 29).label == EARLY_DAYS


@pytest.mark.parametrize("days", [30, 59, 60, 89])
def test_unreliable_projection_uses_realised_performance(days):
    assert classify(16.0, 20.0, days).label == ON_TRACK
    assert classify(8.0, 20.0, days).label == BELOW_TARGET
    assert str(classify(-2.0, 20.0, days)) == "Declining (-2.0%)"


def test_missing_or_zero_target_defaults_to_twenty():
    assert classify(16.0, None, 95).label == HIT_TARGET
    assert classify(15.0, 0.0, 95).label == PARTIAL_SUCCESS


def test_no_performance_is_pending():
    judgement = classify(None, 20.0, 45, _projection(19.5, 0.9))

    assert judgement.label == PENDING
    assert str(judgement) == "Pending"


def test_judge_stock_from_market_data():
    dates = pd.date_range("2025-01-01", periods=91, freq="D")
    mids = np.linspace(100.0, 125.0, len(dates))
    market = MarketData(
        {"AAA": pd.DataFrame({"date": dates, "high": mids + 1, "low": mids - 1})}
    )

    judgement = judge_stock(market, ScoreRecord("AAA", 8.0, 120.0), "2025-01-01")

    assert judgement.label == HIT_TARGET
    assert judgement.value == pytest.approx(25.0)


@pytest.mark.parametrize(
    "judgement,css",
    [
        (Judgement(HIT_TARGET, 20.0), "hit"),
        (Judgement(ON_TRACK, 19.0), "hit"),
        (Judgement(BELOW_TARGET, 5.0), "partial"),
        (Judgement(PARTIAL_SUCCESS, 5.0), "partial"),
        (Judgement(DECLINING, -1.0), "miss"),
        (Judgement(MISSED_TARGET, -1.0), "miss"),
        (Judgement(EARLY_DAYS, 2.0, basis="early"), "hit"),
        (Judgement(EARLY_DAYS, -2.0, basis="early"), "miss"),
        (Judgement(EARLY_DAYS, 0.0, basis="early"), "info"),
        (Judgement(PENDING), "neutral"),
        ("Early Days (+1.0%)", "hit"),
        ("Early Days (-1.0%)", "miss"),
        ("Below Target (4.0%)", "partial"),
    ],
)
def test_judgement_class(judgement, css):
    assert judgement_class(judgement) == css
