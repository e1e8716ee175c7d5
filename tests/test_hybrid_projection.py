import numpy as np
import pandas as pd
import pytest

from scoreledger.market.market_data import MarketData
from scoreledger.models import ScoreRecord, TrendLine
from scoreledger.projection.hybrid import (
    DAMPENED_TREND,
    MEAN_REVERSION,
    REALISTIC_TRAJECTORY,
    TARGET_BASED,
    hybrid_projection,
    project_90_day,
    projection_path,
)


def _trend(slope: float, r_squared: float) -> TrendLine:
    return TrendLine(
        slope=slope,
        r_squared=r_squared,
        data_points=((0.0, 0.0), (1.0, slope)),
        predicted_90_day=max(slope * 90, -100.0),
    )


def test_early_tier_dampens_trend():
    projection = project_90_day(10, 3.0, 20.0, _trend(0.2, 0.5))

    assert projection.method == DAMPENED_TREND
    assert projection.projected_90_day_performance == pytest.approx(5.4)
    assert projection.confidence == pytest.approx(0.35)
    assert projection.days_elapsed == 10


def test_early_tier_confidence_scales_with_fit():
    projection = project_90_day(10, 3.0, 20.0, _trend(0.1, 1.0))

    assert projection.confidence == pytest.approx(0.7)


def test_early_tier_weak_trend_falls_back_to_target():
    # R-squared must be strictly above 0.1
    projection = project_90_day(10, 5.0, 20.0, _trend(0.2, 0.1))

    assert projection.method == TARGET_BASED
    assert projection.projected_90_day_performance == pytest.approx(6.5)
    assert projection.confidence == 0.3


def test_target_based_fallback_for_losses_and_missing_target():
    assert project_90_day(10, -10.0, 20.0).projected_90_day_performance == pytest.approx(-5.0)
    assert project_90_day(10, 4.0, None).projected_90_day_performance == -5.0
    assert project_90_day(45, 4.0, 20.0).projected_90_day_performance == pytest.approx(6.4)
    assert project_90_day(45, -10.0, 20.0).projected_90_day_performance == pytest.approx(-6.0)
    assert project_90_day(45, 4.0, 20.0).confidence == 0.5


def test_target_based_never_exceeds_target():
    projection = project_90_day(10, 30.0, 20.0)

    assert projection.projected_90_day_performance == 20.0


def test_mid_tier_dampens_trend_by_half():
    projection = project_90_day(45, 8.0, 20.0, _trend(0.25, 0.06))

    assert projection.method == DAMPENED_TREND
    assert projection.projected_90_day_performance == pytest.approx(11.25)
    assert projection.confidence == pytest.approx(0.048)


def test_late_tier_conservative_when_target_reachable():
    projection = project_90_day(60, 5.0, 20.0)

    assert projection.method == REALISTIC_TRAJECTORY
    assert projection.projected_90_day_performance == pytest.approx(7.5)
    assert projection.confidence == 0.6


def test_late_tier_caps_conservative_projection_below_target():
    projection = project_90_day(60, 15.0, 20.0)

    assert projection.projected_90_day_performance == pytest.approx(16.0)


def test_late_tier_unreachable_target():
    projection = project_90_day(80, 5.0, 40.0)

    assert projection.method == REALISTIC_TRAJECTORY
    assert projection.projected_90_day_performance == pytest.approx(6.0)
    assert projection.confidence == 0.7


def test_late_tier_already_above_target_uses_trajectory():
    projection = project_90_day(70, 30.0, 20.0)

    assert projection.projected_90_day_performance == pytest.approx(30.0 / 70 * 90)
    assert projection.confidence == 0.7


def test_late_tier_without_target_reverts_to_mean():
    projection = project_90_day(75, 10.0, None)

    assert projection.method == MEAN_REVERSION
    assert projection.projected_90_day_performance == pytest.approx(6.0)
    assert projection.confidence == 0.3


def test_window_already_closed_treats_gap_as_unreachable():
    projection = project_90_day(95, 5.0, 20.0)

    assert projection.projected_90_day_performance == pytest.approx(6.0)
    assert projection.confidence == 0.7


def test_projection_is_clamped():
    assert project_90_day(10, 0.0, 20.0, _trend(10.0, 0.9)).projected_90_day_performance == 200.0
    assert project_90_day(10, 0.0, 20.0, _trend(-10.0, 0.9)).projected_90_day_performance == -100.0


def test_projection_path_for_dampened_trend():
    trend = _trend(0.2, 0.5)
    projection = project_90_day(10, 3.0, 20.0, trend)

    path = projection_path(projection, trend, score_date="2025-01-01")

    assert path["day"].tolist() == list(range(0, 85, 7)) + [90]
    assert path["projected_pct"].iloc[0] == 0.0
    assert path["projected_pct"].iloc[-1] == pytest.approx(5.4)
    assert path["date"].iloc[-1] == pd.Timestamp("2025-04-01")


def test_projection_path_without_trend_is_empty_for_dampened():
    projection = project_90_day(10, 3.0, 20.0, _trend(0.2, 0.5))

    assert projection_path(projection).empty


def test_projection_path_for_realistic_trajectory():
    projection = project_90_day(63, 7.0, 20.0)

    path = projection_path(projection).set_index("day")["projected_pct"]

    assert path.loc[63] == pytest.approx(7.0)
    assert path.loc[70] == pytest.approx(projection.projected_90_day_performance * 70 / 90)
    assert path.loc[90] == projection.projected_90_day_performance


def test_projection_path_ramps_to_target_based_value():
    projection = project_90_day(10, 5.0, 20.0)

    path = projection_path(projection)

    assert path["projected_pct"].iloc[0] == 0.0
    assert path["projected_pct"].iloc[-1] == pytest.approx(6.5)


def test_hybrid_projection_from_market_data():
    dates = pd.date_range("2025-01-01", periods=46, freq="D")
    mids = np.linspace(100.0, 110.0, len(dates))
    market = MarketData(
        {"AAA": pd.DataFrame({"date": dates, "high": mids + 1, "low": mids - 1})}
    )
    record = ScoreRecord(stock="AAA", score=7.0, target=120.0)

    projection = hybrid_projection(market, record, "2025-01-01")

    assert projection.days_elapsed == 45
    assert projection.method == DAMPENED_TREND
    assert projection.current_performance == pytest.approx(10.0)
    assert projection.target_percentage == pytest.approx(20.0)
    # slope 10/45 per day, halved, over 90 days
    assert projection.projected_90_day_performance == pytest.approx(10.0)


def test_hybrid_projection_without_buy_price_is_none(capsys):
    dates = pd.date_range("2025-01-10", periods=10, freq="D")
    market = MarketData({"AAA": pd.DataFrame({"date": dates, "high": 11.0, "low": 9.0})})
    record = ScoreRecord(stock="AAA", score=7.0, target=12.0)

    assert hybrid_projection(market, record, "2025-01-01", verbose=True) is None
    assert "(Warning)" in capsys.readouterr().out
