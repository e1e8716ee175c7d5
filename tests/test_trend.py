import numpy as np
import pandas as pd
import pytest

from scoreledger.errors import InsufficientDataError
from scoreledger.market.market_data import MarketData
from scoreledger.trend.regression import (
    fit_trend,
    portfolio_trend,
    r_squared,
    require_trend,
    stock_trend,
    trend_confidence_threshold,
)


def test_perfect_line_through_origin():
    trend = fit_trend([(x, 0.5 * x) for x in range(10)])

    assert trend.slope == pytest.approx(0.5)
    assert trend.r_squared == pytest.approx(1.0)
    assert trend.predicted_90_day == pytest.approx(45.0)
    assert trend.value_at(0) == 0.0


def test_intercept_is_forced_to_zero():
    points = [(x, 10.0 + 0.1 * x) for x in range(20)]

    trend = fit_trend(points)

    assert trend.slope == pytest.approx(0.1)
    assert trend.intercept == 0.0
    assert trend.value_at(0) == 0.0
    # Scored against the pinned line, the offset data fits badly.
    assert trend.r_squared < 0.5


def test_prediction_floor_is_minus_100():
    trend = fit_trend([(x, -2.0 * x) for x in range(5)])

    assert trend.predicted_90_day == -100.0


def test_fewer_than_three_points_is_no_trend():
    assert fit_trend([(0, 0.0), (1, 1.0)]) is None

    with pytest.raises(InsufficientDataError, match=r"2 < 3"):
        require_trend([(0, 0.0), (1, 1.0)], stock="AAA")


def test_identical_days_is_no_trend():
    assert fit_trend([(5, 1.0), (5, 2.0), (5, 3.0)]) is None


def test_flat_series_has_zero_r_squared():
    trend = fit_trend([(0, 0.0), (1, 0.0), (2, 0.0)])

    assert trend.slope == 0.0
    assert trend.r_squared == 0.0
    assert r_squared([0, 1, 2], [1.0, 1.0, 1.0], 0.3) == 0.0


def test_non_finite_points_are_skipped():
    trend = fit_trend([(0, 0.0), (1, np.nan), (2, 1.0), (4, 2.0)])

    assert len(trend.data_points) == 3


def test_stock_trend_from_market_data():
    dates = pd.date_range("2025-01-01", periods=31, freq="D")
    mids = np.linspace(100.0, 103.0, len(dates))
    market = MarketData(
        {"AAA": pd.DataFrame({"date": dates, "high": mids + 1, "low": mids - 1})}
    )

    trend = stock_trend(market, "AAA", "2025-01-01")

    assert trend.slope == pytest.approx(0.1)
    assert trend.r_squared == pytest.approx(1.0)
    assert trend.data_points[0] == (0.0, 0.0)


def test_portfolio_trend_ignores_points_past_window():
    series = pd.DataFrame(
        {"days": [0, 30, 60, 90, 120], "return_pct": [0.0, 3.0, 6.0, 9.0, -50.0]}
    )

    trend = portfolio_trend(series)

    assert trend.slope == pytest.approx(0.1)
    assert len(trend.data_points) == 4


@pytest.mark.parametrize(
    "days,expected",
    [(0, 0.05), (29, 0.05), (30, 0.03), (59, 0.03), (60, 0.01), (79, 0.01), (80, 0.001), (90, 0.001)],
)
def test_trend_confidence_threshold_tiers(days, expected):
    assert trend_confidence_threshold(days) == expected
