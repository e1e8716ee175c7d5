from datetime import date

import pandas as pd
import pytest

from scoreledger.market.market_data import MarketData
from scoreledger.returns.annualizer import (
    actual_days,
    annualize,
    cost_of_capital_series,
    progress_vs_cost_of_capital,
)


def test_annualize_compounds_over_actual_days():
    # A fixed 90-day divisor would give roughly 8.4% here.
    assert annualize(2.0, 5) == pytest.approx(324.9, abs=0.05)


def test_annualize_identity_at_full_term():
    days = actual_days("2025-01-01", "2025-04-01")

    assert days == 90
    assert annualize(12.5, days) == annualize(12.5, 90)


@pytest.mark.parametrize(
    "performance,days",
    [(0.0, 30), (5.0, 0), (5.0, -3), (None, 30)],
)
def test_annualize_degenerate_inputs_return_zero(performance, days):
    assert annualize(performance, days) == 0.0


def test_annualize_total_loss():
    assert annualize(-100.0, 30) == -100.0


def test_actual_days_is_capped_and_never_negative():
    assert actual_days("2025-01-01", "2025-06-01") == 90
    assert actual_days("2025-01-01", "2024-12-20") == 0
    assert actual_days("2025-01-01", None) == 0
    assert actual_days("2025-01-01", date(2025, 1, 16)) == 15


def test_progress_vs_cost_of_capital():
    assert progress_vs_cost_of_capital(5.0, 36.5) == pytest.approx(4.0)
    assert progress_vs_cost_of_capital(None, 30) is None


def test_cost_of_capital_series_flattens_after_window():
    dates = pd.date_range("2024-12-20", "2025-05-01", freq="D")
    market = MarketData(
        {"AAA": pd.DataFrame({"date": dates, "high": 11.0, "low": 9.0})}
    )

    series = cost_of_capital_series(market, ["AAA"], "2025-01-01")

    assert series.index[0] == pd.Timestamp("2025-01-01")
    assert series.iloc[0] == 0.0
    assert series.loc[pd.Timestamp("2025-01-31")] == pytest.approx(30 * 10.0 / 365)
    assert series.iloc[-1] == pytest.approx(90 * 10.0 / 365)
