"""
Annualization and cost-of-capital hurdle.

The divisor is always the number of days actually covered by market data
(capped at the window length), never a fixed 90.
"""

from typing import Any, Iterable, Optional

import pandas as pd

from scoreledger.config import DEFAULT_CONFIG, EngineConfig
from scoreledger.market.market_data import MarketData
from scoreledger.Utils.dates import days_between, to_timestamp


def actual_days(
    score_date: Any,
    latest_market_date: Any,
    config: Optional[EngineConfig] = None,
) -> int:
    """Days from the score date to the latest market date, capped at the window."""
    cfg = config or DEFAULT_CONFIG
    if latest_market_date is None:
        return 0
    days = days_between(score_date, latest_market_date)
    return max(0, min(days, cfg.window_days))


def annualize(
    performance: Optional[float],
    days: int,
    config: Optional[EngineConfig] = None,
) -> float:
    """
    Compound a holding-period return to an annual rate.

    Parameters:
    -----------
    performance : float
        Holding-period return in percent.
    days : int
        Days the return was earned over.

    Returns:
    --------
    float
        ((1 + p/100) ** (365.25 / days) - 1) * 100; 0.0 when performance
        is zero/missing or days <= 0. A total loss annualizes to -100.
    """
    cfg = config or DEFAULT_CONFIG
    if performance is None or performance == 0 or days <= 0:
        return 0.0

    growth = 1 + performance / 100
    if growth <= 0:
        return cfg.min_return_pct
    try:
        return (growth ** (cfg.days_per_year / days) - 1) * 100
    except OverflowError:
        return float("inf")


def progress_vs_cost_of_capital(
    performance: Optional[float],
    days_elapsed: int,
    config: Optional[EngineConfig] = None,
) -> Optional[float]:
    """Return in excess of the pro-rated annual cost of capital."""
    cfg = config or DEFAULT_CONFIG
    if performance is None:
        return None
    return performance - (cfg.cost_of_capital_pct / 365) * days_elapsed


def cost_of_capital_series(
    market: MarketData,
    stocks: Iterable[str],
    score_date: Any,
    config: Optional[EngineConfig] = None,
) -> pd.Series:
    """
    Hurdle line (percent) for every market date from the score date onward.

    The hurdle stops growing once the window length is reached.
    """
    cfg = config or DEFAULT_CONFIG
    start = to_timestamp(score_date)

    dates = {start}
    for stock in stocks:
        history = market.history(stock)
        dates.update(ts for ts in history.index if ts >= start)

    index = pd.DatetimeIndex(sorted(dates), name="date")
    days = (index - start).days.to_numpy().clip(0, cfg.window_days)
    return pd.Series(days * cfg.cost_of_capital_pct / 365, index=index, name="cost_of_capital")
