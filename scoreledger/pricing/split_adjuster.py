"""
Split adjustment - restate historical prices in current-share terms.

Scores and historical prices are denominated in shares as they were at the
time. Every split recorded strictly after the reference date shrinks that
price by its coefficient. Bars are only ever scanned, never rewritten.
"""

from typing import Any

from scoreledger.market.market_data import MarketData
from scoreledger.Utils.dates import to_timestamp


def split_adjustment(market: MarketData, stock: str, historical_date: Any) -> float:
    """
    Cumulative split factor between historical_date and the latest bar.

    Returns 1.0 when the stock has no history or no later split.
    """
    history = market.history(stock)
    if history.empty:
        return 1.0

    after = history.loc[history.index > to_timestamp(historical_date), "split_coefficient"]
    splits = after[after > 1.0]
    if splits.empty:
        return 1.0
    return float(splits.prod())


def adjust_to_current(
    price: float, market: MarketData, stock: str, historical_date: Any
) -> float:
    """Convert a price quoted on historical_date into current-share terms."""
    return price / split_adjustment(market, stock, historical_date)
