"""
Return Calculator - price return plus accumulated dividends.

All returns are percentages relative to the resolved buy price and are
measured inside the evaluation window anchored at the score date
(score_date .. score_date + window_days). An as-of date later than the
window end is capped to the window end.
"""

from datetime import date, timedelta
from typing import Any, Optional

import numpy as np
import pandas as pd

from scoreledger.config import DEFAULT_CONFIG, EngineConfig
from scoreledger.market.market_data import MarketData
from scoreledger.models import ReturnBreakdown
from scoreledger.pricing.buy_price import resolve_buy_price
from scoreledger.pricing.split_adjuster import adjust_to_current
from scoreledger.Utils.dates import to_date, to_timestamp

SERIES_COLUMNS = ["days", "price_return", "dividend_return", "return_pct"]


def window_end(score_date: Any, config: Optional[EngineConfig] = None) -> date:
    cfg = config or DEFAULT_CONFIG
    return to_date(score_date) + timedelta(days=cfg.window_days)


def _cutoff(score_date: Any, as_of_date: Any, cfg: EngineConfig) -> date:
    end = window_end(score_date, cfg)
    if as_of_date is None:
        return end
    return min(to_date(as_of_date), end)


def _valid_target(target: Any) -> Optional[float]:
    if target is None or isinstance(target, bool):
        return None
    try:
        value = float(target)
    except (TypeError, ValueError):
        return None
    if np.isnan(value):
        return None
    return value


def dividends_within_window(
    market: MarketData,
    stock: str,
    score_date: Any,
    as_of_date: Any = None,
    config: Optional[EngineConfig] = None,
) -> pd.DataFrame:
    """Dividend events with ex-date on or before min(as_of, window end)."""
    cfg = config or DEFAULT_CONFIG
    cutoff = to_timestamp(_cutoff(score_date, as_of_date, cfg))
    divs = market.dividends(stock)
    return divs[divs.index <= cutoff]


def next_ex_dividend_date(
    market: MarketData,
    stock: str,
    score_date: Any,
    config: Optional[EngineConfig] = None,
) -> Optional[date]:
    """First ex-dividend date strictly after the score date inside the window."""
    cfg = config or DEFAULT_CONFIG
    divs = market.dividends(stock)
    start = to_timestamp(score_date)
    end = to_timestamp(window_end(score_date, cfg))
    upcoming = divs[(divs.index > start) & (divs.index <= end)]
    if upcoming.empty:
        return None
    return to_date(upcoming.index[0])


def return_breakdown(
    market: MarketData,
    stock: str,
    score_date: Any,
    as_of_date: Any = None,
    config: Optional[EngineConfig] = None,
) -> Optional[ReturnBreakdown]:
    """
    Price and dividend return for a stock as of a date.

    Returns None when there is no bar on or before the cutoff or when the
    buy price cannot be resolved.
    """
    cfg = config or DEFAULT_CONFIG
    cutoff = _cutoff(score_date, as_of_date, cfg)

    history = market.history(stock)
    within = history[history.index <= to_timestamp(cutoff)]
    if within.empty:
        return None

    last_ts = within.index[-1]
    last = within.iloc[-1]
    current_price = adjust_to_current(
        (float(last["high"]) + float(last["low"])) / 2, market, stock, last_ts
    )

    buy = resolve_buy_price(market, stock, score_date, cfg)
    if buy is None:
        return None

    price_return = (current_price - buy.price) / buy.price * 100

    divs = dividends_within_window(market, stock, score_date, cutoff, cfg)
    dividend_total = float(divs["amount"].sum()) if not divs.empty else 0.0
    dividend_return = dividend_total / buy.price * 100

    return ReturnBreakdown(
        price_return=price_return,
        dividend_return=dividend_return,
        current_price=current_price,
        buy_price=buy.price,
        dividend_total=dividend_total,
        dividend_count=int(len(divs)),
        as_of=to_date(last_ts),
    )


def total_return(
    market: MarketData,
    stock: str,
    score_date: Any,
    as_of_date: Any = None,
    config: Optional[EngineConfig] = None,
) -> Optional[float]:
    """Total return % (price + dividends), or None when it cannot be computed."""
    breakdown = return_breakdown(market, stock, score_date, as_of_date, config)
    if breakdown is None:
        return None
    return breakdown.total_return


def adjusted_target(
    market: MarketData, stock: str, target: Any, score_date: Any
) -> Optional[float]:
    """Target price restated in current-share terms."""
    value = _valid_target(target)
    if value is None:
        return None
    return adjust_to_current(value, market, stock, score_date)


def target_percentage(
    market: MarketData,
    stock: str,
    target: Any,
    score_date: Any,
    config: Optional[EngineConfig] = None,
) -> Optional[float]:
    """Upside implied by the 90-day target relative to the buy price."""
    cfg = config or DEFAULT_CONFIG
    target_price = adjusted_target(market, stock, target, score_date)
    if target_price is None:
        return None
    buy = resolve_buy_price(market, stock, score_date, cfg)
    if buy is None:
        return None
    return (target_price - buy.price) / buy.price * 100


def return_series(
    market: MarketData,
    stock: str,
    score_date: Any,
    end_date: Any = None,
    config: Optional[EngineConfig] = None,
) -> pd.DataFrame:
    """
    Total return for every bar from the score date through the end date.

    The end date defaults to the stock's latest bar and never reaches past
    the window end. Each row equals total_return(..., as_of_date=bar date).

    Returns:
    --------
    pd.DataFrame
        Indexed by bar date with columns days, price_return,
        dividend_return, return_pct. Empty when no buy price resolves.
    """
    cfg = config or DEFAULT_CONFIG
    empty = pd.DataFrame(columns=SERIES_COLUMNS, index=pd.DatetimeIndex([], name="date"))

    buy = resolve_buy_price(market, stock, score_date, cfg)
    if buy is None:
        return empty

    history = market.history(stock)
    if history.empty:
        return empty

    start_ts = to_timestamp(score_date)
    end = to_date(history.index[-1]) if end_date is None else to_date(end_date)
    end_ts = to_timestamp(min(end, window_end(score_date, cfg)))

    # Product of split coefficients strictly after each bar date.
    splits = history["split_coefficient"].where(history["split_coefficient"] > 1.0, 1.0)
    splits_from = splits.iloc[::-1].cumprod().iloc[::-1]
    splits_after = splits_from.shift(-1).fillna(1.0)

    mask = (history.index >= start_ts) & (history.index <= end_ts)
    sample = history[mask]
    if sample.empty:
        return empty

    mid = (sample["high"] + sample["low"]) / 2
    current = mid / splits_after[mask]
    price_return = (current - buy.price) / buy.price * 100

    divs = market.dividends(stock)
    cumulative = np.concatenate([[0.0], np.cumsum(divs["amount"].to_numpy(dtype=float))])
    positions = np.searchsorted(
        divs.index.values, sample.index.values, side="right"
    )
    dividend_return = pd.Series(cumulative[positions], index=sample.index) / buy.price * 100

    out = pd.DataFrame(
        {
            "days": (sample.index - start_ts).days.astype(int),
            "price_return": price_return,
            "dividend_return": dividend_return,
        },
        index=sample.index,
    )
    out["return_pct"] = out["price_return"] + out["dividend_return"]
    out.index.name = "date"
    return out
