"""
In-memory market data store.

Holds one price-history frame and one dividend frame per stock, indexed by a
naive DatetimeIndex. Frames are built once from already-loaded records and
handed out as copies, so nothing downstream can alter a recorded bar.
"""

from typing import Dict, Iterable, List, Mapping, Optional

import numpy as np
import pandas as pd

from scoreledger.models import DividendEvent, PriceBar
from scoreledger.Utils.dates import to_date, to_timestamp

PRICE_COLUMNS = ["high", "low", "open", "close", "split_coefficient"]
DIVIDEND_COLUMNS = ["amount"]


def _normalize_symbol(symbol) -> str:
    return str(symbol).strip().upper()


def _empty_history() -> pd.DataFrame:
    return pd.DataFrame(
        {col: pd.Series(dtype=float) for col in PRICE_COLUMNS},
        index=pd.DatetimeIndex([], name="date"),
    )


def _empty_dividends() -> pd.DataFrame:
    return pd.DataFrame(
        {"amount": pd.Series(dtype=float)},
        index=pd.DatetimeIndex([], name="ex_div_date"),
    )


def _normalized_index(values) -> pd.DatetimeIndex:
    idx = pd.to_datetime(values, utc=True, errors="coerce")
    return pd.DatetimeIndex(idx).tz_localize(None).normalize()


def _prepare_history(df: pd.DataFrame) -> pd.DataFrame:
    """Sort, dedupe and type-check one stock's price history."""
    if df is None or df.empty:
        return _empty_history()

    out = df.copy()
    out.columns = [str(c).strip().lower() for c in out.columns]
    if "date" in out.columns:
        out = out.set_index("date")
    out.index = _normalized_index(out.index)
    out = out[out.index.notna()]

    if "split_coefficient" not in out.columns:
        out["split_coefficient"] = 1.0
    missing = [c for c in ("high", "low") if c not in out.columns]
    if missing:
        raise ValueError(f"Price history missing required columns: {missing}")
    for col in ("open", "close"):
        if col not in out.columns:
            out[col] = np.nan

    out = out[PRICE_COLUMNS].apply(pd.to_numeric, errors="coerce")
    out["split_coefficient"] = out["split_coefficient"].fillna(1.0)
    # A bar without a usable high/low cannot price anything.
    out = out.dropna(subset=["high", "low"])
    out = out[~out.index.duplicated(keep="last")].sort_index()
    out.index.name = "date"
    return out


def _prepare_dividends(df: pd.DataFrame) -> pd.DataFrame:
    if df is None or df.empty:
        return _empty_dividends()

    out = df.copy()
    out.columns = [str(c).strip().lower() for c in out.columns]
    if "ex_div_date" in out.columns:
        out = out.set_index("ex_div_date")
    elif "date" in out.columns:
        out = out.set_index("date")
    if "amount" not in out.columns:
        raise ValueError("Dividend history missing required column: amount")
    out.index = _normalized_index(out.index)
    out["amount"] = pd.to_numeric(out["amount"], errors="coerce")
    # Malformed amounts drop out of the sum instead of poisoning it.
    out = out[out.index.notna() & out["amount"].notna().to_numpy()]
    out = out[DIVIDEND_COLUMNS].sort_index()
    out.index.name = "ex_div_date"
    return out


class MarketData:
    """
    Read-only price and dividend history for a set of stocks.

    Usage:
    ------
    >>> market = MarketData.from_records(
    ...     {"AAA": [PriceBar(date(2025, 6, 20), 101.0, 99.0, 100.0, 100.5)]},
    ...     {"AAA": [DividendEvent(date(2025, 7, 10), 1.0)]},
    ... )
    >>> market.latest_date("AAA")
    datetime.date(2025, 6, 20)
    """

    def __init__(
        self,
        price_history: Optional[Mapping[str, pd.DataFrame]] = None,
        dividends: Optional[Mapping[str, pd.DataFrame]] = None,
    ):
        self._history: Dict[str, pd.DataFrame] = {
            _normalize_symbol(sym): _prepare_history(frame)
            for sym, frame in (price_history or {}).items()
        }
        self._dividends: Dict[str, pd.DataFrame] = {
            _normalize_symbol(sym): _prepare_dividends(frame)
            for sym, frame in (dividends or {}).items()
        }

    @classmethod
    def from_records(
        cls,
        bars: Mapping[str, Iterable[PriceBar]],
        dividends: Optional[Mapping[str, Iterable[DividendEvent]]] = None,
    ) -> "MarketData":
        """Build from PriceBar / DividendEvent records grouped by stock."""
        history = {}
        for sym, rows in bars.items():
            records = [
                {
                    "date": bar.date,
                    "high": bar.high,
                    "low": bar.low,
                    "open": bar.open,
                    "close": bar.close,
                    "split_coefficient": bar.split_coefficient,
                }
                for bar in rows
            ]
            history[sym] = pd.DataFrame(records) if records else None

        divs = {}
        for sym, events in (dividends or {}).items():
            records = [{"ex_div_date": d.ex_div_date, "amount": d.amount} for d in events]
            divs[sym] = pd.DataFrame(records) if records else None

        return cls(history, divs)

    @classmethod
    def from_frames(
        cls,
        prices: pd.DataFrame,
        dividends: Optional[pd.DataFrame] = None,
        symbol_column: str = "symbol",
    ) -> "MarketData":
        """
        Build from long-format frames (one row per symbol per date).

        Parameters:
        -----------
        prices : pd.DataFrame
            Columns: symbol, date, high, low, open, close, split_coefficient
        dividends : pd.DataFrame, optional
            Columns: symbol, ex_div_date, amount
        """
        history = {}
        if prices is not None and not prices.empty:
            if symbol_column not in prices.columns:
                raise ValueError(f"prices must contain a '{symbol_column}' column")
            for sym, group in prices.groupby(symbol_column, sort=False):
                history[sym] = group.drop(columns=[symbol_column])

        divs = {}
        if dividends is not None and not dividends.empty:
            if symbol_column not in dividends.columns:
                raise ValueError(f"dividends must contain a '{symbol_column}' column")
            for sym, group in dividends.groupby(symbol_column, sort=False):
                divs[sym] = group.drop(columns=[symbol_column])

        return cls(history, divs)

    @property
    def symbols(self) -> List[str]:
        return sorted(self._history)

    def has_history(self, stock: str) -> bool:
        frame = self._history.get(_normalize_symbol(stock))
        return frame is not None and not frame.empty

    def history(self, stock: str) -> pd.DataFrame:
        """Price history for a stock (empty frame when unknown)."""
        frame = self._history.get(_normalize_symbol(stock))
        if frame is None:
            return _empty_history()
        return frame.copy()

    def dividends(self, stock: str) -> pd.DataFrame:
        """Dividend events for a stock (empty frame when unknown)."""
        frame = self._dividends.get(_normalize_symbol(stock))
        if frame is None:
            return _empty_dividends()
        return frame.copy()

    def bar_on(self, stock: str, day) -> Optional[pd.Series]:
        frame = self._history.get(_normalize_symbol(stock))
        if frame is None:
            return None
        ts = to_timestamp(day)
        if ts not in frame.index:
            return None
        return frame.loc[ts].copy()

    def latest_date(self, stock: str):
        frame = self._history.get(_normalize_symbol(stock))
        if frame is None or frame.empty:
            return None
        return to_date(frame.index[-1])

    def latest_market_date(self, stocks: Optional[Iterable[str]] = None):
        """Latest bar date across the given stocks (all stocks by default)."""
        symbols = self.symbols if stocks is None else [_normalize_symbol(s) for s in stocks]
        latest = [self.latest_date(sym) for sym in symbols]
        latest = [d for d in latest if d is not None]
        return max(latest) if latest else None
