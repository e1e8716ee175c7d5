"""
Benchmark index comparison over already-loaded close series.

Fetching the index data is the caller's job; this module only turns a
close series into a first-to-last performance figure.
"""

from typing import Any, Dict, Mapping, Optional

import pandas as pd

from scoreledger.Utils.dates import to_timestamp


def index_performance(
    closes: pd.Series,
    start: Optional[Any] = None,
    end: Optional[Any] = None,
) -> Optional[Dict[str, float]]:
    """
    First-to-last percentage move of an index close series.

    Parameters:
    -----------
    closes : pd.Series
        Close prices indexed by date. Missing closes are skipped.
    start, end : date-like, optional
        Restrict the series to this inclusive range.

    Returns:
    --------
    dict or None
        {"performance", "initial_price", "current_price"}; None when the
        series is empty or starts at a non-positive price.
    """
    if closes is None or len(closes) == 0:
        return None

    series = closes.dropna().copy()
    series.index = pd.to_datetime(series.index).normalize()
    series = series.sort_index()
    if start is not None:
        series = series[series.index >= to_timestamp(start)]
    if end is not None:
        series = series[series.index <= to_timestamp(end)]
    if series.empty:
        return None

    initial = float(series.iloc[0])
    current = float(series.iloc[-1])
    if initial <= 0:
        return None

    return {
        "performance": (current - initial) / initial * 100,
        "initial_price": initial,
        "current_price": current,
    }


def compare_to_benchmarks(
    portfolio_performance: float,
    indices: Mapping[str, pd.Series],
    start: Optional[Any] = None,
    end: Optional[Any] = None,
) -> pd.DataFrame:
    """Portfolio performance alongside each benchmark and the excess return."""
    rows = []
    for name, closes in indices.items():
        perf = index_performance(closes, start=start, end=end)
        if perf is None:
            continue
        rows.append(
            {
                "Index": name,
                "Index Performance %": perf["performance"],
                "Portfolio Performance %": portfolio_performance,
                "Excess Return %": portfolio_performance - perf["performance"],
            }
        )
    return pd.DataFrame(
        rows,
        columns=[
            "Index",
            "Index Performance %",
            "Portfolio Performance %",
            "Excess Return %",
        ],
    )
