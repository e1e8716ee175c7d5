"""Loaded market data and benchmark comparison."""

from .benchmarks import compare_to_benchmarks, index_performance
from .market_data import MarketData

__all__ = [
    "MarketData",
    "compare_to_benchmarks",
    "index_performance",
]
