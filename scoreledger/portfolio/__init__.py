"""Per-stock evaluation and portfolio aggregation."""

from .aggregator import (
    days_elapsed,
    evaluate_portfolio,
    evaluate_stock,
    portfolio_performance,
    portfolio_return_series,
    portfolio_target,
    results_to_frame,
    summarize_batches,
)

__all__ = [
    "days_elapsed",
    "evaluate_portfolio",
    "evaluate_stock",
    "portfolio_performance",
    "portfolio_return_series",
    "portfolio_target",
    "results_to_frame",
    "summarize_batches",
]
