"""Total return, annualization and cost-of-capital progress."""

from .annualizer import (
    actual_days,
    annualize,
    cost_of_capital_series,
    progress_vs_cost_of_capital,
)
from .return_calculator import (
    adjusted_target,
    dividends_within_window,
    next_ex_dividend_date,
    return_breakdown,
    return_series,
    target_percentage,
    total_return,
    window_end,
)

__all__ = [
    "actual_days",
    "adjusted_target",
    "annualize",
    "cost_of_capital_series",
    "dividends_within_window",
    "next_ex_dividend_date",
    "progress_vs_cost_of_capital",
    "return_breakdown",
    "return_series",
    "target_percentage",
    "total_return",
    "window_end",
]
