"""Status labels for stocks and portfolios."""

from .classifier import classify, judge_stock, judgement_class

__all__ = [
    "classify",
    "judge_stock",
    "judgement_class",
]
