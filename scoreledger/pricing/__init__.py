"""Split adjustment and buy price resolution."""

from .buy_price import require_buy_price, resolve_buy_price
from .split_adjuster import adjust_to_current, split_adjustment

__all__ = [
    "adjust_to_current",
    "require_buy_price",
    "resolve_buy_price",
    "split_adjustment",
]
