"""Buy price resolution for a stock as of its score date."""

from datetime import timedelta
from typing import Any, Optional

from scoreledger.config import DEFAULT_CONFIG, EngineConfig
from scoreledger.errors import MissingPriceDataError
from scoreledger.market.market_data import MarketData
from scoreledger.models import BuyPrice
from scoreledger.pricing.split_adjuster import adjust_to_current
from scoreledger.Utils.dates import to_date


def resolve_buy_price(
    market: MarketData,
    stock: str,
    score_date: Any,
    config: Optional[EngineConfig] = None,
) -> Optional[BuyPrice]:
    """
    Entry price on the score date, or the next trading day within the window.

    Scans score_date + 0..N days (N = buy_price_forward_days) and uses the
    first bar found. The raw price is the bar's (high + low) / 2, restated
    in current-share terms relative to the score date.

    Returns:
    --------
    BuyPrice or None
        None when no bar exists inside the window, or when the first bar
        found has a non-positive price. Later bars are never substituted.
    """
    cfg = config or DEFAULT_CONFIG
    day0 = to_date(score_date)

    for offset in range(cfg.buy_price_forward_days + 1):
        candidate = day0 + timedelta(days=offset)
        bar = market.bar_on(stock, candidate)
        if bar is None:
            continue
        raw = (float(bar["high"]) + float(bar["low"])) / 2
        price = adjust_to_current(raw, market, stock, day0)
        if price <= 0:
            return None
        return BuyPrice(price=price, date_used=candidate)

    return None


def require_buy_price(
    market: MarketData,
    stock: str,
    score_date: Any,
    config: Optional[EngineConfig] = None,
) -> BuyPrice:
    """Like resolve_buy_price, but raises MissingPriceDataError on a gap."""
    cfg = config or DEFAULT_CONFIG
    buy = resolve_buy_price(market, stock, score_date, cfg)
    if buy is None:
        raise MissingPriceDataError(
            stock, to_date(score_date), window_days=cfg.buy_price_forward_days
        )
    return buy
