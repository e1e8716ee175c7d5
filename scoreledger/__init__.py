"""
ScoreLedger - performance, projection and judgement for published stock scores.

Everything works on already-loaded records: build a MarketData store from
price/dividend frames, then evaluate a score batch.

>>> market = MarketData.from_frames(prices, dividends)
>>> result = evaluate_portfolio(scores, market, "2025-06-20")
>>> results_to_frame(result)
"""

from .config import DEFAULT_CONFIG, EngineConfig, ExecutionConfig
from .errors import InsufficientDataError, MissingPriceDataError, ScoreLedgerError
from .market import MarketData
from .models import (
    BuyPrice,
    DividendEvent,
    Judgement,
    PortfolioResult,
    PriceBar,
    Projection,
    ReturnBreakdown,
    ScoreRecord,
    StockResult,
    TrendLine,
)
from .portfolio import evaluate_portfolio, evaluate_stock, results_to_frame, summarize_batches

__all__ = [
    "BuyPrice",
    "DEFAULT_CONFIG",
    "DividendEvent",
    "EngineConfig",
    "ExecutionConfig",
    "InsufficientDataError",
    "Judgement",
    "MarketData",
    "MissingPriceDataError",
    "PortfolioResult",
    "PriceBar",
    "Projection",
    "ReturnBreakdown",
    "ScoreLedgerError",
    "ScoreRecord",
    "StockResult",
    "TrendLine",
    "evaluate_portfolio",
    "evaluate_stock",
    "results_to_frame",
    "summarize_batches",
]
