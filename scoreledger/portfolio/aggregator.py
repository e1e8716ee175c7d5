"""
Portfolio Aggregator - per-stock evaluation and the batch-level roll-up.

Per-stock work has no shared state, so it fans out over a thread pool; only
the final aggregation waits for every stock. A stock whose buy price cannot
be resolved is excluded from every portfolio mean rather than aborting the
batch.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd
from tqdm import tqdm

from scoreledger.config import DEFAULT_CONFIG, EngineConfig, ExecutionConfig
from scoreledger.errors import MissingPriceDataError
from scoreledger.judgement.classifier import classify, judgement_class
from scoreledger.market.market_data import MarketData
from scoreledger.models import PortfolioResult, ScoreRecord, StockResult
from scoreledger.pricing.buy_price import require_buy_price
from scoreledger.projection.hybrid import hybrid_projection
from scoreledger.ratings import star_display
from scoreledger.returns.annualizer import (
    actual_days,
    annualize,
    progress_vs_cost_of_capital,
)
from scoreledger.returns.return_calculator import (
    adjusted_target,
    next_ex_dividend_date,
    return_breakdown,
    return_series,
    target_percentage,
    window_end,
)
from scoreledger.trend.regression import (
    portfolio_trend,
    stock_trend,
    trend_confidence_threshold,
)
from scoreledger.Utils.dates import to_date, to_timestamp

RESULT_COLUMNS = [
    "Stock",
    "Score",
    "Buy Price",
    "Buy Date",
    "Target Price",
    "Target %",
    "Current Price",
    "Performance %",
    "Progress vs CoC %",
    "Annualized %",
    "Judgement",
    "Judgement Class",
    "Dividend Total",
    "Dividend Count",
    "Next Ex-Dividend",
    "Projected 90D %",
    "Projection Method",
    "Projection Confidence",
]


def _as_records(records: Union[pd.DataFrame, Iterable[Any]]) -> List[ScoreRecord]:
    if isinstance(records, pd.DataFrame):
        frame = records.copy()
        frame.columns = [str(c).strip().lower() for c in frame.columns]
        return [ScoreRecord.from_mapping(row) for _, row in frame.iterrows()]
    out = []
    for record in records:
        if isinstance(record, ScoreRecord):
            out.append(record)
        elif isinstance(record, Mapping):
            out.append(ScoreRecord.from_mapping(record))
        else:
            raise TypeError(f"Unsupported score record type: {type(record).__name__}")
    return out


def _mean(values: Iterable[Optional[float]]) -> Optional[float]:
    clean = [float(v) for v in values if v is not None and not pd.isna(v)]
    if not clean:
        return None
    return float(np.mean(clean))


# ==============================================================================
# PORTFOLIO MEASURES
# ==============================================================================


def days_elapsed(
    market: MarketData,
    stocks: Iterable[str],
    score_date: Any,
    config: Optional[EngineConfig] = None,
) -> int:
    """Days from the score date to the latest bar across stocks, capped at the window."""
    return actual_days(score_date, market.latest_market_date(list(stocks)), config)


def portfolio_target(
    results: Sequence[StockResult], config: Optional[EngineConfig] = None
) -> float:
    """Mean target % over the included stocks (default target when none resolve)."""
    cfg = config or DEFAULT_CONFIG
    mean = _mean(r.target_percentage for r in results)
    return cfg.default_target_pct if mean is None else mean


def portfolio_performance(results: Sequence[StockResult]) -> float:
    """Mean realised total return % over the included stocks (0.0 when none)."""
    mean = _mean(r.performance for r in results)
    return 0.0 if mean is None else mean


def _dividend_annotations(
    market: MarketData, stocks: Sequence[str], score_date: Any, cfg: EngineConfig
) -> Dict[pd.Timestamp, str]:
    end = to_timestamp(window_end(score_date, cfg))
    notes: Dict[pd.Timestamp, List[str]] = {}
    for stock in stocks:
        divs = market.dividends(stock)
        for ts, amount in divs.loc[divs.index <= end, "amount"].items():
            notes.setdefault(ts, []).append(f"{stock}: ${amount:.2f}")
    return {ts: ", ".join(parts) for ts, parts in notes.items()}


def portfolio_return_series(
    market: MarketData,
    stocks: Sequence[str],
    score_date: Any,
    config: Optional[EngineConfig] = None,
) -> pd.DataFrame:
    """
    Mean total return across stocks for every market date in the window.

    A date averages only the stocks with a bar that day. The score date is
    always present and counts 0% for any stock without a bar on it.

    Returns:
    --------
    pd.DataFrame
        Indexed by date with columns days, return_pct, stocks (number of
        stocks averaged) and dividends (ex-dividend notes, "" when none).
    """
    cfg = config or DEFAULT_CONFIG
    start = to_timestamp(score_date)

    per_stock = {}
    for stock in stocks:
        series = return_series(market, stock, score_date, config=cfg)
        if not series.empty:
            per_stock[stock] = series["return_pct"]

    if per_stock:
        panel = pd.DataFrame(per_stock)
        if start not in panel.index:
            panel.loc[start] = np.nan
            panel = panel.sort_index()
        panel.loc[start] = panel.loc[start].fillna(0.0)
    else:
        panel = pd.DataFrame(index=pd.DatetimeIndex([start]))

    out = pd.DataFrame(index=panel.index)
    out["days"] = (panel.index - start).days.astype(int)
    out["return_pct"] = panel.mean(axis=1, skipna=True).fillna(0.0)
    out["stocks"] = panel.notna().sum(axis=1).astype(int)

    notes = _dividend_annotations(market, list(per_stock), score_date, cfg)
    out["dividends"] = [notes.get(ts, "") for ts in out.index]
    out.index.name = "date"
    return out


# ==============================================================================
# PER-STOCK EVALUATION
# ==============================================================================


def evaluate_stock(
    market: MarketData,
    record: ScoreRecord,
    score_date: Any,
    days: Optional[int] = None,
    config: Optional[EngineConfig] = None,
    verbose: bool = False,
) -> StockResult:
    """
    Full per-stock output: prices, returns, projection and judgement.

    Parameters:
    -----------
    days : int, optional
        Elapsed days used for annualization, cost of capital and judgement.
        Defaults to this stock's own data coverage (capped at the window);
        evaluate_portfolio passes the portfolio-wide value.

    Raises:
    -------
    MissingPriceDataError
        No bar within the buy-price window of the score date.
    """
    cfg = config or DEFAULT_CONFIG
    stock = record.stock

    buy = require_buy_price(market, stock, score_date, cfg)
    if days is None:
        days = actual_days(score_date, market.latest_date(stock), cfg)

    breakdown = return_breakdown(market, stock, score_date, config=cfg)
    performance = breakdown.total_return if breakdown is not None else None
    target_pct = target_percentage(market, stock, record.target, score_date, cfg)

    trend = stock_trend(market, stock, score_date, config=cfg)
    projection = None
    if performance is not None and days < cfg.window_days:
        projection = hybrid_projection(
            market,
            record,
            score_date,
            cfg,
            verbose=verbose,
            trend=trend,
            fit_missing_trend=False,
        )

    annualized = annualize(performance, days, cfg) if performance is not None else None

    return StockResult(
        stock=stock,
        score=record.score,
        buy_price=buy,
        target_price=adjusted_target(market, stock, record.target, score_date),
        target_percentage=target_pct,
        current_price=breakdown.current_price if breakdown is not None else None,
        performance=performance,
        progress_vs_cost_of_capital=progress_vs_cost_of_capital(performance, days, cfg),
        annualized_return=annualized,
        judgement=classify(performance, target_pct, days, projection, cfg),
        dividend_total=breakdown.dividend_total if breakdown is not None else 0.0,
        dividend_count=breakdown.dividend_count if breakdown is not None else 0,
        next_ex_dividend=next_ex_dividend_date(market, stock, score_date, cfg),
        projection=projection,
        trend=trend,
        days_elapsed=days,
    )


def _evaluate_safely(market, record, score_date, days, cfg, verbose):
    try:
        return evaluate_stock(market, record, score_date, days, cfg, verbose)
    except MissingPriceDataError as exc:
        if verbose:
            print(f"  (Warning) {exc}; excluded from portfolio")
        return None


# ==============================================================================
# PORTFOLIO EVALUATION
# ==============================================================================


def evaluate_portfolio(
    records: Union[pd.DataFrame, Iterable[Any]],
    market: MarketData,
    score_date: Any,
    config: Optional[EngineConfig] = None,
    execution: Optional[ExecutionConfig] = None,
    verbose: bool = False,
) -> PortfolioResult:
    """
    Evaluate one score batch against the loaded market data.

    Parameters:
    -----------
    records : DataFrame or iterable of ScoreRecord / mappings
        The batch. DataFrame columns follow ScoreRecord field names.
    market : MarketData
        Already-loaded price and dividend history.
    score_date : date-like
        Publication date of the batch.
    execution : ExecutionConfig, optional
        Worker count and progress-bar controls.

    Returns:
    --------
    PortfolioResult
        Stocks keep their input order; unresolvable stocks are listed in
        ``excluded`` and left out of every mean.
    """
    cfg = config or DEFAULT_CONFIG
    execution = execution or ExecutionConfig()
    day0 = to_date(score_date)
    batch = _as_records(records)
    stocks = [r.stock for r in batch]

    days = days_elapsed(market, stocks, day0, cfg)
    latest = market.latest_market_date(stocks)

    if verbose:
        print(f"Evaluating {len(batch)} stocks scored {day0.isoformat()} (day {days})...")

    workers = max(1, execution.resolved_workers())
    results = []
    progress = tqdm(
        total=len(batch),
        desc=f"Score {day0.isoformat()}",
        unit="stock",
        disable=not execution.show_progress,
    )

    try:
        if workers == 1 or len(batch) <= 1:
            for order, record in enumerate(batch):
                results.append((order, _evaluate_safely(market, record, day0, days, cfg, verbose)))
                progress.update(1)
        else:
            futures = {}
            with ThreadPoolExecutor(max_workers=workers) as executor:
                for order, record in enumerate(batch):
                    future = executor.submit(
                        _evaluate_safely, market, record, day0, days, cfg, verbose
                    )
                    futures[future] = order

                for future in as_completed(futures):
                    results.append((futures[future], future.result()))
                    progress.update(1)
    finally:
        progress.close()

    results.sort(key=lambda item: item[0])
    included = [res for _, res in results if res is not None]
    excluded = [batch[order].stock for order, res in results if res is None]

    included_stocks = [r.stock for r in included]
    series = portfolio_return_series(market, included_stocks, day0, cfg)
    trend = portfolio_trend(series, cfg)
    threshold = trend_confidence_threshold(days)
    performance = portfolio_performance(included)

    if verbose:
        if excluded:
            print(f"  (Warning) {len(excluded)} stock(s) excluded: {', '.join(excluded)}")
        if trend is None:
            print("  (Warning) Insufficient data points for a portfolio trend")
        print(f"  Portfolio performance: {performance:.1f}% over {days} days")

    return PortfolioResult(
        score_date=day0,
        stocks=included,
        excluded=excluded,
        target_percentage=portfolio_target(included, cfg),
        performance=performance,
        annualized_return=annualize(performance, days, cfg),
        progress_vs_cost_of_capital=progress_vs_cost_of_capital(performance, days, cfg),
        days_elapsed=days,
        latest_market_date=latest,
        trend=trend,
        trend_threshold=threshold,
        metadata={"return_series": series},
    )


# ==============================================================================
# EXPORT / SUMMARY
# ==============================================================================


def results_to_frame(
    result: PortfolioResult, ratings: Optional[Mapping[str, Any]] = None
) -> pd.DataFrame:
    """
    One row per included stock with the published per-stock outputs.

    ratings maps stock to its average star rating (see average_stars); when
    given, a "Stars" column with the moon display is appended.
    """
    rows = []
    for res in result.stocks:
        projection = res.projection
        rows.append(
            {
                "Stock": res.stock,
                "Score": res.score,
                "Buy Price": res.buy_price.price,
                "Buy Date": res.buy_price.date_used,
                "Target Price": res.target_price,
                "Target %": res.target_percentage,
                "Current Price": res.current_price,
                "Performance %": res.performance,
                "Progress vs CoC %": res.progress_vs_cost_of_capital,
                "Annualized %": res.annualized_return,
                "Judgement": str(res.judgement),
                "Judgement Class": judgement_class(res.judgement),
                "Dividend Total": res.dividend_total,
                "Dividend Count": res.dividend_count,
                "Next Ex-Dividend": res.next_ex_dividend,
                "Projected 90D %": projection.projected_90_day_performance if projection else np.nan,
                "Projection Method": projection.method if projection else None,
                "Projection Confidence": projection.confidence if projection else np.nan,
            }
        )
    frame = pd.DataFrame(rows, columns=RESULT_COLUMNS)
    if ratings is not None:
        frame["Stars"] = [star_display(ratings.get(stock)) for stock in frame["Stock"]]
    return frame


def summarize_batches(results: Iterable[PortfolioResult]) -> Dict[str, Any]:
    """
    Summary across several score batches.

    Returns average 90-day performance, average annualized return, the
    number of batches with positive performance and the batch count.
    """
    batches = list(results)
    performances = [r.performance for r in batches if r.performance is not None]
    annualized = [r.annualized_return for r in batches if r.annualized_return is not None]
    return {
        "average_performance": _mean(performances) or 0.0,
        "average_annualized": _mean(annualized) or 0.0,
        "positive_count": sum(1 for p in performances if p > 0),
        "batch_count": len(batches),
    }
