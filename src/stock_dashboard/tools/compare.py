"""Side-by-side comparison of up to five stocks."""

import asyncio
import logging
from collections.abc import Callable
from time import perf_counter
from typing import Any

from stock_dashboard.data.errors import MarketDataError
from stock_dashboard.data.finnhub_client import MarketDataClient, normalize_symbol
from stock_dashboard.models import StockDetail
from stock_dashboard.tools.signals import score
from stock_dashboard.tools.stock_detail import FundamentalsAssembler, assembly_error_response
from stock_dashboard.utils.provenance import build_error_response, build_meta, build_provenance

logger = logging.getLogger(__name__)

MAX_COMPARE = 5

# (name, higher_is_better, getter)
COMPARED_METRICS: tuple[tuple[str, bool, Callable[[StockDetail], float | None]], ...] = (
    ("market_cap_b", True, lambda d: d.market_cap_b),
    ("pe_ratio", False, lambda d: d.metrics.pe_ratio),
    ("peg_ratio", False, lambda d: d.metrics.peg_ratio),
    ("pb_ratio", False, lambda d: d.metrics.pb_ratio),
    ("ps_ratio", False, lambda d: d.metrics.ps_ratio),
    ("eps", True, lambda d: d.metrics.eps),
    ("roe", True, lambda d: d.metrics.roe),
    ("roa", True, lambda d: d.metrics.roa),
    ("gross_margin", True, lambda d: d.metrics.gross_margin),
    ("operating_margin", True, lambda d: d.metrics.operating_margin),
    ("profit_margin", True, lambda d: d.metrics.profit_margin),
    ("dividend_yield", True, lambda d: d.metrics.dividend_yield),
    ("debt_to_equity", False, lambda d: d.metrics.debt_to_equity),
    ("current_ratio", True, lambda d: d.metrics.current_ratio),
    ("beta", False, lambda d: d.metrics.beta),
    ("analyst_target", True, lambda d: d.metrics.analyst_target),
    ("volume", True, lambda d: d.quote.volume),
    ("avg_volume", True, lambda d: d.metrics.avg_volume),
    ("quarterly_revenue", True, lambda d: d.quarterly.revenue),
    ("quarterly_eps", True, lambda d: d.quarterly.quarterly_eps),
    ("earnings_growth", True, lambda d: d.quarterly.earnings_growth),
)


def metric_marks(values: dict[str, float | None], higher_is_better: bool) -> dict[str, list[str]]:
    """
    Symbols holding the best and worst value of one metric.

    Missing values are ignored. Nothing is marked with fewer than two values.
    Ties are all marked; when every value is equal they are all best.
    """
    present = {symbol: v for symbol, v in values.items() if v is not None}
    if len(present) < 2:
        return {"best": [], "worst": []}

    best_value = max(present.values()) if higher_is_better else min(present.values())
    worst_value = min(present.values()) if higher_is_better else max(present.values())
    return {
        "best": [s for s, v in present.items() if v == best_value],
        "worst": [s for s, v in present.items() if v == worst_value and v != best_value],
    }


def _first_max(details: list[StockDetail], key: Callable[[StockDetail], float]) -> StockDetail:
    """Highest-keyed stock; the earliest wins ties."""
    best = details[0]
    for detail in details[1:]:
        if key(detail) > key(best):
            best = detail
    return best


def _long_term_points(detail: StockDetail) -> int:
    m = detail.metrics
    return (
        int(bool(m.pe_ratio) and m.pe_ratio < 20)
        + int(bool(m.roe) and m.roe > 15)
        + int(bool(m.debt_to_equity) and m.debt_to_equity < 0.5)
    )


def pick_leaders(details: list[StockDetail]) -> dict[str, str | None]:
    """
    Headline picks across the compared stocks.

    best_today: largest daily change percent
    best_long_term: most of P/E < 20, ROE > 15, D/E < 0.5
    best_dividend: highest dividend yield (None when no stock pays one)
    best_short_term: largest absolute daily move
    """
    if not details:
        return {"best_today": None, "best_long_term": None, "best_dividend": None, "best_short_term": None}

    payers = [d for d in details if d.metrics.dividend_yield]
    return {
        "best_today": _first_max(details, lambda d: d.quote.change_percent).symbol,
        "best_long_term": _first_max(details, _long_term_points).symbol,
        "best_dividend": _first_max(payers, lambda d: d.metrics.dividend_yield).symbol if payers else None,
        "best_short_term": _first_max(details, lambda d: abs(d.quote.change_percent)).symbol,
    }


def _row(detail: StockDetail) -> dict[str, Any]:
    return {
        "symbol": detail.symbol,
        "name": detail.name,
        "price": detail.price,
        "change": detail.quote.change,
        "change_percent": detail.quote.change_percent,
        "sector": detail.sector,
        "industry": detail.industry,
        "metrics": {name: getter(detail) for name, _, getter in COMPARED_METRICS},
        "signals": score(detail).to_dict(),
    }


async def compare_stocks(
    client: MarketDataClient,
    symbols: list[str],
    assembler: FundamentalsAssembler | None = None,
) -> dict[str, Any]:
    """
    Compare up to five stocks on fundamentals, signals and headline picks.

    Args:
        client: Shared market data client
        symbols: Tickers to compare (1 to 5, no duplicates)
        assembler: Optional preconfigured assembler

    Returns:
        Dict with one row per stock, best/worst marks per metric and
        headline picks. Symbols that fail to load are listed under `failed`.
    """
    start_time = perf_counter()

    normalized = [normalize_symbol(s) for s in symbols if isinstance(s, str)]
    normalized = [s for s in normalized if s]
    if not normalized:
        return build_error_response(
            error_type="invalid_parameters",
            message="At least one symbol is required",
        )
    if len(normalized) > MAX_COMPARE:
        return build_error_response(
            error_type="invalid_parameters",
            message=f"Maximum {MAX_COMPARE} stocks can be compared",
        )
    seen: set[str] = set()
    for symbol in normalized:
        if symbol in seen:
            return build_error_response(
                error_type="invalid_parameters",
                message=f"{symbol} is already in comparison",
                symbol=symbol,
            )
        seen.add(symbol)

    assembler = assembler or FundamentalsAssembler(client)
    results = await asyncio.gather(
        *(assembler.assemble(s) for s in normalized),
        return_exceptions=True,
    )

    details: list[StockDetail] = []
    failures: list[tuple[str, MarketDataError]] = []
    for symbol, result in zip(normalized, results):
        if isinstance(result, MarketDataError):
            failures.append((symbol, result))
        elif isinstance(result, BaseException):
            raise result
        else:
            details.append(result)

    if not details:
        symbol, error = failures[0]
        return assembly_error_response(symbol, error)

    failed = []
    for symbol, error in failures:
        logger.warning(f"Dropping {symbol} from comparison: {error}")
        failed.append(
            {
                "symbol": symbol,
                "error_type": assembly_error_response(symbol, error)["error_type"],
                "message": str(error),
            }
        )

    marks = {
        name: metric_marks({d.symbol: getter(d) for d in details}, higher)
        for name, higher, getter in COMPARED_METRICS
    }

    duration_ms = (perf_counter() - start_time) * 1000
    fetched_at = max(d.fetched_at for d in details)

    return {
        "meta": build_meta("compare_stocks", duration_ms),
        "data_provenance": {
            "fundamentals": build_provenance(
                as_of=fetched_at,
                warnings=[f"{f['symbol']}: {f['message']}" for f in failed],
            ),
        },
        "symbols": [d.symbol for d in details],
        "stocks": [_row(d) for d in details],
        "marks": marks,
        "picks": pick_leaders(details),
        "failed": failed,
    }
