"""Single-stock detail: assembly, stale-load handling and the detail tool."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone
from time import perf_counter
from typing import Any

import numpy as np

from stock_dashboard.data.errors import InvalidSymbolError, MarketDataError, RateLimitedError
from stock_dashboard.data.finnhub_client import MarketDataClient, normalize_symbol
from stock_dashboard.models import Metrics, Profile, QuarterlyData, Quote, StockDetail, safe_float
from stock_dashboard.tools import synthetic
from stock_dashboard.tools.signals import analysis_points, score
from stock_dashboard.utils.provenance import build_error_response, build_meta, build_provenance
from stock_dashboard.utils.sectors import SectorClassifier

logger = logging.getLogger(__name__)

REVENUE_CONCEPTS = {
    "us-gaap:Revenues",
    "us-gaap:RevenueFromContractWithCustomerExcludingAssessedTax",
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def extract_quarterly(earnings: Any, financials: Any) -> QuarterlyData:
    """
    Quarterly figures from earnings history (newest first) and as-reported filings.

    Growth is (latest EPS - previous EPS) / previous EPS * 100, only when two
    periods exist and the previous EPS is non-zero.
    """
    eps_latest = eps_previous = growth = revenue = None

    if isinstance(earnings, list) and earnings:
        eps_latest = _eps(earnings[0])
        if len(earnings) > 1:
            eps_previous = _eps(earnings[1])
        if eps_latest is not None and eps_previous:
            growth = (eps_latest - eps_previous) / eps_previous * 100

    filings = financials.get("data") if isinstance(financials, dict) else None
    if filings:
        line_items = ((filings[0] or {}).get("report") or {}).get("ic") or []
        for item in line_items:
            if item.get("concept") in REVENUE_CONCEPTS:
                revenue = safe_float(item.get("value"))
                break

    return QuarterlyData(
        revenue=revenue,
        earnings=eps_latest,
        quarterly_eps=eps_latest,
        earnings_growth=growth,
    )


def _eps(period: Any) -> float | None:
    if not isinstance(period, dict):
        return None
    value = period.get("epsActual")
    if value is None:
        value = period.get("actual")
    return safe_float(value)


class FundamentalsAssembler:
    """
    Merge quote, profile, metrics, earnings and filings into a StockDetail.

    The five fetches run concurrently and never cancel each other. The quote
    is mandatory: if it fails or prices at zero the symbol is invalid. Every
    other piece degrades to an empty default.
    """

    def __init__(
        self,
        client: MarketDataClient,
        classifier: SectorClassifier | None = None,
        rng: np.random.Generator | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.client = client
        self.classifier = classifier or SectorClassifier()
        self.rng = rng if rng is not None else np.random.default_rng()
        self._clock = clock

    async def assemble(self, symbol: str) -> StockDetail:
        """
        Build a fresh StockDetail for a symbol.

        Raises:
            InvalidSymbolError: Quote missing, failed, rate limited or priced at zero
        """
        symbol = normalize_symbol(symbol)
        if not symbol:
            raise InvalidSymbolError(symbol, "empty symbol")

        quote_raw, profile_raw, metrics_raw, earnings_raw, financials_raw = await asyncio.gather(
            self.client.quote(symbol),
            self.client.profile(symbol),
            self.client.metrics(symbol),
            self.client.earnings(symbol),
            self.client.financials(symbol),
            return_exceptions=True,
        )

        if isinstance(quote_raw, BaseException):
            retry_after = quote_raw.retry_after if isinstance(quote_raw, RateLimitedError) else None
            raise InvalidSymbolError(symbol, str(quote_raw), retry_after=retry_after) from quote_raw
        quote = Quote.from_payload(quote_raw or {})
        if quote.price == 0:
            raise InvalidSymbolError(symbol, "no price data")

        profile_payload = self._optional(symbol, "profile", profile_raw, {})
        metrics_payload = self._optional(symbol, "metrics", metrics_raw, {"metric": {}})
        earnings_payload = self._optional(symbol, "earnings", earnings_raw, [])
        financials_payload = self._optional(symbol, "financials", financials_raw, {"data": []})

        profile = Profile.from_payload(profile_payload)
        profile = replace(
            profile,
            exchange=profile.exchange or "Unknown",
            country=profile.country or "US",
        )
        metrics = Metrics.from_payload(metrics_payload)
        assignment = self.classifier.classify(symbol, profile.sector, profile.industry)

        return StockDetail(
            symbol=symbol,
            name=profile.name or f"{symbol} Corporation",
            quote=quote,
            profile=profile,
            metrics=metrics,
            sector=assignment.sector,
            industry=assignment.industry,
            quarterly=extract_quarterly(earnings_payload, financials_payload),
            risk_metrics=synthetic.risk_metrics(quote, metrics),
            technicals=synthetic.technical_indicators(quote, self.rng),
            news_metrics=synthetic.news_metrics(quote, self.rng),
            insider_activity=synthetic.insider_activity(self.rng),
            fetched_at=self._clock(),
        )

    def _optional(self, symbol: str, kind: str, result: Any, default: Any) -> Any:
        if isinstance(result, BaseException):
            logger.warning(f"{symbol}: {kind} unavailable, using defaults ({result})")
            return default
        return result if result else default


class StockView:
    """
    The stock currently on screen.

    Each load is tagged with a generation number. When a newer load starts
    before an older one finishes, the older result is discarded (returns
    None) instead of replacing what is shown.

    Meant for a single viewer, such as one dashboard session. The MCP tools
    serve many independent callers, so get_stock_detail assembles directly
    and never shares a view between requests.
    """

    def __init__(self, assembler: FundamentalsAssembler):
        self.assembler = assembler
        self.current: StockDetail | None = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    async def load(self, symbol: str) -> StockDetail | None:
        self._generation += 1
        generation = self._generation
        try:
            detail = await self.assembler.assemble(symbol)
        except MarketDataError:
            if generation != self._generation:
                logger.debug(f"Discarding stale failure for {symbol} (generation {generation})")
                return None
            raise

        if generation != self._generation:
            logger.debug(f"Discarding stale result for {symbol} (generation {generation})")
            return None
        self.current = detail
        return detail


def assembly_error_response(symbol: str, error: MarketDataError) -> dict[str, Any]:
    """Error response for a failed assembly. A rate-limited quote reports as rate_limited."""
    if isinstance(error, InvalidSymbolError) and isinstance(error.__cause__, RateLimitedError):
        return build_error_response(
            error_type="rate_limited",
            message=str(error.__cause__),
            symbol=symbol,
            retry_after_seconds=error.retry_after,
        )
    if isinstance(error, InvalidSymbolError):
        return build_error_response(
            error_type="invalid_symbol",
            message=str(error),
            symbol=symbol,
        )
    return build_error_response(
        error_type="data_unavailable",
        message=f"Failed to fetch data: {error}",
        symbol=symbol,
    )


async def stock_detail(
    client: MarketDataClient,
    symbol: str,
    assembler: FundamentalsAssembler | None = None,
) -> dict[str, Any]:
    """
    Full stock view: merged fundamentals, risk, recommendation and key points.

    Args:
        client: Shared market data client
        symbol: Stock ticker symbol
        assembler: Optional preconfigured assembler (seeded rng, custom classifier)

    Returns:
        Dict with detail, signals and analysis, or an error response
    """
    start_time = perf_counter()
    assembler = assembler or FundamentalsAssembler(client)

    try:
        detail = await assembler.assemble(symbol)
    except MarketDataError as e:
        return assembly_error_response(symbol, e)

    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "meta": build_meta("stock_detail", duration_ms),
        "data_provenance": {
            "fundamentals": build_provenance(as_of=detail.fetched_at),
            "illustrative": build_provenance(
                source="generated",
                as_of=detail.fetched_at,
                synthetic=True,
                fields=list(detail.synthetic_fields),
                warnings=["Technical, news and insider figures are illustrative, not measured"],
            ),
        },
        "detail": detail.to_dict(),
        "signals": score(detail).to_dict(),
        "analysis": analysis_points(detail),
    }
