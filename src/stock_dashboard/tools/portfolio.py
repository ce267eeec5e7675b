"""Portfolio valuation, allocation and annualized return."""

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from time import perf_counter
from typing import Any

from stock_dashboard.data.finnhub_client import MarketDataClient
from stock_dashboard.models import (
    Holding,
    HoldingValuation,
    PortfolioSummary,
    Profile,
    Quote,
)
from stock_dashboard.utils.provenance import build_error_response, build_meta, build_provenance
from stock_dashboard.utils.returns import portfolio_cash_flows, xirr
from stock_dashboard.utils.sectors import SectorClassifier

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _allocation(valuations: Iterable[HoldingValuation], key: str, total_value: float) -> dict[str, float]:
    """Percent of total value per label. Empty when nothing carries value."""
    allocation: dict[str, float] = {}
    if total_value <= 0:
        return allocation
    for v in valuations:
        if v.total_value <= 0:
            continue
        label = getattr(v, key)
        allocation[label] = allocation.get(label, 0.0) + v.total_value / total_value * 100
    return allocation


class PortfolioAnalytics:
    """
    Turn stored holdings into a valued portfolio.

    Watchlist entries (zero shares) are listed separately and excluded from
    every figure. A position whose price cannot be fetched is still reported,
    valued at its average price.
    """

    def __init__(
        self,
        client: MarketDataClient,
        classifier: SectorClassifier | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.client = client
        self.classifier = classifier or SectorClassifier()
        self._clock = clock

    async def value_holding(self, holding: Holding) -> HoldingValuation:
        """Price and classify one position. Never raises on fetch failures."""
        quote_raw, profile_raw = await asyncio.gather(
            self.client.quote(holding.symbol),
            self.client.profile(holding.symbol),
            return_exceptions=True,
        )

        current_price = 0.0
        if isinstance(quote_raw, BaseException):
            logger.warning(f"{holding.symbol}: quote unavailable ({quote_raw}); using average price")
        else:
            current_price = Quote.from_payload(quote_raw or {}).price

        price_available = current_price > 0
        if not price_available:
            current_price = holding.avg_price

        if isinstance(profile_raw, BaseException):
            logger.warning(f"{holding.symbol}: profile unavailable ({profile_raw})")
            profile_raw = {}
        profile = Profile.from_payload(profile_raw)
        assignment = self.classifier.classify(holding.symbol, profile.sector, profile.industry)

        total_value = holding.shares * current_price
        total_cost = holding.cost
        gain_loss = total_value - total_cost

        return HoldingValuation(
            symbol=holding.symbol,
            company_name=profile.name or holding.symbol,
            shares=holding.shares,
            avg_price=holding.avg_price,
            current_price=current_price,
            total_value=total_value,
            total_cost=total_cost,
            gain_loss=gain_loss,
            gain_loss_percent=gain_loss / total_cost * 100 if total_cost > 0 else 0.0,
            sector=assignment.sector,
            industry=assignment.industry,
            purchase_date=holding.purchase_date,
            price_available=price_available,
        )

    async def summarize(self, holdings: Iterable[Holding]) -> PortfolioSummary:
        holdings = list(holdings)
        positions = [h for h in holdings if not h.is_watchlist]
        watchlist = tuple(h.symbol for h in holdings if h.is_watchlist)

        valuations = list(await asyncio.gather(*(self.value_holding(h) for h in positions)))

        total_value = sum(v.total_value for v in valuations)
        total_cost = sum(v.total_cost for v in valuations)
        total_gain = total_value - total_cost

        flows, dates = portfolio_cash_flows(valuations, self._clock())

        return PortfolioSummary(
            total_value=total_value,
            total_cost=total_cost,
            total_gain=total_gain,
            total_gain_percent=total_gain / total_cost * 100 if total_cost > 0 else 0.0,
            xirr=xirr(flows, dates),
            sector_allocation=_allocation(valuations, "sector", total_value),
            industry_allocation=_allocation(valuations, "industry", total_value),
            holdings=tuple(valuations),
            watchlist=watchlist,
        )


def _round_or_none(x: float | None, ndigits: int = 2) -> float | None:
    if x is None:
        return None
    return round(x, ndigits)


async def portfolio_summary(
    client: MarketDataClient,
    holdings: list[dict[str, Any] | str],
    analytics: PortfolioAnalytics | None = None,
) -> dict[str, Any]:
    """
    Value a portfolio given as stored records.

    Args:
        client: Shared market data client
        holdings: Records of {symbol, shares, avgPrice, purchaseDate}; a bare
            symbol string is a watchlist entry

    Returns:
        Dict with totals, allocations, XIRR and per-position detail
    """
    start_time = perf_counter()

    try:
        parsed = [Holding.from_record(record) for record in holdings]
    except (ValueError, TypeError, AttributeError) as e:
        return build_error_response(
            error_type="invalid_parameters",
            message=str(e),
        )

    analytics = analytics or PortfolioAnalytics(client)
    summary = await analytics.summarize(parsed)

    warnings = [
        f"{v.symbol}: live price unavailable, valued at average price"
        for v in summary.holdings
        if not v.price_available
    ]
    if summary.xirr is None and summary.holdings:
        warnings.append("XIRR could not be computed for these cash flows")

    data = summary.to_dict()
    for key in ("total_value", "total_cost", "total_gain", "total_gain_percent", "xirr"):
        data[key] = _round_or_none(data[key])
    data["sector_allocation"] = {k: round(v, 2) for k, v in summary.sector_allocation.items()}
    data["industry_allocation"] = {k: round(v, 2) for k, v in summary.industry_allocation.items()}

    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "meta": build_meta("portfolio_summary", duration_ms),
        "data_provenance": {
            "prices": build_provenance(warnings=warnings),
        },
        **data,
    }
