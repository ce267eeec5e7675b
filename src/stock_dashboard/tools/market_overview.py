"""Market overview: major index quotes and US market session state."""

import asyncio
import logging
from datetime import datetime
from time import perf_counter
from typing import Any

import pytz

from stock_dashboard.data.errors import FETCH_ERRORS
from stock_dashboard.data.finnhub_client import MarketDataClient
from stock_dashboard.models import Quote
from stock_dashboard.utils.provenance import build_meta, build_provenance

logger = logging.getLogger(__name__)

# (index symbol, display name, ETF used when the index has no quote)
MARKET_INDICES = (
    ("^GSPC", "S&P 500", "SPY"),
    ("^IXIC", "NASDAQ", "QQQ"),
    ("^DJI", "Dow Jones", "DIA"),
)


def get_market_state(tz: str = "America/New_York") -> dict[str, str]:
    """
    Determine market state. Clock-based only (no holiday calendar).

    Args:
        tz: Timezone (default: America/New_York)

    Returns:
        Dict with state, method, and checked_at timestamp
    """
    eastern = pytz.timezone(tz)
    now = datetime.now(eastern)

    # Weekends
    if now.weekday() >= 5:
        state = "closed"
    else:
        time_minutes = now.hour * 60 + now.minute

        if time_minutes < 4 * 60:
            state = "closed"
        elif time_minutes < 9 * 60 + 30:
            state = "pre_market"
        elif time_minutes < 16 * 60:
            state = "regular"
        elif time_minutes < 20 * 60:
            state = "after_hours"
        else:
            state = "closed"

    return {
        "state": state,
        "method": "clock_only_no_holidays",
        "checked_at": now.isoformat(),
    }


async def _priced_quote(client: MarketDataClient, symbol: str) -> Quote | None:
    try:
        quote = Quote.from_payload(await client.quote(symbol) or {})
    except FETCH_ERRORS as e:
        logger.info(f"Quote for {symbol} unavailable: {e}")
        return None
    return quote if quote.price else None


async def _index_snapshot(
    client: MarketDataClient,
    symbol: str,
    name: str,
    fallback: str,
) -> dict[str, Any] | None:
    source = symbol
    quote = await _priced_quote(client, symbol)
    if quote is None:
        source = fallback
        quote = await _priced_quote(client, fallback)
    if quote is None:
        return None
    return {
        "name": name,
        "symbol": symbol,
        "source_symbol": source,
        "value": round(quote.price, 2),
        "change": round(quote.change, 2),
        "change_percent": round(quote.change_percent, 2),
        "positive": quote.change >= 0,
    }


async def market_overview(client: MarketDataClient) -> dict[str, Any]:
    """
    S&P 500, NASDAQ and Dow quotes, falling back to tracking ETFs.

    Indices with neither quote available are omitted.
    """
    start_time = perf_counter()

    snapshots = await asyncio.gather(
        *(_index_snapshot(client, symbol, name, fallback) for symbol, name, fallback in MARKET_INDICES)
    )
    indices = [s for s in snapshots if s is not None]

    warnings: list[str] = []
    if len(indices) < len(MARKET_INDICES):
        warnings.append("Some market indices are unavailable")

    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "meta": build_meta("market_overview", duration_ms),
        "data_provenance": {
            "indices": build_provenance(warnings=warnings),
        },
        "market_state": get_market_state(),
        "indices": indices,
    }
