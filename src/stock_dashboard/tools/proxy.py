"""Plain HTTP pass-through payloads for search and quote."""

import logging
from typing import Any

from stock_dashboard.data.errors import FETCH_ERRORS
from stock_dashboard.data.finnhub_client import MarketDataClient, normalize_symbol
from stock_dashboard.utils.provenance import utc_now_iso

logger = logging.getLogger(__name__)


async def search_payload(client: MarketDataClient, query: str | None) -> tuple[int, dict[str, Any]]:
    """(status, body) for GET /search/{query}."""
    query = (query or "").strip()
    if not query:
        return 400, {"error": "Search query is required"}

    try:
        data = await client.search(query)
    except FETCH_ERRORS as e:
        logger.error(f"Stock search failed for {query!r}: {e}")
        return 500, {"error": "Failed to search stocks", "message": str(e)}

    return 200, {
        "results": (data or {}).get("result", []),
        "timestamp": utc_now_iso(),
    }


async def quote_payload(client: MarketDataClient, symbol: str | None) -> tuple[int, dict[str, Any]]:
    """(status, body) for GET /quote/{symbol}."""
    symbol = normalize_symbol(symbol or "")
    if not symbol:
        return 400, {"error": "Stock symbol is required"}

    try:
        quote = await client.quote(symbol)
    except FETCH_ERRORS as e:
        logger.error(f"Stock quote failed for {symbol}: {e}")
        return 500, {"error": "Failed to get stock quote", "message": str(e)}

    return 200, {
        "symbol": symbol,
        "quote": quote,
        "timestamp": utc_now_iso(),
    }
