"""Symbol search tool."""

from time import perf_counter
from typing import Any

from stock_dashboard.data.errors import FETCH_ERRORS, RateLimitedError
from stock_dashboard.data.finnhub_client import MarketDataClient
from stock_dashboard.utils.provenance import build_error_response, build_meta, build_provenance
from stock_dashboard.utils.sanitize import sanitize_text

MIN_QUERY_LENGTH = 2
MAX_RESULTS = 8


async def symbol_search(
    client: MarketDataClient,
    query: str,
    limit: int = MAX_RESULTS,
) -> dict[str, Any]:
    """
    Search for stock symbols.

    Queries shorter than two characters return no results without a request.

    Args:
        client: Shared market data client
        query: Search query (company name or ticker)
        limit: Maximum number of results (default: 8)

    Returns:
        Dict with search results and exact match info
    """
    start_time = perf_counter()
    query = (query or "").strip()

    results: list[dict[str, Any]] = []
    if len(query) >= MIN_QUERY_LENGTH:
        try:
            data = await client.search(query)
        except RateLimitedError as e:
            return build_error_response(
                error_type="rate_limited",
                message="Search rate limited. Please wait a moment.",
                retry_after_seconds=e.retry_after,
            )
        except FETCH_ERRORS as e:
            return build_error_response(
                error_type="data_unavailable",
                message=f"Search temporarily unavailable: {e}",
            )

        for item in (data or {}).get("result", [])[: max(0, min(limit, MAX_RESULTS))]:
            results.append(
                {
                    "symbol": item.get("symbol"),
                    "name": sanitize_text(item.get("description")),
                    "type": item.get("type") or None,
                }
            )

    # Find exact match: compare normalized query to symbol
    normalized_query = query.upper()
    exact_match = next(
        (r["symbol"] for r in results if r["symbol"] == normalized_query),
        None,
    )

    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "meta": build_meta("symbol_search", duration_ms),
        "data_provenance": {
            "search": build_provenance(query=query),
        },
        "results": results,
        "exact_match": exact_match,
    }
