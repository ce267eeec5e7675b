"""Peer companies tool."""

import asyncio
import logging
from time import perf_counter
from typing import Any

from stock_dashboard.data.errors import FETCH_ERRORS, RateLimitedError
from stock_dashboard.data.finnhub_client import MarketDataClient, normalize_symbol
from stock_dashboard.models import Profile, Quote
from stock_dashboard.utils.provenance import build_error_response, build_meta, build_provenance

logger = logging.getLogger(__name__)

MAX_PEERS = 5


async def _peer_snapshot(client: MarketDataClient, peer: str) -> dict[str, Any] | None:
    quote_raw, profile_raw = await asyncio.gather(
        client.quote(peer, max_retries=1),
        client.profile(peer, max_retries=1),
        return_exceptions=True,
    )
    if isinstance(quote_raw, BaseException):
        logger.info(f"Dropping peer {peer}: {quote_raw}")
        return None

    quote = Quote.from_payload(quote_raw or {})
    if quote.price == 0:
        logger.info(f"Dropping peer {peer}: no price data")
        return None
    profile = Profile.from_payload({} if isinstance(profile_raw, BaseException) else profile_raw)
    return {
        "symbol": peer,
        "name": profile.name or peer,
        "price": quote.price,
        "change": quote.change,
        "change_percent": quote.change_percent,
        "market_cap_b": profile.market_cap_b,
    }


async def stock_peers(client: MarketDataClient, symbol: str) -> dict[str, Any]:
    """
    Quote snapshots for up to five peer companies.

    Peers whose quote cannot be fetched or prices at zero are dropped rather
    than failing the whole list.
    """
    start_time = perf_counter()
    normalized_symbol = normalize_symbol(symbol)

    try:
        peer_symbols = await client.peers(normalized_symbol)
    except RateLimitedError as e:
        return build_error_response(
            error_type="rate_limited",
            message=str(e),
            symbol=symbol,
            retry_after_seconds=e.retry_after,
        )
    except FETCH_ERRORS as e:
        return build_error_response(
            error_type="data_unavailable",
            message=f"Failed to fetch peers: {e}",
            symbol=symbol,
        )

    candidates = [
        normalize_symbol(p)
        for p in (peer_symbols or [])
        if isinstance(p, str) and normalize_symbol(p) != normalized_symbol
    ][:MAX_PEERS]

    snapshots = await asyncio.gather(*(_peer_snapshot(client, p) for p in candidates))
    peers = [s for s in snapshots if s is not None]

    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "meta": build_meta("stock_peers", duration_ms),
        "data_provenance": {
            "peers": build_provenance(dropped=len(candidates) - len(peers)),
        },
        "symbol": normalized_symbol,
        "peers": peers,
    }
