"""Finnhub market data client built on the retrying fetcher."""

import logging
import os
from datetime import date, datetime
from typing import Any
from urllib.parse import urlencode

from stock_dashboard.data.fetcher import RetryingFetcher

logger = logging.getLogger(__name__)

_base_url = os.environ.get("FINNHUB_BASE_URL", "https://finnhub.io/api/v1")

# Cache TTLs per data kind (seconds)
DEFAULT_TTLS: dict[str, float] = {
    "quote": float(os.environ.get("QUOTE_TTL", "300")),
    "profile": float(os.environ.get("QUOTE_TTL", "300")),
    "metrics": float(os.environ.get("QUOTE_TTL", "300")),
    "earnings": float(os.environ.get("QUOTE_TTL", "300")),
    "financials": float(os.environ.get("QUOTE_TTL", "300")),
    "peers": float(os.environ.get("PEERS_TTL", "600")),
    "candles": float(os.environ.get("CANDLES_TTL", "1800")),
    "news": float(os.environ.get("NEWS_TTL", "1800")),
    "search": float(os.environ.get("SEARCH_TTL", "300")),
}

# Payloads returned when no API key is configured
_EMPTY_PAYLOADS: dict[str, Any] = {
    "quote": {},
    "profile": {},
    "metrics": {"metric": {}},
    "earnings": [],
    "financials": {"data": []},
    "peers": [],
    "candles": {"s": "no_data"},
    "news": [],
    "search": {"result": []},
}


def normalize_symbol(symbol: str) -> str:
    """Uppercase and strip a ticker symbol."""
    return symbol.upper().strip()


class MarketDataClient:
    """
    Typed access to the provider endpoints.

    Every request goes through a shared RetryingFetcher, so responses are
    cached by URL and rate-limited per endpoint path. The client is meant to
    be constructed once per process and passed to the tools by reference.

    Without an API key every method returns an empty payload and no request
    is made.
    """

    def __init__(
        self,
        fetcher: RetryingFetcher | None = None,
        api_key: str | None = None,
        base_url: str = _base_url,
        ttls: dict[str, float] | None = None,
    ):
        self.fetcher = fetcher if fetcher is not None else RetryingFetcher()
        if api_key is None:
            api_key = os.environ.get("FINNHUB_API_KEY", "")
        self._api_key = api_key.strip()
        self.base_url = base_url.rstrip("/")
        self.ttls = {**DEFAULT_TTLS, **(ttls or {})}
        self._warned_missing_key = False

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key)

    def build_url(self, path: str, **params: Any) -> str:
        """Build a full request URL with the API token appended."""
        query = {k: v for k, v in params.items() if v is not None}
        query["token"] = self._api_key
        return f"{self.base_url}{path}?{urlencode(query)}"

    async def _get(
        self,
        kind: str,
        path: str,
        max_retries: int | None = None,
        **params: Any,
    ) -> Any:
        if not self.has_api_key:
            if not self._warned_missing_key:
                logger.warning("FINNHUB_API_KEY not configured; returning empty market data")
                self._warned_missing_key = True
            return _EMPTY_PAYLOADS[kind]

        url = self.build_url(path, **params)
        kwargs: dict[str, Any] = {"ttl": self.ttls[kind]}
        if max_retries is not None:
            kwargs["max_retries"] = max_retries
        return await self.fetcher.fetch_with_retry(url, **kwargs)

    async def quote(self, symbol: str, max_retries: int | None = None) -> dict[str, Any]:
        """Quote: {c, o, h, l, pc, d, dp, v, t}."""
        return await self._get("quote", "/quote", max_retries, symbol=normalize_symbol(symbol))

    async def profile(self, symbol: str, max_retries: int | None = None) -> dict[str, Any]:
        """Company profile: {name, exchange, marketCapitalization, finnhubIndustry, ...}."""
        return await self._get(
            "profile", "/stock/profile2", max_retries, symbol=normalize_symbol(symbol)
        )

    async def metrics(self, symbol: str, max_retries: int | None = None) -> dict[str, Any]:
        """Basic financials: {metric: {...}}."""
        return await self._get(
            "metrics", "/stock/metric", max_retries, symbol=normalize_symbol(symbol), metric="all"
        )

    async def earnings(self, symbol: str, max_retries: int | None = None) -> list[dict[str, Any]]:
        """Quarterly earnings surprises, newest first."""
        return await self._get(
            "earnings", "/stock/earnings", max_retries, symbol=normalize_symbol(symbol)
        )

    async def financials(self, symbol: str, max_retries: int | None = None) -> dict[str, Any]:
        """As-reported financial statements: {data: [{report: {ic: [...]}}]}."""
        return await self._get(
            "financials", "/stock/financials-reported", max_retries, symbol=normalize_symbol(symbol)
        )

    async def peers(self, symbol: str, max_retries: int | None = 2) -> list[str]:
        """Peer ticker symbols."""
        return await self._get("peers", "/stock/peers", max_retries, symbol=normalize_symbol(symbol))

    async def candles(
        self,
        symbol: str,
        start: datetime,
        end: datetime,
        resolution: str = "D",
        max_retries: int | None = 2,
    ) -> dict[str, Any]:
        """OHLCV arrays: {s, t, o, h, l, c, v}."""
        return await self._get(
            "candles",
            "/stock/candle",
            max_retries,
            symbol=normalize_symbol(symbol),
            resolution=resolution,
            **{"from": int(start.timestamp()), "to": int(end.timestamp())},
        )

    async def company_news(
        self,
        symbol: str,
        from_date: date,
        to_date: date,
        max_retries: int | None = 2,
    ) -> list[dict[str, Any]]:
        """Company news articles between two dates (inclusive)."""
        return await self._get(
            "news",
            "/company-news",
            max_retries,
            symbol=normalize_symbol(symbol),
            **{"from": from_date.isoformat(), "to": to_date.isoformat()},
        )

    async def search(self, query: str, max_retries: int | None = None) -> dict[str, Any]:
        """Free-text symbol search: {count, result: [{symbol, description, type}]}."""
        return await self._get("search", "/search", max_retries, q=query.strip())

    async def aclose(self) -> None:
        await self.fetcher.aclose()
