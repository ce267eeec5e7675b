"""Pytest configuration and fixtures."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import numpy as np
import pytest

from stock_dashboard.data.cache import ResponseCache
from stock_dashboard.data.fetcher import RetryingFetcher
from stock_dashboard.data.finnhub_client import MarketDataClient
from stock_dashboard.data.rate_limiter import RateLimiter

BASE_URL = "https://provider.test/api/v1"
NOW = datetime(2024, 6, 3, 15, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable time source (seconds)."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordedSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeProvider:
    """
    In-process stand-in for the market data API.

    Responses are registered per path, optionally per symbol. Each entry is
    a JSON payload (served with 200), an int status code, an httpx.Response
    or an exception to raise. Several entries are served in order; the last
    one repeats.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str | None], list[Any]] = {}
        self.requests: list[httpx.Request] = []

    def on(self, path: str, *responses: Any, symbol: str | None = None) -> None:
        self.routes[(path, symbol)] = list(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api/v1")
        symbol = request.url.params.get("symbol")

        queue = self.routes.get((path, symbol)) or self.routes.get((path, None))
        if not queue:
            return httpx.Response(404, json={"error": "not found"})
        item = queue.pop(0) if len(queue) > 1 else queue[0]

        if isinstance(item, Exception):
            raise item
        if isinstance(item, int):
            return httpx.Response(item, json={"error": f"status {item}"})
        if isinstance(item, httpx.Response):
            return item
        return httpx.Response(200, json=item)

    def calls(self, path: str, symbol: str | None = None) -> int:
        return sum(
            1
            for r in self.requests
            if r.url.path.removeprefix("/api/v1") == path
            and (symbol is None or r.url.params.get("symbol") == symbol)
        )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recorded_sleep() -> RecordedSleep:
    return RecordedSleep()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def fetcher(provider: FakeProvider, clock: FakeClock, recorded_sleep: RecordedSleep) -> RetryingFetcher:
    """Fetcher wired to the fake provider, fake clock and recorded sleeps."""
    return RetryingFetcher(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(provider.handler)),
        cache=ResponseCache(store={}, clock=clock, default_ttl=300),
        limiter=RateLimiter(max_requests=30, window_seconds=60, clock=clock),
        sleep=recorded_sleep,
        base_delay=1.0,
        timeout=5.0,
    )


@pytest.fixture
def client(fetcher: RetryingFetcher) -> MarketDataClient:
    return MarketDataClient(fetcher=fetcher, api_key="test-key", base_url=BASE_URL)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


@pytest.fixture
def fixed_now() -> Callable[[], datetime]:
    return lambda: NOW


def quote_json(price: float, change_percent: float = 0.0, volume: float = 1_000_000) -> dict[str, Any]:
    return {
        "c": price,
        "o": price,
        "h": price * 1.01,
        "l": price * 0.99,
        "pc": price,
        "d": price * change_percent / 100,
        "dp": change_percent,
        "v": volume,
        "t": int(NOW.timestamp()),
    }


def profile_json(name: str, industry: str = "", sector: str = "", market_cap_m: float = 0) -> dict[str, Any]:
    return {
        "name": name,
        "exchange": "NASDAQ NMS - GLOBAL MARKET",
        "finnhubIndustry": industry,
        "gicsSector": sector,
        "marketCapitalization": market_cap_m,
        "country": "US",
        "ipo": "1980-12-12",
    }


@pytest.fixture
def aapl_provider(provider: FakeProvider) -> FakeProvider:
    """Provider serving a complete AAPL record."""
    provider.on("/quote", quote_json(180.0, change_percent=1.2), symbol="AAPL")
    provider.on(
        "/stock/profile2",
        profile_json("Apple Inc", industry="Technology", market_cap_m=2_800_000),
        symbol="AAPL",
    )
    provider.on(
        "/stock/metric",
        {
            "metric": {
                "peBasicExclExtraTTM": 29.5,
                "beta": 1.25,
                "roeTTM": 150.0,
                "totalDebt2EquityQuarterly": 1.8,
                "currentRatioQuarterly": 0.95,
                "grossMarginTTM": 45.0,
                "dividendYieldIndicatedAnnual": 0.5,
                "52WeekHigh": 200.0,
                "52WeekLow": 160.0,
                "avgTradingVolume10Day": 55.0,
            }
        },
        symbol="AAPL",
    )
    provider.on(
        "/stock/earnings",
        [
            {"period": "2024-03-31", "actual": 1.53, "estimate": 1.5},
            {"period": "2023-12-31", "actual": 2.18, "estimate": 2.1},
        ],
        symbol="AAPL",
    )
    provider.on(
        "/stock/financials-reported",
        {
            "data": [
                {
                    "report": {
                        "ic": [
                            {"concept": "us-gaap:CostOfRevenue", "value": 48_000_000_000},
                            {
                                "concept": "us-gaap:RevenueFromContractWithCustomerExcludingAssessedTax",
                                "value": 90_753_000_000,
                            },
                        ]
                    }
                }
            ]
        },
        symbol="AAPL",
    )
    return provider


def days_ago(days: float) -> datetime:
    return NOW - timedelta(days=days)
