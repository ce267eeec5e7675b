"""Error taxonomy for market data fetches."""

import json

import httpx


class MarketDataError(Exception):
    """Base class for market data failures."""

    pass


class RateLimitedError(MarketDataError):
    """Raised when a request is refused by the local limiter or by the provider (HTTP 429).

    Callers must wait; these are never retried.
    """

    def __init__(self, message: str, retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class UpstreamServerError(MarketDataError):
    """Raised on an upstream 5xx response. Retryable with backoff."""

    def __init__(self, status_code: int, url: str | None = None):
        super().__init__(f"Server error: {status_code}")
        self.status_code = status_code
        self.url = url


class UpstreamClientError(MarketDataError):
    """Raised on an upstream 4xx response other than 429. Not retryable."""

    def __init__(self, status_code: int, url: str | None = None):
        super().__init__(f"HTTP error: {status_code}")
        self.status_code = status_code
        self.url = url


class InvalidSymbolError(MarketDataError):
    """Raised when the mandatory quote for a symbol is missing or priced at zero.

    retry_after is set when the quote was refused by a rate limit.
    """

    def __init__(self, symbol: str, reason: str | None = None, retry_after: float | None = None):
        message = f"Invalid stock symbol: {symbol}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.symbol = symbol
        self.retry_after = retry_after


# Everything a fetch can raise once retries are exhausted
FETCH_ERRORS: tuple[type[Exception], ...] = (
    MarketDataError,
    httpx.TransportError,
    json.JSONDecodeError,
)
