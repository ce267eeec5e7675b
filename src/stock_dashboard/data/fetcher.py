"""Async HTTP fetcher with response caching, rate limiting and retry logic."""

import asyncio
import json
import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx

from stock_dashboard.data.cache import ResponseCache
from stock_dashboard.data.errors import (
    RateLimitedError,
    UpstreamClientError,
    UpstreamServerError,
)
from stock_dashboard.data.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

# Retry configuration
_max_retries = int(os.environ.get("FETCH_MAX_RETRIES", "3"))
_base_delay = float(os.environ.get("FETCH_BASE_DELAY", "1.0"))  # seconds
_timeout = float(os.environ.get("FETCH_TIMEOUT", "5.0"))  # seconds per attempt

# Transport failures and malformed bodies are retried like upstream 5xx
_RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    UpstreamServerError,
    httpx.TransportError,
    json.JSONDecodeError,
)

_SECRET_PARAMS = {"token", "apikey", "api_key"}


def endpoint_of(url: str) -> str:
    """Rate-limit identity for a URL: its path without the query string."""
    return urlsplit(url).path


def redact_url(url: str) -> str:
    """Mask API credentials in a URL before it is logged."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [
        (k, "***" if k.lower() in _SECRET_PARAMS else v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query)))


def calculate_backoff(attempt: int, base_delay: float = _base_delay) -> float:
    """Exponential backoff: base_delay * 2^attempt (attempt is 0-indexed)."""
    return base_delay * (2**attempt)


@dataclass
class RetryResult:
    """Result of a fetch with provenance tracking."""

    result: Any
    attempts: int
    total_backoff_seconds: float
    cached: bool = False
    errors: list[str] = field(default_factory=list)

    def to_provenance(self) -> dict[str, Any]:
        """Convert to provenance dict for data_provenance field."""
        prov: dict[str, Any] = {
            "attempts": self.attempts,
            "cached": self.cached,
            "total_backoff_seconds": self.total_backoff_seconds,
        }
        if self.errors:
            prov["retry_errors"] = self.errors[-3:]
        return prov


class RetryingFetcher:
    """
    Fetch JSON documents through a response cache and a per-endpoint rate limiter.

    A call first looks the full URL up in the cache. Cached hits return
    immediately and never count against the rate limit. On a miss one slot is
    taken from the endpoint's window (retries of the same call do not take
    more), then the request is attempted up to max_retries times.

    Status mapping:
        429 -> RateLimitedError (not retried)
        5xx -> UpstreamServerError (retried)
        other non-2xx -> UpstreamClientError (not retried)
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        cache: ResponseCache | None = None,
        limiter: RateLimiter | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        base_delay: float = _base_delay,
        timeout: float = _timeout,
    ):
        self._client = http_client
        self._owns_client = http_client is None
        self.cache = cache if cache is not None else ResponseCache()
        self.limiter = limiter if limiter is not None else RateLimiter()
        self._sleep = sleep
        self._base_delay = base_delay
        self._timeout = timeout

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this fetcher created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _attempt(self, url: str) -> Any:
        response = await self._http().get(url, timeout=self._timeout)
        status = response.status_code

        if status == 429:
            raise RateLimitedError(
                "API rate limit exceeded. Please wait a moment.",
                retry_after=_parse_retry_after(response),
            )
        if status >= 500:
            raise UpstreamServerError(status, redact_url(url))
        if not response.is_success:
            raise UpstreamClientError(status, redact_url(url))

        return response.json()

    async def fetch(
        self,
        url: str,
        max_retries: int = _max_retries,
        ttl: float | None = None,
    ) -> RetryResult:
        """
        Fetch a URL with caching, rate limiting and retries.

        Args:
            url: Full request URL (also the cache key)
            max_retries: Total number of attempts (default: 3)
            ttl: Cache TTL in seconds for a successful response

        Returns:
            RetryResult with the parsed body and provenance info

        Raises:
            RateLimitedError: Local window full or provider returned 429
            UpstreamClientError: Provider returned a non-retryable 4xx
            UpstreamServerError: 5xx on every attempt
            httpx.TransportError: Transport failure on every attempt
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")

        cached = self.cache.get(url)
        if cached is not None:
            return RetryResult(result=cached, attempts=0, total_backoff_seconds=0.0, cached=True)

        endpoint = endpoint_of(url)
        if not self.limiter.try_acquire(endpoint):
            retry_after = self.limiter.retry_after(endpoint)
            logger.warning(f"Rate limited on {endpoint}: retry in {retry_after:.1f}s")
            raise RateLimitedError(
                "Rate limited. Please wait before making more requests.",
                retry_after=retry_after,
            )

        safe_url = redact_url(url)
        last_error: Exception | None = None
        total_backoff = 0.0
        errors: list[str] = []

        for attempt in range(max_retries):
            try:
                result = await self._attempt(url)
            except (RateLimitedError, UpstreamClientError) as e:
                logger.warning(f"GET {safe_url}: {e} (not retried)")
                raise
            except _RETRYABLE_ERRORS as e:
                last_error = e
                errors.append(type(e).__name__)
                if attempt < max_retries - 1:
                    delay = calculate_backoff(attempt, self._base_delay)
                    total_backoff += delay
                    logger.info(
                        f"GET {safe_url}: attempt {attempt + 1} failed ({e}). "
                        f"Retrying in {delay:.1f}s..."
                    )
                    await self._sleep(delay)
                continue

            self.cache.set(url, result, ttl)
            return RetryResult(
                result=result,
                attempts=attempt + 1,
                total_backoff_seconds=round(total_backoff, 2),
                errors=errors,
            )

        logger.warning(f"GET {safe_url}: failed after {max_retries} attempts. Last error: {last_error}")
        raise last_error  # type: ignore[misc]

    async def fetch_with_retry(
        self,
        url: str,
        max_retries: int = _max_retries,
        ttl: float | None = None,
    ) -> Any:
        """Fetch a URL and return only the parsed body. See fetch()."""
        retry_result = await self.fetch(url, max_retries=max_retries, ttl=ttl)
        return retry_result.result


def _parse_retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None
