"""Data layer for fetching, caching and storing market and user data."""

from stock_dashboard.data.cache import CacheEntry, ResponseCache
from stock_dashboard.data.errors import (
    FETCH_ERRORS,
    InvalidSymbolError,
    MarketDataError,
    RateLimitedError,
    UpstreamClientError,
    UpstreamServerError,
)
from stock_dashboard.data.fetcher import RetryingFetcher, RetryResult, calculate_backoff
from stock_dashboard.data.finnhub_client import MarketDataClient
from stock_dashboard.data.rate_limiter import RateLimiter
from stock_dashboard.data.user_records import Note, UserRecordStore

__all__ = [
    # Cache
    "CacheEntry",
    "ResponseCache",
    "RateLimiter",
    # Errors
    "FETCH_ERRORS",
    "InvalidSymbolError",
    "MarketDataError",
    "RateLimitedError",
    "UpstreamClientError",
    "UpstreamServerError",
    # Fetching
    "RetryingFetcher",
    "RetryResult",
    "calculate_backoff",
    "MarketDataClient",
    # User records
    "Note",
    "UserRecordStore",
]
