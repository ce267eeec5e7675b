"""TTL cache for provider responses."""

import os
import time
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass
from typing import Any

import diskcache


@dataclass(frozen=True)
class CacheEntry:
    """A cached response. Treated as absent once stored_at + ttl has elapsed."""

    key: str
    value: Any
    stored_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl


class ResponseCache:
    """
    Key/value cache with per-entry TTL and lazy eviction.

    Entries are keyed by the full request URL. Expired entries are dropped
    when read; there is no background sweep.

    The backing store is injectable. Without one, a process-local dict is
    used, or a diskcache.Cache when CACHE_DIR is set.
    """

    def __init__(
        self,
        store: MutableMapping[str, CacheEntry] | None = None,
        clock: Callable[[], float] = time.time,
        default_ttl: float | None = None,
    ):
        if store is None:
            cache_dir = os.environ.get("CACHE_DIR")
            store = diskcache.Cache(cache_dir) if cache_dir else {}
        self._store = store
        self._clock = clock
        if default_ttl is None:
            default_ttl = float(os.environ.get("CACHE_TTL", "300"))  # 5 minutes
        self._default_ttl = default_ttl

    def get(self, key: str) -> Any | None:
        """
        Get a cached value.

        Args:
            key: Cache key (full URL)

        Returns:
            Cached value or None if missing or expired
        """
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self.delete(key)
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """
        Store a value.

        Args:
            key: Cache key (full URL)
            value: Parsed response body
            ttl: Time-to-live in seconds (default: CACHE_TTL)
        """
        expire = ttl if ttl is not None else self._default_ttl
        self._store[key] = CacheEntry(
            key=key,
            value=value,
            stored_at=self._clock(),
            ttl=expire,
        )

    def delete(self, key: str) -> None:
        """Remove a key if present."""
        try:
            del self._store[key]
        except KeyError:
            pass

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def clear(self) -> None:
        """Clear all cached data."""
        self._store.clear()
