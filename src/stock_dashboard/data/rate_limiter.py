"""Sliding-window rate limiter keyed by endpoint."""

import os
import time
from collections import deque
from collections.abc import Callable

_max_requests = int(os.environ.get("RATE_LIMIT_MAX_REQUESTS", "30"))
_window_seconds = float(os.environ.get("RATE_LIMIT_WINDOW", "60"))


class RateLimiter:
    """
    Bound the number of requests per endpoint within a trailing time window.

    Each endpoint keeps an ordered deque of request timestamps. Timestamps
    older than the window are pruned on every check, so the limit applies to
    the trailing window rather than to fixed buckets.
    """

    def __init__(
        self,
        max_requests: int = _max_requests,
        window_seconds: float = _window_seconds,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, deque[float]] = {}

    def _prune(self, endpoint: str, now: float) -> deque[float]:
        window = self._windows.setdefault(endpoint, deque())
        while window and now - window[0] >= self.window_seconds:
            window.popleft()
        return window

    def try_acquire(self, endpoint: str) -> bool:
        """
        Record a request for endpoint if the window has room.

        Returns:
            True if the request was recorded, False if the limit is reached
        """
        now = self._clock()
        window = self._prune(endpoint, now)
        if len(window) >= self.max_requests:
            return False
        window.append(now)
        return True

    def remaining(self, endpoint: str) -> int:
        """Number of requests still allowed in the current window."""
        window = self._prune(endpoint, self._clock())
        return max(0, self.max_requests - len(window))

    def retry_after(self, endpoint: str) -> float:
        """Seconds until the oldest recorded request leaves the window (0 if not limited)."""
        now = self._clock()
        window = self._prune(endpoint, now)
        if len(window) < self.max_requests:
            return 0.0
        return max(0.0, self.window_seconds - (now - window[0]))

    def reset(self) -> None:
        """Forget all recorded requests."""
        self._windows.clear()
