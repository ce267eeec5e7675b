"""Validation utilities and parameter classes."""

import operator
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

# Allowlists for cache key stability
VALID_RESOLUTIONS = {"1", "5", "15", "30", "60", "D", "W", "M"}
MAX_CANDLE_DAYS = 365 * 5


@dataclass(frozen=True)
class CandleParams:
    """Immutable candle request parameters."""

    symbol: str
    days: int = 30
    resolution: str = "D"

    def __post_init__(self) -> None:
        # Normalize symbol: uppercase, strip whitespace
        object.__setattr__(self, "symbol", self.symbol.upper().strip())
        if not self.symbol:
            raise ValueError("Stock symbol is required")

        resolution = self.resolution.upper().strip()
        if resolution not in VALID_RESOLUTIONS:
            raise ValueError(
                f"Invalid resolution '{self.resolution}'. Must be one of: {sorted(VALID_RESOLUTIONS)}"
            )
        if not 1 <= self.days <= MAX_CANDLE_DAYS:
            raise ValueError(f"days must be between 1 and {MAX_CANDLE_DAYS}")

        object.__setattr__(self, "resolution", resolution)

    def time_range(self, now: datetime | None = None) -> tuple[datetime, datetime]:
        """(start, end) covering the last `days` days, ending at now."""
        end = now or datetime.now(timezone.utc)
        return end - timedelta(days=self.days), end


def check_rule(
    value: float | None,
    threshold: float,
    comparator: Callable[[float, float], bool] = operator.gt,
) -> bool | None:
    """
    Check a rule with nullable boolean semantics.

    If value is None, returns None (not False).

    Args:
        value: The value to check (may be None)
        threshold: The threshold to compare against
        comparator: Comparison function (default: operator.gt)

    Returns:
        True/False if value is not None, None otherwise
    """
    if value is None:
        return None
    return comparator(value, threshold)


def check_rule_expr(
    value1: float | None,
    value2: float | None,
    comparator: Callable[[float, float], bool] = operator.gt,
) -> bool | None:
    """
    Check a rule comparing two values with nullable boolean semantics.

    If either value is None, returns None (not False).
    """
    if value1 is None or value2 is None:
        return None
    return comparator(value1, value2)
