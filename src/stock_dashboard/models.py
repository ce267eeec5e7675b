"""Immutable records shared by the data layer and the tools."""

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from stock_dashboard.utils.sanitize import sanitize_text
from stock_dashboard.utils.sectors import (
    INDUSTRY_PROFILE_KEYS,
    SECTOR_PROFILE_KEYS,
    first_profile_value,
)


def safe_float(value: Any) -> float | None:
    """Convert to float or return None (NaN and non-numeric become None)."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (ValueError, TypeError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    """Convert to int or return None."""
    number = safe_float(value)
    if number is None:
        return None
    return int(number)


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a stored date into an aware datetime (UTC).

    Accepts datetime objects, ISO-8601 strings, epoch seconds and
    {"seconds": ..., "nanoseconds": ...} document timestamps.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if isinstance(value, dict) and "seconds" in value:
        seconds = float(value["seconds"]) + float(value.get("nanoseconds", 0)) / 1e9
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)
    return None


# ============================================================================
# MARKET DATA
# ============================================================================


@dataclass(frozen=True)
class Quote:
    """Snapshot of a provider quote."""

    price: float
    open: float
    high: float
    low: float
    prev_close: float
    change: float
    change_percent: float
    volume: float
    timestamp: int | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Quote":
        def num(key: str) -> float:
            return safe_float(payload.get(key)) or 0.0

        return cls(
            price=num("c"),
            open=num("o"),
            high=num("h"),
            low=num("l"),
            prev_close=num("pc"),
            change=num("d"),
            change_percent=num("dp"),
            volume=num("v"),
            timestamp=safe_int(payload.get("t")),
        )


@dataclass(frozen=True)
class Profile:
    """Company profile. Sector and industry are raw provider strings."""

    name: str | None = None
    exchange: str | None = None
    sector: str = ""
    industry: str = ""
    market_cap_b: float | None = None
    country: str | None = None
    employees: int | None = None
    ipo_date: str | None = None
    logo_url: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None) -> "Profile":
        payload = payload or {}
        market_cap = safe_float(payload.get("marketCapitalization"))
        return cls(
            name=sanitize_text(payload.get("name") or None, max_length=200),
            exchange=sanitize_text(payload.get("exchange") or None, max_length=100),
            sector=first_profile_value(payload, SECTOR_PROFILE_KEYS),
            industry=first_profile_value(payload, INDUSTRY_PROFILE_KEYS),
            # Provider reports market cap in millions
            market_cap_b=market_cap / 1000 if market_cap else None,
            country=payload.get("country") or None,
            employees=safe_int(payload.get("employeeTotal")),
            ipo_date=payload.get("ipo") or None,
            logo_url=payload.get("logo") or None,
        )


# Metrics field -> provider metric key
METRIC_KEYS: dict[str, str] = {
    "pe_ratio": "peBasicExclExtraTTM",
    "peg_ratio": "pegRatio",
    "pb_ratio": "pbRatio",
    "ps_ratio": "psRatio",
    "eps": "epsBasicExclExtraItemsTTM",
    "beta": "beta",
    "dividend_yield": "dividendYieldIndicatedAnnual",
    "roe": "roeTTM",
    "roa": "roaTTM",
    "debt_to_equity": "totalDebt2EquityQuarterly",
    "current_ratio": "currentRatioQuarterly",
    "gross_margin": "grossMarginTTM",
    "operating_margin": "operatingMarginTTM",
    "profit_margin": "netProfitMarginTTM",
    "year_high": "52WeekHigh",
    "year_low": "52WeekLow",
    "analyst_target": "analystTargetPrice",
    "avg_volume": "avgTradingVolume10Day",
}


@dataclass(frozen=True)
class Metrics:
    """Fundamental ratios. Any field may be None."""

    pe_ratio: float | None = None
    peg_ratio: float | None = None
    pb_ratio: float | None = None
    ps_ratio: float | None = None
    eps: float | None = None
    beta: float | None = None
    dividend_yield: float | None = None
    roe: float | None = None
    roa: float | None = None
    debt_to_equity: float | None = None
    current_ratio: float | None = None
    gross_margin: float | None = None
    operating_margin: float | None = None
    profit_margin: float | None = None
    year_high: float | None = None
    year_low: float | None = None
    analyst_target: float | None = None
    avg_volume: float | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None) -> "Metrics":
        metric = (payload or {}).get("metric") or {}
        values = {name: safe_float(metric.get(key)) for name, key in METRIC_KEYS.items()}
        # Provider reports average volume in millions of shares
        if values["avg_volume"] is not None:
            values["avg_volume"] *= 1_000_000
        return cls(**values)


@dataclass(frozen=True)
class QuarterlyData:
    revenue: float | None = None
    earnings: float | None = None
    quarterly_eps: float | None = None
    earnings_growth: float | None = None


@dataclass(frozen=True)
class RiskMetrics:
    risk_score: float
    volatility_rank: int
    liquidity_score: float
    fundamental_risk: float


@dataclass(frozen=True)
class TechnicalIndicators:
    rsi: float
    moving_avg_20: float
    moving_avg_50: float
    support: float
    resistance: float
    momentum: str


@dataclass(frozen=True)
class NewsMetrics:
    sentiment: str
    sentiment_score: float
    news_count: int
    buzz_score: float


@dataclass(frozen=True)
class InsiderActivity:
    recent_buys: int
    recent_sells: int
    net_activity: str
    institutional_ownership: float


@dataclass(frozen=True)
class StockDetail:
    """
    Merged quote, profile and metrics for one symbol, plus derived blocks.

    Built fresh on every load. risk_metrics is derived deterministically;
    the fields named in synthetic_fields are illustrative placeholders drawn
    from a pseudo-random source, not measured signals.
    """

    symbol: str
    name: str
    quote: Quote
    profile: Profile
    metrics: Metrics
    sector: str
    industry: str
    quarterly: QuarterlyData
    risk_metrics: RiskMetrics
    technicals: TechnicalIndicators
    news_metrics: NewsMetrics
    insider_activity: InsiderActivity
    fetched_at: datetime
    synthetic_fields: tuple[str, ...] = ("technicals", "news_metrics", "insider_activity")

    @property
    def price(self) -> float:
        return self.quote.price

    @property
    def market_cap_b(self) -> float | None:
        return self.profile.market_cap_b

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["market_cap_b"] = self.market_cap_b
        data["synthetic_fields"] = list(self.synthetic_fields)
        return data


# ============================================================================
# PORTFOLIO
# ============================================================================


@dataclass(frozen=True)
class Holding:
    """A portfolio entry. shares == 0 marks a watchlist entry, not a position."""

    symbol: str
    shares: float = 0.0
    avg_price: float = 0.0
    purchase_date: datetime | None = None
    added_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "symbol", self.symbol.upper().strip())
        if not self.symbol:
            raise ValueError("Holding symbol cannot be empty")
        if self.shares < 0 or self.avg_price < 0:
            raise ValueError("Shares and price cannot be negative")
        # Naive dates are taken as UTC
        object.__setattr__(self, "purchase_date", parse_timestamp(self.purchase_date))
        object.__setattr__(self, "added_at", parse_timestamp(self.added_at))

    @property
    def is_watchlist(self) -> bool:
        return self.shares == 0

    @property
    def cost(self) -> float:
        return self.shares * self.avg_price

    @classmethod
    def from_record(cls, record: dict[str, Any] | str) -> "Holding":
        """Build from a stored portfolio item. A bare symbol string is a watchlist entry."""
        if isinstance(record, str):
            return cls(symbol=record)
        return cls(
            symbol=str(record.get("symbol", "")),
            shares=safe_float(record.get("shares")) or 0.0,
            avg_price=safe_float(record.get("avgPrice")) or 0.0,
            purchase_date=parse_timestamp(record.get("purchaseDate")),
            added_at=parse_timestamp(record.get("addedAt")),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "shares": self.shares,
            "avgPrice": self.avg_price,
            "purchaseDate": self.purchase_date,
            "addedAt": self.added_at,
        }


@dataclass(frozen=True)
class HoldingValuation:
    """A position enriched with live pricing and classification."""

    symbol: str
    company_name: str
    shares: float
    avg_price: float
    current_price: float
    total_value: float
    total_cost: float
    gain_loss: float
    gain_loss_percent: float
    sector: str
    industry: str
    purchase_date: datetime | None
    price_available: bool = True


@dataclass(frozen=True)
class PortfolioSummary:
    total_value: float
    total_cost: float
    total_gain: float
    total_gain_percent: float
    xirr: float | None
    sector_allocation: dict[str, float]
    industry_allocation: dict[str, float]
    holdings: tuple[HoldingValuation, ...]
    watchlist: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["holdings"] = [asdict(h) for h in self.holdings]
        data["watchlist"] = list(self.watchlist)
        return data
