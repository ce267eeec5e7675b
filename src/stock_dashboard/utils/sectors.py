"""Sector and industry normalization onto a fixed taxonomy.

Provider sector fields are inconsistently populated, so classification is
two-stage: keyword rules first, then a curated per-symbol override table for
symbols whose provider data falls through to the fallback labels.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

FALLBACK_SECTOR = "Technology"
FALLBACK_INDUSTRY = "Software"

# Ordered (keywords -> label) rules. First match wins.
SECTOR_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("technology", "information technology", "software", "internet"), "Technology"),
    (("health", "pharmaceuticals", "biotech", "medical"), "Healthcare"),
    (("financial", "bank", "insurance", "finance"), "Financial Services"),
    (("consumer", "retail", "discretionary", "staples"), "Consumer Goods"),
    (("energy", "oil", "gas", "petroleum"), "Energy"),
    (("industrial", "manufacturing", "aerospace", "defense"), "Industrials"),
    (("material", "mining", "chemical", "metals"), "Materials"),
    (("real estate", "reit"), "Real Estate"),
    (("utilities", "electric", "water", "utility"), "Utilities"),
    (("communication", "telecom", "media", "entertainment"), "Communication Services"),
    (("auto", "vehicle", "transportation", "automotive"), "Automotive"),
    (("food", "beverage", "agriculture", "restaurant"), "Food & Beverage"),
)

INDUSTRY_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("software", "internet", "cloud", "saas"), "Software"),
    (("semiconductor", "chip", "electronics", "hardware"), "Semiconductors"),
    (("auto", "vehicle", "automotive"), "Automotive"),
    (("pharma", "drug", "biotech", "medical"), "Pharmaceuticals"),
    (("bank", "financial", "lending"), "Banking"),
    (("retail", "e-commerce", "store"), "Retail"),
    (("energy", "oil", "renewable"), "Energy"),
    (("real estate", "property", "reit"), "Real Estate"),
    (("aerospace", "defense", "aviation"), "Aerospace & Defense"),
    (("telecom", "wireless", "communication"), "Telecommunications"),
)


@dataclass(frozen=True)
class SectorAssignment:
    sector: str
    industry: str


MANUAL_SECTOR_OVERRIDES: dict[str, SectorAssignment] = {
    "AAPL": SectorAssignment("Technology", "Consumer Electronics"),
    "MSFT": SectorAssignment("Technology", "Software"),
    "AMZN": SectorAssignment("Consumer Goods", "E-commerce"),
    "GOOGL": SectorAssignment("Technology", "Internet Services"),
    "GOOG": SectorAssignment("Technology", "Internet Services"),
    "TSLA": SectorAssignment("Automotive", "Electric Vehicles"),
    "META": SectorAssignment("Communication Services", "Social Media"),
    "NVDA": SectorAssignment("Technology", "Semiconductors"),
    "AMD": SectorAssignment("Technology", "Semiconductors"),
    "INTC": SectorAssignment("Technology", "Semiconductors"),
    "JPM": SectorAssignment("Financial Services", "Banking"),
    "BAC": SectorAssignment("Financial Services", "Banking"),
    "JNJ": SectorAssignment("Healthcare", "Pharmaceuticals"),
    "PFE": SectorAssignment("Healthcare", "Pharmaceuticals"),
    "XOM": SectorAssignment("Energy", "Oil & Gas"),
    "CVX": SectorAssignment("Energy", "Oil & Gas"),
    "WMT": SectorAssignment("Consumer Goods", "Retail"),
    "HD": SectorAssignment("Consumer Goods", "Home Improvement"),
    "DIS": SectorAssignment("Communication Services", "Entertainment"),
    "NFLX": SectorAssignment("Communication Services", "Streaming"),
    "CRM": SectorAssignment("Technology", "Cloud Software"),
    "ORCL": SectorAssignment("Technology", "Enterprise Software"),
}

SECTOR_PROFILE_KEYS = ("gicsSector", "sector", "gicsIndustry", "gicsSubIndustry")
INDUSTRY_PROFILE_KEYS = ("finnhubIndustry", "industry", "gicsSubIndustry", "gicsIndustry")


def _match(raw: str | None, rules: tuple[tuple[tuple[str, ...], str], ...], fallback: str) -> str:
    text = (raw or "").lower()
    if not text.strip():
        return fallback
    for keywords, label in rules:
        if any(keyword in text for keyword in keywords):
            return label
    return fallback


def first_profile_value(profile: Mapping[str, Any], keys: tuple[str, ...]) -> str:
    """First non-blank, non-"N/A" string among the given profile keys."""
    for key in keys:
        value = profile.get(key)
        if isinstance(value, str) and value.strip() and value.strip() != "N/A":
            return value.strip()
    return ""


class SectorClassifier:
    """Map raw provider sector/industry text onto the canonical taxonomy."""

    def __init__(self, overrides: Mapping[str, SectorAssignment] | None = None):
        self.overrides = MANUAL_SECTOR_OVERRIDES if overrides is None else overrides

    def normalize_sector(self, raw: str | None) -> str:
        return _match(raw, SECTOR_RULES, FALLBACK_SECTOR)

    def normalize_industry(self, raw: str | None) -> str:
        return _match(raw, INDUSTRY_RULES, FALLBACK_INDUSTRY)

    def manual_override(self, symbol: str) -> SectorAssignment | None:
        return self.overrides.get(symbol.upper().strip())

    def classify(
        self,
        symbol: str,
        raw_sector: str | None,
        raw_industry: str | None,
    ) -> SectorAssignment:
        """
        Normalize both labels; consult the override table only when both
        landed on the fallbacks.
        """
        sector = self.normalize_sector(raw_sector)
        industry = self.normalize_industry(raw_industry)
        if sector == FALLBACK_SECTOR and industry == FALLBACK_INDUSTRY:
            override = self.manual_override(symbol)
            if override is not None:
                return override
        return SectorAssignment(sector, industry)

    def classify_profile(self, symbol: str, profile: Mapping[str, Any] | None) -> SectorAssignment:
        """Classify from a raw provider profile payload."""
        profile = profile or {}
        return self.classify(
            symbol,
            first_profile_value(profile, SECTOR_PROFILE_KEYS),
            first_profile_value(profile, INDUSTRY_PROFILE_KEYS),
        )
