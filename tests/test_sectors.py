"""Tests for sector and industry classification."""

from stock_dashboard.utils.sectors import (
    FALLBACK_INDUSTRY,
    FALLBACK_SECTOR,
    SectorAssignment,
    SectorClassifier,
    first_profile_value,
)


class TestNormalizeSector:
    """Tests for keyword-based sector normalization."""

    def test_information_technology(self) -> None:
        """GICS technology label maps to Technology."""
        assert SectorClassifier().normalize_sector("Information Technology") == "Technology"

    def test_case_insensitive(self) -> None:
        """Matching ignores case."""
        assert SectorClassifier().normalize_sector("BANKS") == "Financial Services"

    def test_first_rule_wins(self) -> None:
        """Rules are evaluated in order."""
        # "Pharmaceuticals" only matches the health rule
        assert SectorClassifier().normalize_sector("Pharmaceuticals") == "Healthcare"
        assert SectorClassifier().normalize_sector("Real Estate Investment Trust") == "Real Estate"

    def test_empty_uses_fallback(self) -> None:
        """Blank or missing text yields the fallback sector."""
        classifier = SectorClassifier()
        assert classifier.normalize_sector("") == FALLBACK_SECTOR
        assert classifier.normalize_sector("   ") == FALLBACK_SECTOR
        assert classifier.normalize_sector(None) == FALLBACK_SECTOR

    def test_unmatched_uses_fallback(self) -> None:
        """Text matching no rule yields the fallback sector."""
        assert SectorClassifier().normalize_sector("Conglomerates") == FALLBACK_SECTOR


class TestNormalizeIndustry:
    """Tests for keyword-based industry normalization."""

    def test_semiconductors(self) -> None:
        assert SectorClassifier().normalize_industry("Semiconductor Equipment") == "Semiconductors"

    def test_banking(self) -> None:
        assert SectorClassifier().normalize_industry("Regional Banks") == "Banking"

    def test_fallback(self) -> None:
        assert SectorClassifier().normalize_industry("") == FALLBACK_INDUSTRY
        assert SectorClassifier().normalize_industry("Tobacco") == FALLBACK_INDUSTRY


class TestClassify:
    """Tests for the override step."""

    def test_override_applies_when_both_fall_back(self) -> None:
        """TSLA with no provider labels uses the curated entry."""
        result = SectorClassifier().classify("TSLA", "", "")
        assert result == SectorAssignment("Automotive", "Electric Vehicles")

    def test_override_symbol_normalized(self) -> None:
        """Override lookup uppercases the symbol."""
        result = SectorClassifier().classify("tsla", None, None)
        assert result.sector == "Automotive"

    def test_override_ignored_when_sector_matched(self) -> None:
        """A real sector match keeps the override table out."""
        result = SectorClassifier().classify("TSLA", "Consumer Cyclical", "")
        assert result == SectorAssignment("Consumer Goods", FALLBACK_INDUSTRY)

    def test_override_ignored_when_industry_matched(self) -> None:
        """A real industry match keeps the override table out."""
        result = SectorClassifier().classify("TSLA", "", "Automobiles")
        assert result == SectorAssignment(FALLBACK_SECTOR, "Automotive")

    def test_unknown_symbol_keeps_fallbacks(self) -> None:
        """Symbols without overrides keep the fallback labels."""
        result = SectorClassifier().classify("ZZZZ", "", "")
        assert result == SectorAssignment(FALLBACK_SECTOR, FALLBACK_INDUSTRY)

    def test_custom_overrides(self) -> None:
        """An injected override table replaces the built-in one."""
        classifier = SectorClassifier(overrides={"ZZZZ": SectorAssignment("Energy", "Energy")})
        assert classifier.classify("ZZZZ", "", "").sector == "Energy"
        assert classifier.classify("TSLA", "", "").sector == FALLBACK_SECTOR


class TestClassifyProfile:
    """Tests for classification from raw profile payloads."""

    def test_uses_finnhub_industry(self) -> None:
        """finnhubIndustry feeds the industry label."""
        profile = {"finnhubIndustry": "Semiconductors", "gicsSector": "Information Technology"}
        result = SectorClassifier().classify_profile("NVDA", profile)
        assert result == SectorAssignment("Technology", "Semiconductors")

    def test_skips_na_values(self) -> None:
        """N/A placeholders are treated as missing."""
        profile = {"gicsSector": "N/A", "sector": "Energy"}
        assert SectorClassifier().classify_profile("XOM", profile).sector == "Energy"

    def test_empty_profile_uses_override(self) -> None:
        """An empty profile falls through to the override table."""
        assert SectorClassifier().classify_profile("JPM", None) == SectorAssignment(
            "Financial Services", "Banking"
        )

    def test_first_profile_value(self) -> None:
        """The first usable key wins."""
        profile = {"a": "", "b": "  Value ", "c": "Other"}
        assert first_profile_value(profile, ("a", "b", "c")) == "Value"
        assert first_profile_value(profile, ("missing",)) == ""
