"""Tests for validators and CandleParams."""

import operator
from datetime import datetime, timedelta, timezone

import pytest

from stock_dashboard.utils.validators import (
    MAX_CANDLE_DAYS,
    VALID_RESOLUTIONS,
    CandleParams,
    check_rule,
    check_rule_expr,
)


class TestCandleParams:
    """Tests for CandleParams dataclass."""

    def test_symbol_normalization(self) -> None:
        """Symbols are uppercased and stripped."""
        assert CandleParams(symbol="  nvda ").symbol == "NVDA"

    def test_resolution_normalization(self) -> None:
        assert CandleParams(symbol="AAPL", resolution="d").resolution == "D"

    def test_defaults(self) -> None:
        params = CandleParams(symbol="AAPL")
        assert params.days == 30
        assert params.resolution == "D"

    def test_empty_symbol_raises(self) -> None:
        with pytest.raises(ValueError, match="symbol is required"):
            CandleParams(symbol="   ")

    def test_invalid_resolution_raises(self) -> None:
        with pytest.raises(ValueError, match="Invalid resolution"):
            CandleParams(symbol="AAPL", resolution="2H")

    @pytest.mark.parametrize("days", [0, -5, MAX_CANDLE_DAYS + 1])
    def test_invalid_days_raises(self, days: int) -> None:
        with pytest.raises(ValueError, match="days must be between"):
            CandleParams(symbol="AAPL", days=days)

    def test_all_valid_resolutions(self) -> None:
        for resolution in VALID_RESOLUTIONS:
            assert CandleParams(symbol="AAPL", resolution=resolution).resolution == resolution

    def test_time_range(self) -> None:
        """The range ends at now and spans the requested days."""
        now = datetime(2024, 6, 3, 15, 0, tzinfo=timezone.utc)
        start, end = CandleParams(symbol="AAPL", days=30).time_range(now)
        assert end == now
        assert end - start == timedelta(days=30)

    def test_immutable(self) -> None:
        params = CandleParams(symbol="AAPL")
        with pytest.raises(AttributeError):
            params.symbol = "NVDA"


class TestCheckRule:
    """Tests for check_rule function."""

    def test_check_rule_true(self) -> None:
        assert check_rule(1.8, 1.5) is True

    def test_check_rule_false(self) -> None:
        assert check_rule(1.2, 1.5) is False

    def test_check_rule_none_value(self) -> None:
        """A missing value returns None (not False)."""
        assert check_rule(None, 1.5) is None

    def test_check_rule_lt_operator(self) -> None:
        assert check_rule(1.0, 2.0, operator.lt) is True

    def test_check_rule_strict_boundary(self) -> None:
        assert check_rule(15.0, 15.0) is False
        assert check_rule(15.0, 15.0, operator.ge) is True


class TestCheckRuleExpr:
    """Tests for check_rule_expr function."""

    def test_check_rule_expr_true(self) -> None:
        assert check_rule_expr(3_000_000, 1_500_000) is True

    def test_check_rule_expr_false(self) -> None:
        assert check_rule_expr(1_000_000, 1_500_000) is False

    @pytest.mark.parametrize("left, right", [(None, 1.0), (1.0, None), (None, None)])
    def test_check_rule_expr_none(self, left, right) -> None:
        assert check_rule_expr(left, right) is None
