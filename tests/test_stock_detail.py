"""Tests for fundamentals assembly, stale loads and the stock_detail tool."""

import asyncio
import json

import httpx
import numpy as np
import pytest

from conftest import NOW, quote_json
from stock_dashboard.data.errors import InvalidSymbolError, RateLimitedError
from stock_dashboard.tools.stock_detail import (
    FundamentalsAssembler,
    StockView,
    extract_quarterly,
    stock_detail,
)


@pytest.fixture
def assembler(client, rng, fixed_now) -> FundamentalsAssembler:
    return FundamentalsAssembler(client, rng=rng, clock=fixed_now)


class TestExtractQuarterly:
    """Tests for quarterly figures."""

    def test_growth_and_revenue(self) -> None:
        earnings = [{"actual": 1.53}, {"actual": 2.18}]
        financials = {"data": [{"report": {"ic": [{"concept": "us-gaap:Revenues", "value": 1000}]}}]}
        quarterly = extract_quarterly(earnings, financials)

        assert quarterly.quarterly_eps == 1.53
        assert quarterly.earnings == 1.53
        assert quarterly.earnings_growth == pytest.approx((1.53 - 2.18) / 2.18 * 100)
        assert quarterly.revenue == 1000

    def test_eps_actual_preferred(self) -> None:
        quarterly = extract_quarterly([{"epsActual": 2.0, "actual": 9.0}], {})
        assert quarterly.quarterly_eps == 2.0

    def test_single_period_has_no_growth(self) -> None:
        quarterly = extract_quarterly([{"actual": 1.0}], {"data": []})
        assert quarterly.quarterly_eps == 1.0
        assert quarterly.earnings_growth is None

    def test_zero_previous_eps(self) -> None:
        quarterly = extract_quarterly([{"actual": 1.0}, {"actual": 0.0}], {})
        assert quarterly.earnings_growth is None

    def test_no_revenue_concept(self) -> None:
        financials = {"data": [{"report": {"ic": [{"concept": "us-gaap:CostOfRevenue", "value": 5}]}}]}
        assert extract_quarterly([], financials).revenue is None

    def test_malformed_inputs(self) -> None:
        quarterly = extract_quarterly(None, None)
        assert quarterly.revenue is None
        assert quarterly.quarterly_eps is None


class TestFundamentalsAssembler:
    """Tests for merging the five fetches."""

    def test_complete_record(self, assembler, aapl_provider) -> None:
        detail = asyncio.run(assembler.assemble("aapl"))

        assert detail.symbol == "AAPL"
        assert detail.name == "Apple Inc"
        assert detail.price == 180.0
        assert detail.market_cap_b == pytest.approx(2800)
        assert detail.profile.exchange == "NASDAQ NMS - GLOBAL MARKET"
        assert (detail.sector, detail.industry) == ("Technology", "Consumer Electronics")
        assert detail.metrics.pe_ratio == 29.5
        assert detail.metrics.avg_volume == pytest.approx(55_000_000)
        assert detail.quarterly.earnings_growth == pytest.approx((1.53 - 2.18) / 2.18 * 100)
        assert detail.quarterly.revenue == 90_753_000_000
        assert detail.fetched_at == NOW

    def test_risk_metrics_deterministic(self, assembler, aapl_provider) -> None:
        """beta 1.25, D/E 1.8 and current ratio 0.95 give a 6-point risk score."""
        risk = asyncio.run(assembler.assemble("AAPL")).risk_metrics
        assert risk.risk_score == 6
        assert risk.volatility_rank == 2
        assert risk.liquidity_score == pytest.approx(2.85)
        assert risk.fundamental_risk == 9

    def test_synthetic_blocks_in_range(self, assembler, aapl_provider) -> None:
        detail = asyncio.run(assembler.assemble("AAPL"))

        assert 30 <= detail.technicals.rsi <= 70
        assert 180 * 0.85 <= detail.technicals.support <= 180 * 0.95
        assert 180 * 1.05 <= detail.technicals.resistance <= 180 * 1.15
        assert detail.technicals.momentum == "NEUTRAL"
        assert 5 <= detail.news_metrics.news_count < 25
        assert -50 <= detail.news_metrics.sentiment_score <= 50
        assert 0 <= detail.insider_activity.recent_buys < 10
        assert 40 <= detail.insider_activity.institutional_ownership <= 80
        assert detail.synthetic_fields == ("technicals", "news_metrics", "insider_activity")

    def test_seeded_rng_is_reproducible(self, client, aapl_provider) -> None:
        first = asyncio.run(FundamentalsAssembler(client, rng=np.random.default_rng(7)).assemble("AAPL"))
        second = asyncio.run(FundamentalsAssembler(client, rng=np.random.default_rng(7)).assemble("AAPL"))
        assert first.technicals == second.technicals
        assert first.news_metrics == second.news_metrics

    def test_partial_data_uses_defaults(self, assembler, provider) -> None:
        """Only the quote is available; everything else falls back."""
        provider.on("/quote", quote_json(12.5), symbol="XYZ")

        detail = asyncio.run(assembler.assemble("XYZ"))

        assert detail.name == "XYZ Corporation"
        assert detail.profile.exchange == "Unknown"
        assert detail.profile.country == "US"
        assert detail.market_cap_b is None
        assert detail.metrics.pe_ratio is None
        assert detail.quarterly.quarterly_eps is None
        assert (detail.sector, detail.industry) == ("Technology", "Software")

    def test_zero_price_is_invalid(self, assembler, provider) -> None:
        provider.on("/quote", quote_json(0.0), symbol="NOPE")
        with pytest.raises(InvalidSymbolError):
            asyncio.run(assembler.assemble("NOPE"))

    def test_failed_quote_is_invalid(self, assembler, provider) -> None:
        provider.on("/quote", 404, symbol="NOPE")
        with pytest.raises(InvalidSymbolError) as exc_info:
            asyncio.run(assembler.assemble("NOPE"))
        assert exc_info.value.symbol == "NOPE"

    def test_rate_limited_quote_is_invalid(self, assembler, provider) -> None:
        provider.on("/quote", httpx.Response(429, headers={"Retry-After": "12"}), symbol="AAPL")
        with pytest.raises(InvalidSymbolError) as exc_info:
            asyncio.run(assembler.assemble("AAPL"))
        assert isinstance(exc_info.value.__cause__, RateLimitedError)
        assert exc_info.value.retry_after == 12

    def test_empty_symbol(self, assembler) -> None:
        with pytest.raises(InvalidSymbolError):
            asyncio.run(assembler.assemble("   "))


class GatedAssembler:
    """Assembler whose loads for one symbol wait until released."""

    def __init__(self, slow_symbol: str, fail: bool = False):
        self.slow_symbol = slow_symbol
        self.fail = fail
        self.release: asyncio.Event | None = None

    async def assemble(self, symbol: str):
        if symbol == self.slow_symbol:
            await self.release.wait()
            if self.fail:
                raise InvalidSymbolError(symbol)
        return symbol


class TestStockView:
    """Tests for discarding stale loads."""

    def _race(self, assembler: GatedAssembler) -> tuple:
        view = StockView(assembler)

        async def run() -> tuple:
            assembler.release = asyncio.Event()
            slow = asyncio.create_task(view.load(assembler.slow_symbol))
            await asyncio.sleep(0)
            fast = await view.load("MSFT")
            assembler.release.set()
            return await slow, fast

        slow_result, fast_result = asyncio.run(run())
        return view, slow_result, fast_result

    def test_stale_result_discarded(self) -> None:
        view, slow_result, fast_result = self._race(GatedAssembler("AAPL"))
        assert slow_result is None
        assert fast_result == "MSFT"
        assert view.current == "MSFT"
        assert view.generation == 2

    def test_stale_failure_discarded(self) -> None:
        view, slow_result, fast_result = self._race(GatedAssembler("AAPL", fail=True))
        assert slow_result is None
        assert view.current == "MSFT"

    def test_current_failure_raises(self) -> None:
        assembler = GatedAssembler("BAD", fail=True)
        view = StockView(assembler)

        async def run() -> None:
            assembler.release = asyncio.Event()
            assembler.release.set()
            await view.load("BAD")

        with pytest.raises(InvalidSymbolError):
            asyncio.run(run())
        assert view.current is None


class TestStockDetailTool:
    """Tests for the stock_detail tool output."""

    def test_response(self, client, assembler, aapl_provider) -> None:
        result = asyncio.run(stock_detail(client, "AAPL", assembler=assembler))

        assert result["meta"]["tool"] == "stock_detail"
        illustrative = result["data_provenance"]["illustrative"]
        assert illustrative["synthetic"] is True
        assert illustrative["fields"] == ["technicals", "news_metrics", "insider_activity"]

        assert result["detail"]["name"] == "Apple Inc"
        assert result["detail"]["market_cap_b"] == pytest.approx(2800)
        # beta 1.25 (2) + P/E 29.5 (2) + D/E 1.8 (2)
        assert result["signals"]["risk"]["level"] == "High Risk"
        assert result["signals"]["risk"]["raw_score"] == 6
        assert result["signals"]["momentum"] == "NEUTRAL"
        assert [p["point"] for p in result["analysis"]] == ["High valuation with P/E of 29.5"]

        # Serializable the way the server returns it
        assert json.loads(json.dumps(result, default=str))["detail"]["symbol"] == "AAPL"

    def test_invalid_symbol(self, client, assembler, provider) -> None:
        provider.on("/quote", quote_json(0.0), symbol="NOPE")
        result = asyncio.run(stock_detail(client, "NOPE", assembler=assembler))

        assert result["error"] is True
        assert result["error_type"] == "invalid_symbol"
        assert result["symbol"] == "NOPE"

    def test_rate_limited(self, client, assembler, provider) -> None:
        provider.on("/quote", httpx.Response(429, headers={"Retry-After": "12"}), symbol="AAPL")
        result = asyncio.run(stock_detail(client, "AAPL", assembler=assembler))
        assert result["error_type"] == "rate_limited"
        assert result["retry_after_seconds"] == 12
        assert result["symbol"] == "AAPL"
