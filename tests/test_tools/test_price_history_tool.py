"""Tests for the price_history tool."""

import asyncio
from datetime import timedelta

from conftest import NOW
from stock_dashboard.tools.price_history import price_history


def candle_payload() -> dict:
    start = int((NOW - timedelta(days=3)).replace(hour=0, minute=0).timestamp())
    return {
        "s": "ok",
        "t": [start, start + 86400, start + 2 * 86400],
        "o": [100, 101, 102],
        "h": [101, 103, 104],
        "l": [99, 100, 101],
        "c": [100.0, 102.0, 103.0],
        "v": [1000, 2000, 3000],
    }


class TestPriceHistory:
    """Tests for candle retrieval and summaries."""

    def test_summary_and_bars(self, client, provider) -> None:
        provider.on("/stock/candle", candle_payload(), symbol="AAPL")

        result = asyncio.run(price_history(client, "aapl", now=NOW))

        assert result["meta"]["tool"] == "price_history"
        assert result["symbol"] == "AAPL"
        assert result["summary"]["data_points"] == 3
        assert result["summary"]["start_date"] == "2024-05-31"
        assert result["summary"]["total_return"] == 0.03
        assert len(result["bars"]) == 3
        assert result["bars"][0]["close"] == 100.0
        assert result["data_provenance"]["price"]["last_bar_date"] == "2024-06-02"

    def test_request_range(self, client, provider) -> None:
        provider.on("/stock/candle", candle_payload())
        asyncio.run(price_history(client, "AAPL", days=30, resolution="d", now=NOW))

        params = provider.requests[0].url.params
        assert params["resolution"] == "D"
        assert params["to"] == str(int(NOW.timestamp()))
        assert params["from"] == str(int((NOW - timedelta(days=30)).timestamp()))

    def test_without_bars(self, client, provider) -> None:
        provider.on("/stock/candle", candle_payload())
        result = asyncio.run(price_history(client, "AAPL", include_bars=False, now=NOW))
        assert "bars" not in result

    def test_no_data(self, client, provider) -> None:
        provider.on("/stock/candle", {"s": "no_data"})
        result = asyncio.run(price_history(client, "AAPL", now=NOW))

        assert result["bars"] == []
        assert result["summary"]["data_points"] == 0
        assert result["data_provenance"]["price"]["warnings"] == ["No price bars returned for the past 30 days"]

    def test_invalid_resolution(self, client, provider) -> None:
        result = asyncio.run(price_history(client, "AAPL", resolution="2H", now=NOW))
        assert result["error_type"] == "invalid_parameters"
        assert provider.requests == []

    def test_server_error(self, client, provider) -> None:
        provider.on("/stock/candle", 502)
        result = asyncio.run(price_history(client, "AAPL", now=NOW))
        assert result["error_type"] == "data_unavailable"
