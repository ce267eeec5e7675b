"""Price history tool."""

from datetime import datetime
from time import perf_counter
from typing import Any

from stock_dashboard.data.errors import FETCH_ERRORS, RateLimitedError
from stock_dashboard.data.finnhub_client import MarketDataClient
from stock_dashboard.tools.market_overview import get_market_state
from stock_dashboard.utils.ohlcv import candles_to_frame, df_to_rows, summarize_frame
from stock_dashboard.utils.provenance import build_error_response, build_meta, build_provenance
from stock_dashboard.utils.validators import CandleParams


async def price_history(
    client: MarketDataClient,
    symbol: str,
    days: int = 30,
    resolution: str = "D",
    include_bars: bool = True,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Fetch OHLCV candles with summary statistics.

    Args:
        client: Shared market data client
        symbol: Stock ticker symbol
        days: Days of history ending now (default: 30)
        resolution: Bar resolution - 1, 5, 15, 30, 60, D, W, M (default: D)
        include_bars: Include every bar in the response (default: true)

    Returns:
        Dict with summary and bars
    """
    start_time = perf_counter()

    try:
        params = CandleParams(symbol=symbol, days=days, resolution=resolution)
    except ValueError as e:
        return build_error_response(
            error_type="invalid_parameters",
            message=str(e),
            symbol=symbol,
        )

    start, end = params.time_range(now)
    try:
        payload = await client.candles(params.symbol, start, end, params.resolution)
    except RateLimitedError as e:
        return build_error_response(
            error_type="rate_limited",
            message=str(e),
            symbol=symbol,
            retry_after_seconds=e.retry_after,
        )
    except FETCH_ERRORS as e:
        return build_error_response(
            error_type="data_unavailable",
            message=f"Failed to fetch data: {e}",
            symbol=symbol,
        )

    df = candles_to_frame(payload)
    warnings: list[str] = []
    if df.empty:
        warnings.append(f"No price bars returned for the past {params.days} days")

    market_state = get_market_state()
    duration_ms = (perf_counter() - start_time) * 1000

    response: dict[str, Any] = {
        "meta": build_meta("price_history", duration_ms),
        "data_provenance": {
            "price": build_provenance(
                market_state=market_state["state"],
                market_state_method=market_state["method"],
                last_bar_date=df["date"].iloc[-1] if len(df) > 0 else None,
                warnings=warnings,
            ),
        },
        "symbol": params.symbol,
        "days": params.days,
        "resolution": params.resolution,
        "summary": summarize_frame(df),
    }

    if include_bars:
        response["bars"] = df_to_rows(df)

    return response
