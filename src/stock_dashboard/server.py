"""Stock Dashboard MCP Server using FastMCP."""

import json
import logging
import os
from typing import Any

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from stock_dashboard import SCHEMA_VERSION, SERVER_VERSION
from stock_dashboard.data.finnhub_client import MarketDataClient
from stock_dashboard.data.user_records import UserRecordStore
from stock_dashboard.tools import (
    compare_stocks,
    delete_holding,
    market_overview,
    portfolio_summary,
    price_history,
    quote_payload,
    save_holding,
    save_note,
    search_payload,
    stock_detail,
    stock_news,
    stock_peers,
    stored_portfolio_summary,
    symbol_search,
    user_notes,
)
from stock_dashboard.utils.provenance import build_error_response

# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, log_level, logging.INFO))
logger = logging.getLogger(__name__)

# Create FastMCP server instance
mcp = FastMCP(
    name="stock-dashboard",
)

# One client (cache + rate windows) and one record store per server process
_client: MarketDataClient | None = None
_records: UserRecordStore | None = None


def get_client() -> MarketDataClient:
    global _client
    if _client is None:
        _client = MarketDataClient()
    return _client


def get_record_store() -> UserRecordStore:
    global _records
    if _records is None:
        _records = UserRecordStore()
    return _records


def _dump(result: dict[str, Any]) -> str:
    return json.dumps(result, indent=2, default=str)


# ============================================================================
# TOOLS
# ============================================================================


@mcp.tool
async def search_symbol(query: str, limit: int = 8) -> str:
    """
    Search for stock symbols by company name or ticker.

    Args:
        query: Search query (at least two characters)
        limit: Maximum number of results (default: 8, max: 8)

    Returns:
        JSON with search results and exact match info
    """
    return _dump(await symbol_search(get_client(), query=query, limit=limit))


@mcp.tool
async def get_quote(symbol: str) -> str:
    """
    Get the latest raw quote for a stock.

    Args:
        symbol: Stock ticker symbol (e.g., AAPL, MSFT)

    Returns:
        JSON with symbol, provider quote fields (c, o, h, l, pc, d, dp, v) and timestamp
    """
    status, body = await quote_payload(get_client(), symbol)
    if status != 200:
        return _dump(
            build_error_response(
                error_type="invalid_parameters" if status == 400 else "data_unavailable",
                message=body.get("message") or body["error"],
                symbol=symbol,
            )
        )
    return _dump(body)


@mcp.tool
async def get_stock_detail(symbol: str) -> str:
    """
    Full stock view: price, fundamentals, sector, risk rating and recommendation.

    Technical, news and insider blocks are illustrative placeholders and are
    listed under detail.synthetic_fields. Do not present them as measured data.

    Args:
        symbol: Stock ticker symbol

    Returns:
        JSON with detail, signals (risk, momentum, recommendation) and analysis points
    """
    return _dump(await stock_detail(get_client(), symbol=symbol))


@mcp.tool
async def get_peers(symbol: str) -> str:
    """
    Get quote snapshots for up to five peer companies.

    Args:
        symbol: Stock ticker symbol

    Returns:
        JSON with peer symbols, names, prices and market caps
    """
    return _dump(await stock_peers(get_client(), symbol=symbol))


@mcp.tool
async def get_price_history(
    symbol: str,
    days: int = 30,
    resolution: str = "D",
    include_bars: bool = True,
) -> str:
    """
    Fetch OHLCV candles with summary statistics.

    Args:
        symbol: Stock ticker symbol
        days: Days of history (default: 30)
        resolution: Bar resolution - 1, 5, 15, 30, 60, D, W, M (default: D)
        include_bars: Include every bar in the response (default: true)

    Returns:
        JSON with price summary and bars
    """
    result = await price_history(
        get_client(),
        symbol=symbol,
        days=days,
        resolution=resolution,
        include_bars=include_bars,
    )
    return _dump(result)


@mcp.tool
async def get_news(symbol: str, days: int = 7) -> str:
    """
    Get the five most recent company news articles.

    Args:
        symbol: Stock ticker symbol
        days: Number of days to look back (default: 7)

    Returns:
        JSON with articles and keyword sentiment tally
    """
    return _dump(await stock_news(get_client(), symbol=symbol, days=days))


@mcp.tool
async def get_portfolio_summary(
    holdings: list[dict[str, Any]] | None = None,
    user_id: str | None = None,
) -> str:
    """
    Value a portfolio: totals, gain/loss, sector and industry allocation, XIRR.

    Pass holdings directly, or a user_id to load the stored portfolio.
    Entries with shares == 0 are watchlist symbols and are excluded from
    all figures.

    Args:
        holdings: List of {symbol, shares, avgPrice, purchaseDate}
        user_id: Owner of a stored portfolio (used when holdings is omitted)

    Returns:
        JSON with totals, allocations, XIRR, per-position detail and watchlist
    """
    if holdings is None:
        if not user_id:
            return _dump(
                build_error_response(
                    error_type="invalid_parameters",
                    message="Either holdings or user_id is required",
                )
            )
        return _dump(await stored_portfolio_summary(get_client(), get_record_store(), user_id))
    return _dump(await portfolio_summary(get_client(), holdings=holdings))


@mcp.tool
async def get_comparison(symbols: list[str]) -> str:
    """
    Compare up to five stocks side by side.

    Args:
        symbols: Ticker symbols (1 to 5, no duplicates)

    Returns:
        JSON with per-stock metrics and signals, best/worst marks per metric,
        and best today / long-term / dividend / short-term picks
    """
    return _dump(await compare_stocks(get_client(), symbols=symbols))


@mcp.tool
async def add_holding(
    user_id: str,
    symbol: str,
    shares: float = 0.0,
    avg_price: float = 0.0,
    purchase_date: str | None = None,
) -> str:
    """
    Add or replace a stored portfolio entry.

    Args:
        user_id: Owner of the portfolio
        symbol: Stock ticker symbol
        shares: Shares held; 0 saves the symbol to the watchlist (default: 0)
        avg_price: Average purchase price per share (default: 0)
        purchase_date: ISO-8601 purchase date (default: now)

    Returns:
        JSON with the stored entry
    """
    result = save_holding(
        get_record_store(),
        user_id=user_id,
        symbol=symbol,
        shares=shares,
        avg_price=avg_price,
        purchase_date=purchase_date,
    )
    return _dump(result)


@mcp.tool
async def remove_holding(user_id: str, symbol: str) -> str:
    """
    Remove a symbol from a stored portfolio or watchlist.

    Returns:
        JSON with removed: true/false
    """
    return _dump(delete_holding(get_record_store(), user_id=user_id, symbol=symbol))


@mcp.tool
async def add_note(user_id: str, title: str, content: str) -> str:
    """
    Save a free-text note for a user.

    Args:
        user_id: Owner of the note
        title: Note title
        content: Note body

    Returns:
        JSON with the stored note
    """
    return _dump(save_note(get_record_store(), user_id=user_id, title=title, content=content))


@mcp.tool
async def list_notes(user_id: str) -> str:
    """
    List a user's notes, newest first.

    Returns:
        JSON with notes
    """
    return _dump(user_notes(get_record_store(), user_id=user_id))


@mcp.tool
async def get_market_overview() -> str:
    """
    Get S&P 500, NASDAQ and Dow Jones levels plus the US market session state.

    Returns:
        JSON with index values, daily changes and market state
    """
    return _dump(await market_overview(get_client()))


# ============================================================================
# HTTP ROUTES
# ============================================================================


@mcp.custom_route("/search/{query}", methods=["GET"])
async def search_route(request: Request) -> JSONResponse:
    status, body = await search_payload(get_client(), request.path_params.get("query"))
    return JSONResponse(body, status_code=status)


@mcp.custom_route("/quote/{symbol}", methods=["GET"])
async def quote_route(request: Request) -> JSONResponse:
    status, body = await quote_payload(get_client(), request.path_params.get("symbol"))
    return JSONResponse(body, status_code=status)


# ============================================================================
# ENTRY POINT
# ============================================================================


def main() -> None:
    """Run the MCP server."""
    logger.info(f"Starting Stock Dashboard MCP Server v{SERVER_VERSION} (schema v{SCHEMA_VERSION})")
    mcp.run()


if __name__ == "__main__":
    main()
