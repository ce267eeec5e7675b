"""Stored portfolio entries and notes for a user."""

from time import perf_counter
from typing import Any

from stock_dashboard.data.finnhub_client import MarketDataClient
from stock_dashboard.data.user_records import UserRecordStore
from stock_dashboard.models import parse_timestamp
from stock_dashboard.tools.portfolio import PortfolioAnalytics, portfolio_summary
from stock_dashboard.utils.provenance import build_error_response, build_meta


def _missing_user() -> dict[str, Any]:
    return build_error_response(
        error_type="invalid_parameters",
        message="user_id is required",
    )


def save_holding(
    store: UserRecordStore,
    user_id: str,
    symbol: str,
    shares: float = 0.0,
    avg_price: float = 0.0,
    purchase_date: str | None = None,
) -> dict[str, Any]:
    """
    Add or replace a portfolio entry. shares == 0 saves to the watchlist.

    Args:
        store: User record store
        user_id: Owner of the portfolio
        symbol: Stock ticker symbol
        shares: Number of shares held
        avg_price: Average purchase price per share
        purchase_date: ISO-8601 date (default: now)

    Returns:
        Dict with the stored entry and the portfolio size
    """
    start_time = perf_counter()
    if not user_id or not user_id.strip():
        return _missing_user()

    parsed_date = parse_timestamp(purchase_date)
    if purchase_date and parsed_date is None:
        return build_error_response(
            error_type="invalid_parameters",
            message=f"Invalid purchase_date: {purchase_date}",
            symbol=symbol,
        )

    try:
        holding = store.upsert_holding(user_id, symbol, shares, avg_price, purchase_date=parsed_date)
    except ValueError as e:
        return build_error_response(
            error_type="invalid_parameters",
            message=str(e),
            symbol=symbol,
        )

    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "meta": build_meta("save_holding", duration_ms),
        "user_id": user_id,
        "holding": holding.to_record(),
        "watchlist": holding.is_watchlist,
        "portfolio_size": len(store.load_portfolio(user_id)),
    }


def delete_holding(store: UserRecordStore, user_id: str, symbol: str) -> dict[str, Any]:
    """Remove a symbol from a user's portfolio or watchlist."""
    start_time = perf_counter()
    if not user_id or not user_id.strip():
        return _missing_user()

    removed = store.remove_holding(user_id, symbol)
    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "meta": build_meta("delete_holding", duration_ms),
        "user_id": user_id,
        "symbol": symbol.upper().strip(),
        "removed": removed,
    }


def save_note(store: UserRecordStore, user_id: str, title: str, content: str) -> dict[str, Any]:
    """Add a note to the top of a user's list."""
    start_time = perf_counter()
    if not user_id or not user_id.strip():
        return _missing_user()

    try:
        note = store.add_note(user_id, title, content)
    except ValueError as e:
        return build_error_response(
            error_type="invalid_parameters",
            message=str(e),
        )

    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "meta": build_meta("save_note", duration_ms),
        "user_id": user_id,
        "note": note.to_record(),
    }


def user_notes(store: UserRecordStore, user_id: str) -> dict[str, Any]:
    """A user's notes, newest first."""
    start_time = perf_counter()
    if not user_id or not user_id.strip():
        return _missing_user()

    notes = store.list_notes(user_id)
    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "meta": build_meta("user_notes", duration_ms),
        "user_id": user_id,
        "count": len(notes),
        "notes": [n.to_record() for n in notes],
    }


async def stored_portfolio_summary(
    client: MarketDataClient,
    store: UserRecordStore,
    user_id: str,
    analytics: PortfolioAnalytics | None = None,
) -> dict[str, Any]:
    """Value the portfolio saved for a user."""
    if not user_id or not user_id.strip():
        return _missing_user()
    records = [h.to_record() for h in store.load_portfolio(user_id)]
    return await portfolio_summary(client, records, analytics=analytics)
