"""Per-user documents: portfolio entries and free-text notes."""

import copy
import logging
import os
from collections.abc import Callable, Iterable, MutableMapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import diskcache

from stock_dashboard.models import Holding, parse_timestamp
from stock_dashboard.utils.sanitize import sanitize_text

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Note:
    id: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


class UserRecordStore:
    """
    Document store keyed by user id.

    Each document holds a `portfolio` list and a `notes` list. Reads return
    point-in-time snapshots; writes replace a whole field, never part of one.

    The backing mapping is injectable. Without one, a process-local dict is
    used, or a diskcache.Cache under USER_STORE_DIR when that is set.
    """

    def __init__(
        self,
        store: MutableMapping[str, dict[str, Any]] | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        if store is None:
            store_dir = os.environ.get("USER_STORE_DIR")
            store = diskcache.Cache(store_dir) if store_dir else {}
        self._store = store
        self._clock = clock

    def get(self, user_id: str) -> dict[str, Any]:
        """Snapshot of a user's document (empty when the user has none)."""
        return copy.deepcopy(self._store.get(user_id) or {})

    def replace_field(self, user_id: str, field_name: str, items: Iterable[Any]) -> None:
        """Replace one top-level array of a user's document."""
        document = self.get(user_id)
        document[field_name] = list(items)
        # Reassign so persistent stores see the write
        self._store[user_id] = document

    # ------------------------------------------------------------------
    # Portfolio
    # ------------------------------------------------------------------

    def load_portfolio(self, user_id: str) -> list[Holding]:
        """Stored portfolio entries as holdings. Malformed entries are skipped."""
        holdings: list[Holding] = []
        for record in self.get(user_id).get("portfolio", []):
            try:
                holdings.append(Holding.from_record(record))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping malformed portfolio entry for {user_id}: {e}")
        return holdings

    def upsert_holding(
        self,
        user_id: str,
        symbol: str,
        shares: float,
        avg_price: float,
        purchase_date: datetime | None = None,
    ) -> Holding:
        """
        Add or replace the entry for a symbol.

        Any existing entry for the symbol (including a bare-string watchlist
        entry) is removed before the new one is appended. shares == 0 saves
        the symbol to the watchlist.
        """
        now = self._clock()
        holding = Holding(
            symbol=symbol,
            shares=shares,
            avg_price=avg_price,
            purchase_date=purchase_date or now,
            added_at=now,
        )
        remaining = _without_symbol(self.get(user_id).get("portfolio", []), holding.symbol)
        self.replace_field(user_id, "portfolio", [*remaining, holding.to_record()])
        return holding

    def remove_holding(self, user_id: str, symbol: str) -> bool:
        """Remove a symbol from the portfolio. Returns False if it was not there."""
        current = self.get(user_id).get("portfolio", [])
        remaining = _without_symbol(current, symbol.upper().strip())
        if len(remaining) == len(current):
            return False
        self.replace_field(user_id, "portfolio", remaining)
        return True

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def list_notes(self, user_id: str) -> list[Note]:
        """Notes newest first. Unreadable timestamps fall back to now."""
        now = self._clock()
        notes: list[Note] = []
        for record in self.get(user_id).get("notes", []):
            if not isinstance(record, dict):
                continue
            notes.append(
                Note(
                    id=str(record.get("id", "")),
                    title=str(record.get("title", "")),
                    content=str(record.get("content", "")),
                    created_at=parse_timestamp(record.get("createdAt")) or now,
                    updated_at=parse_timestamp(record.get("updatedAt")) or now,
                )
            )
        return notes

    def add_note(self, user_id: str, title: str, content: str) -> Note:
        """
        Prepend a note to the user's list.

        Raises:
            ValueError: If the title or content is blank
        """
        clean_title = sanitize_text(title, max_length=200)
        clean_content = (content or "").strip()
        if not clean_title or not clean_content:
            raise ValueError("Note title and content are required")

        now = self._clock()
        note = Note(
            id=str(int(now.timestamp() * 1000)),
            title=clean_title,
            content=clean_content,
            created_at=now,
            updated_at=now,
        )
        existing = self.get(user_id).get("notes", [])
        self.replace_field(user_id, "notes", [note.to_record(), *existing])
        return note


def _without_symbol(entries: list[Any], symbol: str) -> list[Any]:
    def matches(entry: Any) -> bool:
        if isinstance(entry, str):
            return entry.upper().strip() == symbol
        if isinstance(entry, dict):
            return str(entry.get("symbol", "")).upper().strip() == symbol
        return False

    return [e for e in entries if not matches(e)]
