"""WatchlistManager — borrowers waiting for an unavailable item to restock.

On restock every watcher receives one BOOK_AVAILABLE notification and the
whole watchlist for the item is cleared, however many copies came back.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from lendctl.domain.events import BookAvailableEvent, NotificationType, Watcher
from lendctl.domain.ids import is_blank
from lendctl.domain.records import Item, WatchlistEntry
from lendctl.services._helpers import now_iso
from lendctl.services.base import BaseService
from lendctl.services.result import ErrorCode, ServiceResult
from lendctl.services.telemetry import traced

if TYPE_CHECKING:
    from lendctl.infrastructure.store import StoreTransaction

logger = logging.getLogger(__name__)

_COLLECTION = "watchlist"


class WatchlistManager(BaseService):
    """Tracks per-borrower interest in items and announces restocks."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @traced
    def watch(self, borrower_id: str, item_id: str) -> ServiceResult:
        """Add (borrower, item) to the watchlist. Idempotent.

        NOT_FOUND for an unknown item; CONFLICT while the item still has a
        copy available.
        """
        op = "watch"
        if is_blank(borrower_id) or is_blank(item_id):
            return ServiceResult.failure(
                op, ErrorCode.VALIDATION, "Borrower ID and item ID are required"
            )

        with self._store.transaction() as txn:
            item_row = txn.get("items", item_id)
            if item_row is None:
                return ServiceResult.failure(
                    op, ErrorCode.NOT_FOUND, f"No item found with ID: {item_id}"
                )
            existing = _find_entry(txn, borrower_id, item_id)
            if existing is not None:
                return ServiceResult(
                    ok=True, op=op, data={**existing.to_data(), "created": False}
                )
            item = Item.model_validate(item_row)
            if item.is_available:
                return ServiceResult.failure(
                    op,
                    ErrorCode.CONFLICT,
                    f'"{item.title}" is available now; borrow it instead of watching',
                    available_copies=item.available_copies,
                )

        try:
            with self._store.transaction() as txn:
                entry_id = txn.put(
                    _COLLECTION,
                    {"borrower_id": borrower_id, "item_id": item_id, "created_at": now_iso()},
                )
                record = txn.get(_COLLECTION, entry_id)
            created = True
        except IntegrityError:
            # A concurrent watch() for the same pair won; return its entry.
            with self._store.transaction() as txn:
                entry = _find_entry(txn, borrower_id, item_id)
            if entry is None:
                raise
            record = entry.to_data()
            created = False

        entry = WatchlistEntry.model_validate(record)
        return ServiceResult(ok=True, op=op, data={**entry.to_data(), "created": created})

    @traced
    def unwatch(self, borrower_id: str, item_id: str) -> ServiceResult:
        """Remove (borrower, item). ``data["removed"]`` says whether anything was there."""
        op = "unwatch"
        with self._store.transaction() as txn:
            entry = _find_entry(txn, borrower_id, item_id)
            removed = entry is not None and txn.delete(_COLLECTION, entry.id)
        return ServiceResult(
            ok=True,
            op=op,
            data={"borrower_id": borrower_id, "item_id": item_id, "removed": removed},
        )

    def is_watching(self, borrower_id: str, item_id: str) -> bool:
        return bool(self._store.query(_COLLECTION, borrower_id=borrower_id, item_id=item_id))

    def watchers_of(self, item_id: str) -> list[WatchlistEntry]:
        """Entries for *item_id*, oldest first."""
        rows = self._store.query(_COLLECTION, item_id=item_id)
        entries = [WatchlistEntry.model_validate(r) for r in rows]
        return sorted(entries, key=lambda e: (e.created_at, e.id))

    def watcher_count(self, item_id: str) -> int:
        return len(self._store.query(_COLLECTION, item_id=item_id))

    def list_for_borrower(self, borrower_id: str) -> ServiceResult:
        """The borrower's watchlist, newest first, with item titles."""
        op = "list_watchlist"
        with self._store.transaction() as txn:
            entries = [
                WatchlistEntry.model_validate(r)
                for r in txn.query(_COLLECTION, borrower_id=borrower_id)
            ]
            items = {e.item_id: txn.get("items", e.item_id) for e in entries}
        entries.sort(key=lambda e: (e.created_at, e.id), reverse=True)

        rows = []
        for entry in entries:
            item = items[entry.item_id]
            rows.append(
                {
                    **entry.to_data(),
                    "item_title": item["title"] if item is not None else None,
                    "available_copies": item["available_copies"] if item is not None else None,
                }
            )
        return ServiceResult(ok=True, op=op, data={"count": len(rows), "items": rows})

    @traced
    def on_restock(self, item_id: str) -> ServiceResult:
        """Announce a restock of *item_id* to every watcher, then clear them.

        One BOOK_AVAILABLE dispatch carries the full watcher list; the
        entries retrieved for it are deleted as a single batch afterwards.
        """
        op = "on_restock"
        warnings: list[str] = []

        with self._store.transaction() as txn:
            item_row = txn.get("items", item_id)
            rows = txn.query(_COLLECTION, item_id=item_id)
        if item_row is None:
            return ServiceResult.failure(
                op, ErrorCode.NOT_FOUND, f"No item found with ID: {item_id}"
            )
        if not rows:
            return ServiceResult(ok=True, op=op, data={"item_id": item_id, "notified": 0})

        entries = sorted(
            (WatchlistEntry.model_validate(r) for r in rows), key=lambda e: (e.created_at, e.id)
        )
        event = BookAvailableEvent(
            item_id=item_id,
            item_title=item_row["title"],
            watchers=[Watcher(entry_id=e.id, borrower_id=e.borrower_id) for e in entries],
        )
        self._dispatch_event(NotificationType.BOOK_AVAILABLE, event, warnings)

        cleared = self._store.batch_delete(_COLLECTION, [e.id for e in entries])
        logger.debug("Cleared %d watcher(s) of %s after restock", cleared, item_id)
        return ServiceResult(
            ok=True,
            op=op,
            data={"item_id": item_id, "notified": len(entries), "cleared": cleared},
            warnings=warnings,
        )


def _find_entry(txn: StoreTransaction, borrower_id: str, item_id: str) -> WatchlistEntry | None:
    rows = txn.query(_COLLECTION, borrower_id=borrower_id, item_id=item_id)
    return WatchlistEntry.model_validate(rows[0]) if rows else None
