"""InventoryLedger — the only authority over an item's available copies.

The counter is changed exclusively through the conditional updates in
:mod:`lendctl.infrastructure.database.inventory`, so it stays within
``[0, total_copies]`` under any interleaving of callers.
"""

from __future__ import annotations

from lendctl.domain.ids import is_blank
from lendctl.domain.lifecycle import RequestStatus
from lendctl.domain.records import Item
from lendctl.infrastructure.database.inventory import (
    InventoryConflictError,
    ItemNotFoundError,
    read_counts,
    release_copy,
    reserve_copy,
)
from lendctl.services._helpers import now_iso
from lendctl.services.base import BaseService
from lendctl.services.result import ErrorCode, ServiceResult
from lendctl.services.telemetry import traced

_COLLECTION = "items"


class InventoryLedger(BaseService):
    """Catalogue items and reserve/release their copies."""

    # ------------------------------------------------------------------
    # Catalogue
    # ------------------------------------------------------------------

    @traced
    def register_item(self, title: str, total_copies: int) -> ServiceResult:
        """Catalogue a new item with every copy available."""
        op = "register_item"
        if is_blank(title):
            return ServiceResult.failure(op, ErrorCode.VALIDATION, "Title is required")
        if total_copies <= 0:
            return ServiceResult.failure(
                op,
                ErrorCode.VALIDATION,
                f"Total copies must be positive, got {total_copies}",
            )

        with self._store.transaction() as txn:
            item_id = txn.put(
                _COLLECTION,
                {
                    "title": title.strip(),
                    "total_copies": total_copies,
                    "available_copies": total_copies,
                    "created_at": now_iso(),
                },
            )
            record = txn.get(_COLLECTION, item_id)
        return ServiceResult(ok=True, op=op, data=Item.model_validate(record).to_data())

    @traced
    def remove_item(self, item_id: str) -> ServiceResult:
        """Remove an item from the catalogue.

        Rejected with CONFLICT while pending or approved requests reference
        it. Watchlist entries and closed requests for the item go with it.
        """
        op = "remove_item"
        if is_blank(item_id):
            return ServiceResult.failure(op, ErrorCode.VALIDATION, "Item ID is required")

        with self._store.transaction() as txn:
            if txn.get(_COLLECTION, item_id) is None:
                return ServiceResult.failure(
                    op, ErrorCode.NOT_FOUND, f"No item found with ID: {item_id}"
                )
            active = [
                r["id"]
                for status in (RequestStatus.PENDING, RequestStatus.APPROVED)
                for r in txn.query("borrow_requests", item_id=item_id, status=status.value)
            ]
            if active:
                return ServiceResult.failure(
                    op,
                    ErrorCode.CONFLICT,
                    f"Item {item_id} has {len(active)} active request(s)",
                    request_ids=active,
                )
            closed = [r["id"] for r in txn.query("borrow_requests", item_id=item_id)]
            watchers = [w["id"] for w in txn.query("watchlist", item_id=item_id)]
            txn.batch_delete("borrow_requests", closed)
            txn.batch_delete("watchlist", watchers)
            txn.delete(_COLLECTION, item_id)

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "id": item_id,
                "removed_requests": len(closed),
                "removed_watchers": len(watchers),
            },
        )

    def find(self, item_id: str) -> Item | None:
        """Typed lookup for other services. None when *item_id* is unknown."""
        record = self._store.get(_COLLECTION, item_id)
        return Item.model_validate(record) if record is not None else None

    def list_items(self, *, available_only: bool = False) -> ServiceResult:
        items = [Item.model_validate(r) for r in self._store.query(_COLLECTION)]
        if available_only:
            items = [i for i in items if i.is_available]
        items.sort(key=lambda i: i.title.lower())
        return ServiceResult(
            ok=True,
            op="list_items",
            data={"count": len(items), "items": [i.to_data() for i in items]},
        )

    # ------------------------------------------------------------------
    # Counter operations
    # ------------------------------------------------------------------

    @traced
    def reserve(self, item_id: str) -> ServiceResult:
        """Take one copy. CONFLICT when none is available."""
        op = "reserve"
        if is_blank(item_id):
            return ServiceResult.failure(op, ErrorCode.VALIDATION, "Item ID is required")
        try:
            with self._store.transaction() as txn:
                available = reserve_copy(txn.conn, item_id)
        except ItemNotFoundError as exc:
            return ServiceResult.failure(op, ErrorCode.NOT_FOUND, str(exc))
        except InventoryConflictError as exc:
            return ServiceResult.failure(op, ErrorCode.CONFLICT, str(exc), item_id=item_id)
        return ServiceResult(
            ok=True, op=op, data={"item_id": item_id, "available_copies": available}
        )

    @traced
    def release(self, item_id: str) -> ServiceResult:
        """Put one copy back. CONFLICT when every copy is already in."""
        op = "release"
        if is_blank(item_id):
            return ServiceResult.failure(op, ErrorCode.VALIDATION, "Item ID is required")
        try:
            with self._store.transaction() as txn:
                available, restocked = release_copy(txn.conn, item_id)
        except ItemNotFoundError as exc:
            return ServiceResult.failure(op, ErrorCode.NOT_FOUND, str(exc))
        except InventoryConflictError as exc:
            return ServiceResult.failure(op, ErrorCode.CONFLICT, str(exc), item_id=item_id)
        return ServiceResult(
            ok=True,
            op=op,
            data={"item_id": item_id, "available_copies": available, "restocked": restocked},
        )

    def query(self, item_id: str) -> ServiceResult:
        """Current counts for *item_id*. No side effects."""
        op = "query"
        if is_blank(item_id):
            return ServiceResult.failure(op, ErrorCode.VALIDATION, "Item ID is required")
        with self._store.transaction() as txn:
            counts = read_counts(txn.conn, item_id)
        if counts is None:
            return ServiceResult.failure(
                op, ErrorCode.NOT_FOUND, f"No item found with ID: {item_id}"
            )
        available, total = counts
        return ServiceResult(
            ok=True,
            op=op,
            data={"item_id": item_id, "available_copies": available, "total_copies": total},
        )
