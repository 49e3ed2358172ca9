"""Atomic reserve/release of item copies.

Each operation is a single conditional ``UPDATE`` whose ``WHERE`` clause
carries the bound check, so concurrent callers racing for the last copies
are serialized by the database and the counter never leaves
``[0, total_copies]``. A read-then-write sequence is never used here.

The caller owns the transaction — pass a ``Connection`` obtained from
``engine.begin()`` so the counter change participates in the same atomic
transaction as the surrounding writes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select, update

from lendctl.infrastructure.database.schema import items

if TYPE_CHECKING:
    from sqlalchemy import Connection


class ItemNotFoundError(LookupError):
    """The referenced item does not exist."""


class InventoryConflictError(RuntimeError):
    """The counter is already at its bound (no copy left, or all copies in)."""


def reserve_copy(conn: Connection, item_id: str) -> int:
    """Take one copy of *item_id*. Returns the new available count.

    Raises:
        ItemNotFoundError: If the item does not exist.
        InventoryConflictError: If no copy is available.
    """
    result = conn.execute(
        update(items)
        .where(items.c.id == item_id, items.c.available_copies > 0)
        .values(available_copies=items.c.available_copies - 1)
    )
    if result.rowcount == 0:
        _raise_for_missing(conn, item_id)
        msg = f"No copy of item {item_id} is available"
        raise InventoryConflictError(msg)
    return _available(conn, item_id)


def release_copy(conn: Connection, item_id: str) -> tuple[int, bool]:
    """Put one copy of *item_id* back.

    Returns ``(available_copies, restocked)`` where *restocked* is True when
    this release moved availability from zero to one.

    Raises:
        ItemNotFoundError: If the item does not exist.
        InventoryConflictError: If every copy is already in.
    """
    result = conn.execute(
        update(items)
        .where(items.c.id == item_id, items.c.available_copies < items.c.total_copies)
        .values(available_copies=items.c.available_copies + 1)
    )
    if result.rowcount == 0:
        _raise_for_missing(conn, item_id)
        msg = f"All copies of item {item_id} are already available"
        raise InventoryConflictError(msg)
    available = _available(conn, item_id)
    return available, available == 1


def read_counts(conn: Connection, item_id: str) -> tuple[int, int] | None:
    """Return ``(available_copies, total_copies)`` or None for an unknown item."""
    row = conn.execute(
        select(items.c.available_copies, items.c.total_copies).where(items.c.id == item_id)
    ).first()
    if row is None:
        return None
    return row.available_copies, row.total_copies


def _available(conn: Connection, item_id: str) -> int:
    return int(
        conn.execute(select(items.c.available_copies).where(items.c.id == item_id)).scalar_one()
    )


def _raise_for_missing(conn: Connection, item_id: str) -> None:
    row = conn.execute(select(items.c.id).where(items.c.id == item_id)).first()
    if row is None:
        msg = f"No item found with ID: {item_id}"
        raise ItemNotFoundError(msg)
