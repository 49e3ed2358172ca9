"""DocumentStore — collection-oriented storage over SQLAlchemy Core.

Services see storage as a small document-store contract: ``get``,
``query`` (equality filters only), ``put``, ``update``, ``delete`` and
``batch_delete``, each addressed by collection name. Ordering is never
requested from storage; callers sort in memory.

:meth:`DocumentStore.transaction` yields a :class:`StoreTransaction` whose
operations share one database transaction (auto-commit on success,
auto-rollback on exception). The convenience methods on the store itself
each run in their own short transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, delete, insert, select, update

from lendctl.domain.ids import generate_id
from lendctl.infrastructure.database.schema import COLLECTIONS

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Connection, Table
    from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


def _table(collection: str) -> Table:
    try:
        return COLLECTIONS[collection]
    except KeyError:
        msg = f"Unknown collection: {collection!r}"
        raise ValueError(msg) from None


def _conditions(table: Table, fields: dict[str, Any]) -> list[Any]:
    conds = []
    for name, value in fields.items():
        if name not in table.c:
            msg = f"Unknown field {name!r} for collection {table.name!r}"
            raise ValueError(msg)
        conds.append(table.c[name] == value)
    return conds


@dataclass
class StoreTransaction:
    """Store operations bound to one open connection."""

    conn: Connection

    def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        table = _table(collection)
        row = self.conn.execute(select(table).where(table.c.id == record_id)).first()
        return dict(row._mapping) if row is not None else None

    def query(self, collection: str, **equals: Any) -> list[dict[str, Any]]:
        """All records whose fields equal *equals*. Order is unspecified."""
        table = _table(collection)
        stmt = select(table)
        conds = _conditions(table, equals)
        if conds:
            stmt = stmt.where(and_(*conds))
        return [dict(row._mapping) for row in self.conn.execute(stmt)]

    def put(self, collection: str, record: dict[str, Any]) -> str:
        """Insert *record*, generating an ID when it has none. Returns the ID."""
        table = _table(collection)
        values = dict(record)
        values.setdefault("id", generate_id(collection))
        self.conn.execute(insert(table).values(**values))
        return str(values["id"])

    def update(
        self,
        collection: str,
        record_id: str,
        fields: dict[str, Any],
        *,
        expect: dict[str, Any] | None = None,
    ) -> bool:
        """Apply *fields* to one record.

        When *expect* is given the write only happens if the stored record
        still matches it (compare-and-set). Returns True if a row changed.
        """
        table = _table(collection)
        conds = [table.c.id == record_id, *_conditions(table, expect or {})]
        result = self.conn.execute(update(table).where(*conds).values(**fields))
        return result.rowcount > 0

    def delete(self, collection: str, record_id: str) -> bool:
        table = _table(collection)
        result = self.conn.execute(delete(table).where(table.c.id == record_id))
        return result.rowcount > 0

    def batch_delete(self, collection: str, record_ids: Iterable[str]) -> int:
        """Delete every listed record in one statement. Returns the count removed."""
        ids = list(record_ids)
        if not ids:
            return 0
        table = _table(collection)
        result = self.conn.execute(delete(table).where(table.c.id.in_(ids)))
        return int(result.rowcount)


class DocumentStore:
    """The storage collaborator injected into every service."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine (for direct access when needed)."""
        return self._engine

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """One database transaction spanning every operation in the block.

        Usage::

            with store.transaction() as txn:
                request = txn.get("borrow_requests", request_id)
                txn.update("borrow_requests", request_id, {...})
                # Both commit on success, both roll back on failure.
        """
        with self._engine.begin() as conn:
            yield StoreTransaction(conn)

    def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        with self.transaction() as txn:
            return txn.get(collection, record_id)

    def query(self, collection: str, **equals: Any) -> list[dict[str, Any]]:
        with self.transaction() as txn:
            return txn.query(collection, **equals)

    def put(self, collection: str, record: dict[str, Any]) -> str:
        with self.transaction() as txn:
            return txn.put(collection, record)

    def update(
        self,
        collection: str,
        record_id: str,
        fields: dict[str, Any],
        *,
        expect: dict[str, Any] | None = None,
    ) -> bool:
        with self.transaction() as txn:
            return txn.update(collection, record_id, fields, expect=expect)

    def delete(self, collection: str, record_id: str) -> bool:
        with self.transaction() as txn:
            return txn.delete(collection, record_id)

    def batch_delete(self, collection: str, record_ids: Iterable[str]) -> int:
        with self.transaction() as txn:
            return txn.batch_delete(collection, record_ids)

    def close(self) -> None:
        """Release pooled connections."""
        self._engine.dispose()
        logger.debug("Document store closed")
