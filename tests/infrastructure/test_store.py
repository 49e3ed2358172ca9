"""Tests for DocumentStore — collection storage over SQLAlchemy Core."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from lendctl.infrastructure.database.engine import init_database
from lendctl.infrastructure.store import DocumentStore


def _item(title: str = "Dune", copies: int = 2) -> dict[str, object]:
    return {
        "title": title,
        "total_copies": copies,
        "available_copies": copies,
        "created_at": "2030-01-01T00:00:00+00:00",
    }


class TestSchema:
    def test_tables_created(self, db_engine: Engine) -> None:
        names = set(inspect(db_engine).get_table_names())
        assert {
            "items",
            "users",
            "borrow_requests",
            "notifications",
            "watchlist",
            "delivery_wal",
        } <= names

    def test_init_is_idempotent(self, tmp_path: Path) -> None:
        first = init_database(tmp_path / "db" / "a.db")
        first.dispose()
        second = init_database(tmp_path / "db" / "a.db")
        assert "items" in inspect(second).get_table_names()
        second.dispose()

    def test_connection_pragmas(self, db_engine: Engine) -> None:
        with db_engine.connect() as conn:
            assert conn.exec_driver_sql("PRAGMA journal_mode").scalar() == "wal"
            assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1
            assert conn.exec_driver_sql("PRAGMA busy_timeout").scalar() == 30000


class TestDocumentStore:
    def test_put_generates_prefixed_id(self, store: DocumentStore) -> None:
        item_id = store.put("items", _item())
        assert item_id.startswith("itm_")
        assert store.get("items", item_id)["title"] == "Dune"

    def test_get_missing(self, store: DocumentStore) -> None:
        assert store.get("items", "itm_000000000000") is None

    def test_query_equality_filters(self, store: DocumentStore) -> None:
        store.put("items", _item("Dune"))
        store.put("items", _item("Emma"))
        assert len(store.query("items")) == 2
        [row] = store.query("items", title="Emma")
        assert row["title"] == "Emma"

    def test_update_compare_and_set(self, store: DocumentStore) -> None:
        item_id = store.put("items", _item())
        assert not store.update("items", item_id, {"title": "X"}, expect={"title": "Other"})
        assert store.update("items", item_id, {"title": "X"}, expect={"title": "Dune"})
        assert store.get("items", item_id)["title"] == "X"

    def test_delete_and_batch_delete(self, store: DocumentStore) -> None:
        ids = [store.put("items", _item(f"T{i}")) for i in range(3)]
        assert store.delete("items", ids[0])
        assert not store.delete("items", ids[0])
        assert store.batch_delete("items", ids[1:]) == 2
        assert store.batch_delete("items", []) == 0
        assert store.query("items") == []

    def test_unknown_collection(self, store: DocumentStore) -> None:
        with pytest.raises(ValueError, match="Unknown collection"):
            store.get("shelves", "x")

    def test_unknown_field(self, store: DocumentStore) -> None:
        with pytest.raises(ValueError, match="Unknown field"):
            store.query("items", colour="red")

    def test_transaction_rolls_back_on_error(self, store: DocumentStore) -> None:
        with pytest.raises(RuntimeError), store.transaction() as txn:
            txn.put("items", _item("Ghost"))
            raise RuntimeError("boom")
        assert store.query("items", title="Ghost") == []

    def test_check_constraint_guards_counts(self, store: DocumentStore) -> None:
        bad = _item()
        bad["available_copies"] = 5
        with pytest.raises(IntegrityError):
            store.put("items", bad)

    def test_one_pending_request_per_pair(self, store: DocumentStore) -> None:
        item_id = store.put("items", _item())
        request = {
            "borrower_id": "usr_000000000001",
            "item_id": item_id,
            "status": "pending",
            "requested_at": "2030-01-01T00:00:00+00:00",
        }
        store.put("borrow_requests", dict(request))
        with pytest.raises(IntegrityError):
            store.put("borrow_requests", dict(request))
        # Closed requests do not count against the pair.
        store.put("borrow_requests", {**request, "status": "rejected"})
