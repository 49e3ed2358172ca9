"""Tests for WatchlistManager — watching unavailable items and restock fan-out."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from lendctl.app import LendingApp

MakeUser = Callable[..., dict[str, Any]]
MakeItem = Callable[..., dict[str, Any]]


def _checked_out(app: LendingApp, make_item: MakeItem, make_user: MakeUser) -> tuple[dict, dict]:
    """An item with its only copy on loan; returns (item, approved request)."""
    item = make_item("Dune", copies=1)
    staff = make_user("Staff", "librarian")
    request = app.lending.create_request(make_user("Holder")["id"], item["id"]).data
    assert app.lending.approve(request["id"], staff["id"]).ok
    return item, request


class TestWatch:
    def test_watch_unavailable_item(
        self, app: LendingApp, make_item: MakeItem, make_user: MakeUser
    ) -> None:
        item, _ = _checked_out(app, make_item, make_user)
        reader = make_user("Reader")
        result = app.watchlist.watch(reader["id"], item["id"])
        assert result.ok
        assert result.data["created"] is True
        assert result.data["id"].startswith("wch_")
        assert app.watchlist.is_watching(reader["id"], item["id"])

    def test_watch_is_idempotent(
        self, app: LendingApp, make_item: MakeItem, make_user: MakeUser
    ) -> None:
        item, _ = _checked_out(app, make_item, make_user)
        reader = make_user("Reader")
        first = app.watchlist.watch(reader["id"], item["id"])
        second = app.watchlist.watch(reader["id"], item["id"])
        assert second.ok
        assert second.data["created"] is False
        assert second.data["id"] == first.data["id"]
        assert app.watchlist.watcher_count(item["id"]) == 1

    def test_watch_available_item_conflicts(
        self, app: LendingApp, member: dict[str, Any], make_item: MakeItem
    ) -> None:
        item = make_item(copies=2)
        result = app.watchlist.watch(member["id"], item["id"])
        assert result.error.code == "CONFLICT"
        assert result.error.detail["available_copies"] == 2

    def test_watch_unknown_item(self, app: LendingApp, member: dict[str, Any]) -> None:
        result = app.watchlist.watch(member["id"], "itm_000000000000")
        assert result.error.code == "NOT_FOUND"

    def test_watch_blank_ids(self, app: LendingApp) -> None:
        assert app.watchlist.watch(" ", "itm_1").error.code == "VALIDATION"

    def test_unwatch(self, app: LendingApp, make_item: MakeItem, make_user: MakeUser) -> None:
        item, _ = _checked_out(app, make_item, make_user)
        reader = make_user("Reader")
        app.watchlist.watch(reader["id"], item["id"])
        assert app.watchlist.unwatch(reader["id"], item["id"]).data["removed"] is True
        assert app.watchlist.unwatch(reader["id"], item["id"]).data["removed"] is False
        assert not app.watchlist.is_watching(reader["id"], item["id"])

    def test_list_for_borrower(
        self, app: LendingApp, make_item: MakeItem, make_user: MakeUser
    ) -> None:
        item, _ = _checked_out(app, make_item, make_user)
        reader = make_user("Reader")
        app.watchlist.watch(reader["id"], item["id"])
        listing = app.watchlist.list_for_borrower(reader["id"]).data
        assert listing["count"] == 1
        [entry] = listing["items"]
        assert entry["item_title"] == "Dune"
        assert entry["available_copies"] == 0

    def test_list_for_borrower_newest_first(
        self, app: LendingApp, make_item: MakeItem, make_user: MakeUser
    ) -> None:
        first, _ = _checked_out(app, make_item, make_user)
        second, _ = _checked_out(app, make_item, make_user)
        reader = make_user("Reader")
        older = app.watchlist.watch(reader["id"], first["id"]).data["id"]
        newer = app.watchlist.watch(reader["id"], second["id"]).data["id"]
        # Whole-second and fractional timestamps serialize differently.
        app.store.update("watchlist", older, {"created_at": "2030-01-01T00:00:00+00:00"})
        app.store.update("watchlist", newer, {"created_at": "2030-01-01T00:00:00.500000+00:00"})

        listing = app.watchlist.list_for_borrower(reader["id"]).data
        assert [e["id"] for e in listing["items"]] == [newer, older]


class TestRestock:
    def test_return_notifies_and_clears_watchers(
        self, app: LendingApp, make_item: MakeItem, make_user: MakeUser
    ) -> None:
        """Scenario B: two watchers, one return, two BOOK_AVAILABLE notices."""
        item, request = _checked_out(app, make_item, make_user)
        w1, w2 = make_user("W1"), make_user("W2")
        app.watchlist.watch(w1["id"], item["id"])
        app.watchlist.watch(w2["id"], item["id"])

        result = app.lending.return_item(request["id"])
        assert result.ok
        assert result.data["restocked"] is True
        assert result.data["available_copies"] == 1

        for watcher in (w1, w2):
            [note] = app.notifications.list_for_user(watcher["id"]).data["items"]
            assert note["type"] == "BOOK_AVAILABLE"
            assert note["item_id"] == item["id"]
            assert note["message"] == 'Good news! "Dune" is available again'
        assert app.watchlist.watcher_count(item["id"]) == 0

    def test_only_first_copy_back_notifies(
        self, app: LendingApp, make_item: MakeItem, make_user: MakeUser
    ) -> None:
        item = make_item("Dune", copies=2)
        staff = make_user("Staff", "librarian")
        first = app.lending.create_request(make_user()["id"], item["id"]).data
        second = app.lending.create_request(make_user()["id"], item["id"]).data
        app.lending.approve(first["id"], staff["id"])
        app.lending.approve(second["id"], staff["id"])
        reader = make_user("Reader")
        app.watchlist.watch(reader["id"], item["id"])

        assert app.lending.return_item(first["id"]).data["restocked"] is True
        assert app.watchlist.watcher_count(item["id"]) == 0
        # Going from 1 to 2 available is not a restock.
        result = app.lending.return_item(second["id"])
        assert result.data["restocked"] is False
        assert app.notifications.unread_count(reader["id"]).data["count"] == 1

    def test_on_restock_without_watchers(self, app: LendingApp, make_item: MakeItem) -> None:
        result = app.watchlist.on_restock(make_item()["id"])
        assert result.ok
        assert result.data["notified"] == 0

    def test_on_restock_unknown_item(self, app: LendingApp) -> None:
        assert app.watchlist.on_restock("itm_000000000000").error.code == "NOT_FOUND"

    def test_handler_failure_still_clears(
        self, app: LendingApp, make_item: MakeItem, make_user: MakeUser
    ) -> None:
        item, request = _checked_out(app, make_item, make_user)
        app.watchlist.watch(make_user("Reader")["id"], item["id"])

        def broken(payload: Any) -> None:
            raise RuntimeError("push gateway down")

        app.dispatcher.attach("BOOK_AVAILABLE", broken)
        result = app.lending.return_item(request["id"])
        assert result.ok
        assert result.warnings == ["1 of 2 handler(s) failed for BOOK_AVAILABLE"]
        assert app.watchlist.watcher_count(item["id"]) == 0
