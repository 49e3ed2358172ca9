"""Tests for UserDirectory."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from lendctl.app import LendingApp


class TestRegisterUser:
    def test_defaults_to_member(self, app: LendingApp) -> None:
        result = app.users.register_user(" Ada ", "ada@example.org")
        assert result.ok
        assert result.data["name"] == "Ada"
        assert result.data["role"] == "member"
        assert result.data["id"].startswith("usr_")

    @pytest.mark.parametrize(
        ("name", "email", "role"),
        [
            ("", "a@example.org", "member"),
            ("Ada", "not-an-email", "member"),
            ("Ada", "a@example.org", "janitor"),
        ],
    )
    def test_validation(self, app: LendingApp, name: str, email: str, role: str) -> None:
        result = app.users.register_user(name, email, role)
        assert result.error.code == "VALIDATION"

    def test_duplicate_email(self, app: LendingApp) -> None:
        app.users.register_user("Ada", "ada@example.org")
        result = app.users.register_user("Other Ada", "ada@example.org")
        assert result.error.code == "CONFLICT"


class TestLookups:
    def test_get_and_find(self, app: LendingApp, member: dict[str, Any]) -> None:
        assert app.users.get(member["id"]).data["email"] == member["email"]
        user = app.users.find(member["id"])
        assert user is not None
        assert user.name == "Ada Member"
        assert app.users.find("usr_000000000000") is None
        assert app.users.get("usr_000000000000").error.code == "NOT_FOUND"

    def test_staff_ids(
        self, app: LendingApp, make_user: Callable[..., dict[str, Any]]
    ) -> None:
        make_user("Reader", "member")
        lib = make_user("Lib", "librarian")
        admin = make_user("Boss", "admin")
        assert sorted(app.users.staff_ids()) == sorted([lib["id"], admin["id"]])

    def test_list_users_by_role(
        self, app: LendingApp, make_user: Callable[..., dict[str, Any]]
    ) -> None:
        make_user("zoe", "member")
        make_user("Bob", "member")
        make_user("Lib", "librarian")
        members = app.users.list_users(role="member").data
        assert [u["name"] for u in members["items"]] == ["Bob", "zoe"]
        assert app.users.list_users().data["count"] == 3
        assert app.users.list_users(role="janitor").error.code == "VALIDATION"
