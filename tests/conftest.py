"""Shared pytest fixtures for lendctl tests."""

from __future__ import annotations

from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from lendctl.app import LendingApp
from lendctl.infrastructure.database.engine import init_database
from lendctl.infrastructure.store import DocumentStore


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Generator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path / "lendctl.db")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def store(db_engine: Engine) -> DocumentStore:
    return DocumentStore(db_engine)


@pytest.fixture
def app(db_engine: Engine) -> Generator[LendingApp]:
    """Fully assembled app with synchronous notification dispatch."""
    lending_app = LendingApp(db_engine, sync=True)
    try:
        yield lending_app
    finally:
        lending_app.close()


@pytest.fixture
def make_user(app: LendingApp) -> Callable[..., dict[str, Any]]:
    """Factory: register a user, asserting success."""
    counter = iter(range(1_000_000))

    def _make(name: str = "Member", role: str = "member", **kwargs: Any) -> dict[str, Any]:
        email = kwargs.pop("email", f"user{next(counter)}@example.org")
        result = app.users.register_user(name, email, role)
        assert result.ok, result.error
        return result.data

    return _make


@pytest.fixture
def make_item(app: LendingApp) -> Callable[..., dict[str, Any]]:
    """Factory: catalogue an item, asserting success."""

    def _make(title: str = "Dune", copies: int = 1) -> dict[str, Any]:
        result = app.inventory.register_item(title, copies)
        assert result.ok, result.error
        return result.data

    return _make


@pytest.fixture
def librarian(make_user: Callable[..., dict[str, Any]]) -> dict[str, Any]:
    return make_user("Grace Librarian", "librarian")


@pytest.fixture
def member(make_user: Callable[..., dict[str, Any]]) -> dict[str, Any]:
    return make_user("Ada Member", "member")


@pytest.fixture
def _isolated_workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run the CLI from an empty temp directory with no config overrides.

    Use via ``@pytest.mark.usefixtures("_isolated_workspace")`` on command
    test classes.
    """
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("LENDCTL_CONFIG", raising=False)
    monkeypatch.delenv("LENDCTL_DATABASE__PATH", raising=False)
