"""End-to-end: -v enables telemetry and span trees reach the JSON output."""

from __future__ import annotations

import json
from collections.abc import Generator

import pytest
from click.testing import CliRunner

from lendctl.cli import cli
from lendctl.services.telemetry import _current_span, disable_telemetry


@pytest.fixture(autouse=True)
def _reset_telemetry() -> Generator[None]:
    """-v sets a ContextVar in the test thread; clear it afterwards."""
    yield
    disable_telemetry()
    _current_span.set(None)


@pytest.mark.usefixtures("_isolated_workspace")
class TestVerboseTelemetry:
    def test_span_in_meta(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "-v", "item", "add", "Dune"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["meta"]["telemetry"]["name"] == "InventoryLedger.register_item"

    def test_no_meta_without_verbose(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "item", "add", "Dune"])
        assert json.loads(result.stdout)["meta"] is None

    def test_approve_has_reservation_child(self, cli_runner: CliRunner) -> None:
        def run(*args: str) -> dict:
            result = cli_runner.invoke(cli, ["--json", "--sync", "-v", *args])
            assert result.exit_code == 0, result.output
            return json.loads(result.stdout)

        item = run("item", "add", "Dune")["data"]
        ada = run("user", "add", "Ada", "ada@example.org")["data"]
        grace = run("user", "add", "Grace", "g@example.org", "--role", "librarian")["data"]
        req = run("request", "create", ada["id"], item["id"])["data"]
        approved = run("request", "approve", req["id"], "--reviewer", grace["id"])
        children = approved["meta"]["telemetry"]["children"]
        assert [c["name"] for c in children] == ["reserve_copy"]
