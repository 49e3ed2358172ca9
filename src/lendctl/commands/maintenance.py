"""Commands: due-date scan and delivery drain."""

from __future__ import annotations

import threading
from datetime import datetime
from typing import TYPE_CHECKING

import click

from lendctl.commands._base import LendCommand
from lendctl.services.result import ServiceResult

if TYPE_CHECKING:
    from lendctl.commands._context import AppContext


@click.command(
    cls=LendCommand,
    examples="""\
  lendctl scan
  lendctl scan --now 2030-01-15T09:00:00
  lendctl scan --daemon""",
)
@click.option(
    "--now",
    type=click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"]),
    default=None,
    help="Evaluate due dates as of this UTC time.",
)
@click.option(
    "--daemon",
    is_flag=True,
    help="Keep scanning on the configured interval until interrupted.",
)
@click.pass_obj
def scan(app: AppContext, now: datetime | None, daemon: bool) -> None:
    """Send due-date reminders and overdue notices for approved requests."""
    scanner = app.app.scanner
    if not daemon:
        app.emit(scanner.scan(now))
        return

    scanner.start(app.settings.scan_interval)
    click.echo(f"Scanning every {app.settings.scan_interval}; Ctrl-C to stop.", err=True)
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    finally:
        scanner.stop()
    app.emit(ServiceResult(ok=True, op="scan", data={"stopped": True}))


@click.command(
    cls=LendCommand,
    examples="""\
  lendctl drain
  lendctl --json drain --include-pending""",
)
@click.option(
    "--include-pending",
    is_flag=True,
    help="Also retry deliveries left pending by an interrupted run.",
)
@click.pass_obj
def drain(app: AppContext, include_pending: bool) -> None:
    """Retry failed notification deliveries."""
    results = app.app.dispatcher.drain(include_pending=include_pending)
    statuses: dict[str, int] = {}
    for entry in results:
        statuses[entry["status"]] = statuses.get(entry["status"], 0) + 1
    app.emit(
        ServiceResult(
            ok=True,
            op="drain",
            data={"retried": len(results), "statuses": statuses, "items": results},
        )
    )
