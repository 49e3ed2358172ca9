"""Command group: watchlist."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from lendctl.commands._base import LendGroup

if TYPE_CHECKING:
    from lendctl.commands._context import AppContext


@click.group(
    cls=LendGroup,
    examples="""\
  lendctl watch add usr_0123456789ab itm_0123456789ab
  lendctl watch list usr_0123456789ab
  lendctl watch remove usr_0123456789ab itm_0123456789ab""",
)
def watch() -> None:
    """Get notified when an unavailable item comes back."""


@watch.command()
@click.argument("borrower_id")
@click.argument("item_id")
@click.pass_obj
def add(app: AppContext, borrower_id: str, item_id: str) -> None:
    """Watch an item that has no copy available."""
    app.emit(app.app.watchlist.watch(borrower_id, item_id))


@watch.command()
@click.argument("borrower_id")
@click.argument("item_id")
@click.pass_obj
def remove(app: AppContext, borrower_id: str, item_id: str) -> None:
    """Stop watching an item."""
    app.emit(app.app.watchlist.unwatch(borrower_id, item_id))


@watch.command(name="list")
@click.argument("borrower_id")
@click.pass_obj
def list_cmd(app: AppContext, borrower_id: str) -> None:
    """Items a borrower is watching."""
    app.emit(app.app.watchlist.list_for_borrower(borrower_id))
