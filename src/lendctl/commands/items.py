"""Command group: catalogue and inventory counts."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from lendctl.commands._base import LendGroup

if TYPE_CHECKING:
    from lendctl.commands._context import AppContext


@click.group(
    cls=LendGroup,
    examples="""\
  lendctl item add "The Left Hand of Darkness" --copies 3
  lendctl item show itm_0123456789ab
  lendctl --json item list --available""",
)
def item() -> None:
    """Catalogue items and inspect their copy counts."""


@item.command(
    examples="""\
  lendctl item add "Dune" --copies 2
  lendctl --json item add Neuromancer --copies 1""",
)
@click.argument("title")
@click.option("--copies", type=int, default=1, show_default=True, help="Total copies owned.")
@click.pass_obj
def add(app: AppContext, title: str, copies: int) -> None:
    """Catalogue a new item with every copy available."""
    app.emit(app.app.inventory.register_item(title, copies))


@item.command()
@click.argument("item_id")
@click.pass_obj
def show(app: AppContext, item_id: str) -> None:
    """Show available and total copies of an item."""
    app.emit(app.app.inventory.query(item_id))


@item.command(name="list")
@click.option("--available", "available_only", is_flag=True, help="Only items with a copy in.")
@click.pass_obj
def list_cmd(app: AppContext, available_only: bool) -> None:
    """List catalogued items by title."""
    app.emit(app.app.inventory.list_items(available_only=available_only))


@item.command()
@click.argument("item_id")
@click.pass_obj
def remove(app: AppContext, item_id: str) -> None:
    """Remove an item that has no pending or approved requests."""
    app.emit(app.app.inventory.remove_item(item_id))
