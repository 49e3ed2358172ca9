"""Command group: a user's notifications."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from lendctl.commands._base import LendGroup

if TYPE_CHECKING:
    from lendctl.commands._context import AppContext


@click.group(
    cls=LendGroup,
    examples="""\
  lendctl notify list usr_0123456789ab --unread
  lendctl notify read ntf_0123456789ab --user usr_0123456789ab
  lendctl notify clean --retention-days 7""",
)
def notify() -> None:
    """Read and manage notifications."""


@notify.command(name="list")
@click.argument("user_id")
@click.option("--unread", "unread_only", is_flag=True, help="Only unread notifications.")
@click.pass_obj
def list_cmd(app: AppContext, user_id: str, unread_only: bool) -> None:
    """A user's notifications, newest first."""
    app.emit(app.app.notifications.list_for_user(user_id, unread_only=unread_only))


@notify.command()
@click.argument("user_id")
@click.pass_obj
def count(app: AppContext, user_id: str) -> None:
    """Number of unread notifications."""
    app.emit(app.app.notifications.unread_count(user_id))


@notify.command()
@click.argument("notification_id")
@click.option("--user", "user_id", required=True, help="Recipient marking it read.")
@click.pass_obj
def read(app: AppContext, notification_id: str, user_id: str) -> None:
    """Mark one notification as read."""
    app.emit(app.app.notifications.mark_read(notification_id, user_id))


@notify.command(name="read-all")
@click.argument("user_id")
@click.pass_obj
def read_all(app: AppContext, user_id: str) -> None:
    """Mark every notification of a user as read."""
    app.emit(app.app.notifications.mark_all_read(user_id))


@notify.command()
@click.argument("notification_id")
@click.option("--user", "user_id", required=True, help="Recipient deleting it.")
@click.pass_obj
def delete(app: AppContext, notification_id: str, user_id: str) -> None:
    """Delete one notification."""
    app.emit(app.app.notifications.delete(notification_id, user_id))


@notify.command()
@click.option(
    "--retention-days",
    type=int,
    default=None,
    help="Keep read notifications this many days (default from config).",
)
@click.pass_obj
def clean(app: AppContext, retention_days: int | None) -> None:
    """Delete read notifications older than the retention window."""
    days = (
        retention_days
        if retention_days is not None
        else app.settings.notifications.retention_days
    )
    app.emit(app.app.notifications.clean_old(days))
