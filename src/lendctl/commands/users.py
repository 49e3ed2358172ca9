"""Command group: user directory."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from lendctl.commands._base import LendGroup
from lendctl.domain.roles import Role

if TYPE_CHECKING:
    from lendctl.commands._context import AppContext

_ROLE_CHOICE = click.Choice([r.value for r in Role], case_sensitive=False)


@click.group(
    cls=LendGroup,
    examples="""\
  lendctl user add "Ada Lovelace" ada@example.org
  lendctl user add "Grace Hopper" grace@example.org --role librarian
  lendctl --json user list --role member""",
)
def user() -> None:
    """Register and look up borrowers and staff."""


@user.command(
    examples="""\
  lendctl user add "Ada Lovelace" ada@example.org
  lendctl user add "Grace Hopper" grace@example.org --role librarian""",
)
@click.argument("name")
@click.argument("email")
@click.option("--role", type=_ROLE_CHOICE, default=Role.MEMBER.value, show_default=True)
@click.pass_obj
def add(app: AppContext, name: str, email: str, role: str) -> None:
    """Register a new user."""
    app.emit(app.app.users.register_user(name, email, role))


@user.command()
@click.argument("user_id")
@click.pass_obj
def show(app: AppContext, user_id: str) -> None:
    """Show one user."""
    app.emit(app.app.users.get(user_id))


@user.command(name="list")
@click.option("--role", type=_ROLE_CHOICE, default=None, help="Only users with this role.")
@click.pass_obj
def list_cmd(app: AppContext, role: str | None) -> None:
    """List users by name."""
    app.emit(app.app.users.list_users(role=role))
