"""Subcommand modules for lendctl.

Provides register_commands(), which uses deferred imports to keep
``lendctl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups and standalone commands on the root CLI group."""
    # --- Groups ---
    from lendctl.commands.items import item
    from lendctl.commands.notify import notify
    from lendctl.commands.requests import request
    from lendctl.commands.users import user
    from lendctl.commands.watch import watch

    cli.add_command(user)
    cli.add_command(item)
    cli.add_command(request)
    cli.add_command(watch)
    cli.add_command(notify)

    # --- Standalone commands ---
    from lendctl.commands.init_cmd import init_cmd
    from lendctl.commands.maintenance import drain, scan

    cli.add_command(init_cmd)
    cli.add_command(scan)
    cli.add_command(drain)
