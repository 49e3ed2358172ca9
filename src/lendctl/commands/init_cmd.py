"""Command: workspace initialization (named init_cmd to avoid shadowing builtins)."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from lendctl.commands._base import LendCommand
from lendctl.config.discovery import CONFIG_FILENAME
from lendctl.config.models import DatabaseConfig
from lendctl.infrastructure.database.engine import init_database
from lendctl.services.result import ErrorCode, ServiceResult

if TYPE_CHECKING:
    from lendctl.commands._context import AppContext

_INIT_EXAMPLES = """\
  lendctl init
  lendctl init /srv/library --db data/library.db
  lendctl --json init . --loan-days 21"""

_CONFIG_TEMPLATE = """\
[database]
path = "{db_path}"

[lending]
loan_days = {loan_days}

[scanner]
interval_seconds = 86400
reminder_window_days = 2
"""


@click.command("init", cls=LendCommand, examples=_INIT_EXAMPLES)
@click.argument("path", required=False, default=".")
@click.option("--db", "db_path", default=DatabaseConfig().path, show_default=True)
@click.option("--loan-days", type=click.IntRange(min=1), default=14, show_default=True)
@click.option("--force", is_flag=True, help="Overwrite an existing lendctl.toml.")
@click.pass_obj
def init_cmd(app: AppContext, path: str, db_path: str, loan_days: int, force: bool) -> None:
    """Write lendctl.toml and create the database."""
    op = "init"
    root = Path(path).resolve()
    config_file = root / CONFIG_FILENAME
    if config_file.exists() and not force:
        app.emit(
            ServiceResult.failure(
                op,
                ErrorCode.CONFLICT,
                f"{config_file} already exists (use --force to overwrite)",
            )
        )
        return

    root.mkdir(parents=True, exist_ok=True)
    config_file.write_text(
        _CONFIG_TEMPLATE.format(db_path=db_path, loan_days=loan_days),
        encoding="utf-8",
    )
    database = Path(db_path).expanduser()
    if not database.is_absolute():
        database = root / database
    init_database(database).dispose()

    app.emit(
        ServiceResult(
            ok=True,
            op=op,
            data={"config_path": str(config_file), "db_path": str(database)},
        )
    )
