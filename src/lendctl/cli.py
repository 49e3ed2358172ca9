"""Root CLI group for lendctl with global flags and command registration."""

from __future__ import annotations

import click

from lendctl import __version__
from lendctl.commands import register_commands
from lendctl.commands._base import LendGroup
from lendctl.commands._context import AppContext
from lendctl.config.settings import LendSettings


@click.group(cls=LendGroup, invoke_without_command=True)
@click.version_option(version=__version__, prog_name="lendctl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option("--sync", is_flag=True, help="Run notification handlers on the calling thread.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    sync: bool,
) -> None:
    """lendctl — lending inventory and borrow request control."""
    settings = LendSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        verbose=verbose,
        log_json=log_json,
        sync=sync,
    )
    app_ctx = AppContext(settings)
    ctx.obj = app_ctx
    ctx.call_on_close(app_ctx.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
