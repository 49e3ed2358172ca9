"""AppContext — shared Click context for all commands.

Created once by the root CLI group and passed to subcommands via
``@click.pass_obj``. Opens the LendingApp lazily and centralizes result
emission (stdout/stderr routing and exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from lendctl.output.formatters import format_result

if TYPE_CHECKING:
    from lendctl.app import LendingApp
    from lendctl.config.settings import LendSettings
    from lendctl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The app is created on first use so ``--help`` and ``--version`` never
    touch the database.
    """

    def __init__(self, settings: LendSettings) -> None:
        self.settings = settings
        self._app: LendingApp | None = None

        from lendctl.config.logging import configure_logging

        configure_logging(
            verbose=settings.verbose,
            log_json=settings.log_json,
            levels=settings.logging.levels,
        )

        if settings.verbose:
            from lendctl.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def app(self) -> LendingApp:
        """The LendingApp (opened lazily on first access)."""
        if self._app is None:
            from lendctl.app import LendingApp

            self._app = LendingApp.from_settings(self.settings)
        return self._app

    def close(self) -> None:
        if self._app is not None:
            self._app.close()
            self._app = None

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: stdout; warnings go to stderr so piped output stays clean.
        * Failure: stderr, then exit code 1.
        """
        json_output = self.settings.json_output
        output = format_result(result, json_output=json_output, verbose=self.settings.verbose)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
