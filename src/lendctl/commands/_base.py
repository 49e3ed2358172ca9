"""Click base classes for lendctl commands.

Any command or group built with ``examples=`` grows an eager
``--examples`` flag that prints the examples and exits, so ``--help``
stays short. Groups list their subcommands in registration order, which
follows the lending workflow (``create``, ``approve``, ``reject``,
``return``) instead of the alphabet.
"""

from __future__ import annotations

from typing import Any

import click


class _ExamplesMixin:
    """Carries usage examples and the ``--examples`` option that shows them."""

    examples: str | None
    params: list[click.Parameter]

    def _init_examples(self, examples: str | None) -> None:
        self.examples = examples
        if not examples:
            return
        self.params.append(
            click.Option(
                ["--examples"],
                is_flag=True,
                expose_value=False,
                is_eager=True,
                callback=self._show_examples,
                help="Show usage examples.",
            )
        )

    def _show_examples(self, ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(self.examples)
        ctx.exit(0)


class LendCommand(_ExamplesMixin, click.Command):
    """Command taking an optional ``examples`` block."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(examples)


class LendGroup(_ExamplesMixin, click.Group):
    """Group taking an optional ``examples`` block.

    Subcommands default to :class:`LendCommand` and nested groups to
    :class:`LendGroup`, so neither needs an explicit ``cls=``.
    """

    command_class = LendCommand
    group_class = type

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(examples)

    def list_commands(self, ctx: click.Context) -> list[str]:
        return list(self.commands)
