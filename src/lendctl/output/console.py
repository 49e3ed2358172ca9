"""Rich Console factory and theme for lendctl output.

Consoles render into a StringIO buffer so renderers keep returning plain
strings. Rich drops color codes by itself when stdout is not a terminal
(CliRunner, pipes).
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

LEND_THEME = Theme(
    {
        "lend.ok": "bold green",
        "lend.error": "bold red",
        "lend.warning": "bold yellow",
        "lend.op": "bold cyan",
        "lend.key": "dim",
        "lend.id": "bold blue",
        "lend.title": "bold",
        "lend.status.pending": "yellow",
        "lend.status.approved": "green",
        "lend.status.rejected": "red",
        "lend.status.returned": "dim",
        "lend.unread": "bold",
        "lend.empty": "red",
    }
)

_STATUS_STYLES: dict[str, str] = {
    "pending": "lend.status.pending",
    "approved": "lend.status.approved",
    "rejected": "lend.status.rejected",
    "returned": "lend.status.returned",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes.
        width: Override the render width (keeps table layout stable in tests).
    """
    return Console(
        file=StringIO(),
        theme=LEND_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_status(status: str) -> str:
    """Rich style name for a borrow-request status."""
    return _STATUS_STYLES.get(status, "")
