"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a StringIO-backed Console and the caller reads the
text back with ``get_output(console)``. Renderers are looked up by
``result.op`` in :func:`render_result`; ops without one fall back to the
generic key-value renderer.
"""

from __future__ import annotations

import functools
import json as _json
from typing import TYPE_CHECKING, Any, NamedTuple

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from lendctl.output.console import create_console, get_output, style_for_status

if TYPE_CHECKING:
    from collections.abc import Callable

    from rich.console import Console

    from lendctl.services.result import ServiceResult

    Renderer = Callable[..., None]


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Plain text (no ANSI) comes back whenever Rich sees no terminal, which
    covers Click's CliRunner and piped output.
    """
    console = create_console()
    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)
    return get_output(console).rstrip("\n")


# ── Helpers ───────────────────────────────────────────────────────────


class _Column(NamedTuple):
    key: str
    header: str
    style: str = ""
    date: bool = False


def _status_line(console: Console, result: ServiceResult) -> None:
    line = Text("OK", style="lend.ok")
    line.append(f"  {result.op}", style="lend.op")
    console.print(line)


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    if isinstance(value, (dict, list)):
        value = _json.dumps(value, separators=(",", ":"))
    k = Text(f"  {key}: ", style="lend.key")
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="lend.id")
    elif key == "status":
        v = Text(str(value), style=style_for_status(str(value)))
    elif key in ("title", "item_title", "name"):
        v = Text(str(value), style="lend.title")
    else:
        v = Text(str(value))
    console.print(k, v, sep="")


def _cell(column: _Column, row: dict[str, Any]) -> Text:
    value = row.get(column.key)
    if value is None:
        return Text("-", style="dim")
    if column.date:
        return Text(str(value)[:10])
    if column.key == "status":
        return Text(str(value), style=style_for_status(str(value)))
    if column.key == "available_copies" and value == 0:
        return Text("0", style="lend.empty")
    if column.key == "read":
        return Text("yes") if value else Text("new", style="lend.unread")
    return Text(str(value))


def _table(rows: list[dict[str, Any]], columns: tuple[_Column, ...]) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    for column in columns:
        justify = "right" if column.key.endswith("_copies") else "left"
        table.add_column(column.header, style=column.style, justify=justify)
    for row in rows:
        table.add_row(*(_cell(column, row) for column in columns))
    return table


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print the meta block, including the telemetry span tree."""
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for key, value in result.meta.items():
        if key == "telemetry":
            _render_span(console, value, indent=4)
        else:
            console.print(Text(f"    {key}: {value}"))


def _render_span(console: Console, span: dict[str, Any], indent: int) -> None:
    duration = span.get("duration_ms", 0.0)
    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"
    line = Text(" " * indent)
    line.append(f"{duration:>8.2f}ms", style=style)
    line.append(f"  {span.get('name', '?')}")
    annotations = span.get("annotations") or {}
    if annotations:
        line.append(f"  ({', '.join(f'{k}={v}' for k, v in annotations.items())})", style="dim")
    console.print(line)
    for child in span.get("children", []):
        _render_span(console, child, indent + 4)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    line = Text("ERROR", style="lend.error")
    line.append(f"  {result.op}", style="lend.op")
    if err is None:
        line.append("  Unknown error")
        console.print(line)
        return
    line.append(f"  [{err.code}] {err.message}")
    console.print(line)
    if verbose and err.detail:
        console.print(Text("  detail:", style="dim"))
        for key, value in err.detail.items():
            console.print(Text(f"    {key}: {value}"))
    if verbose:
        _render_meta(console, result)


# ── Listings ──────────────────────────────────────────────────────────

_REQUEST_COLUMNS = (
    _Column("id", "ID", "lend.id"),
    _Column("item_title", "Item", "lend.title"),
    _Column("status", "Status"),
    _Column("requested_at", "Requested", date=True),
    _Column("due_at", "Due", date=True),
)
_REQUEST_VERBOSE_COLUMNS = (
    _Column("borrower_id", "Borrower", "lend.id"),
    _Column("reviewer_id", "Reviewer", "lend.id"),
)
_ITEM_COLUMNS = (
    _Column("id", "ID", "lend.id"),
    _Column("title", "Title", "lend.title"),
    _Column("available_copies", "Available"),
    _Column("total_copies", "Total"),
)
_USER_COLUMNS = (
    _Column("id", "ID", "lend.id"),
    _Column("name", "Name", "lend.title"),
    _Column("email", "Email"),
    _Column("role", "Role"),
)
_WATCH_COLUMNS = (
    _Column("id", "ID", "lend.id"),
    _Column("item_title", "Item", "lend.title"),
    _Column("available_copies", "Available"),
    _Column("created_at", "Since", date=True),
)
_NOTIFICATION_COLUMNS = (
    _Column("id", "ID", "lend.id"),
    _Column("type", "Type"),
    _Column("message", "Message"),
    _Column("read", "Read"),
    _Column("created_at", "Sent", date=True),
)
_DELIVERY_COLUMNS = (
    _Column("id", "WAL", "lend.id"),
    _Column("event_type", "Event"),
    _Column("handler", "Handler"),
    _Column("status", "Status"),
)


def _render_listing(
    result: ServiceResult,
    console: Console,
    *,
    columns: tuple[_Column, ...],
    verbose_columns: tuple[_Column, ...] = (),
    verbose: bool = False,
) -> None:
    """Status line, every non-list field, then the ``items`` table."""
    _status_line(console, result)
    for key, value in result.data.items():
        if key != "items":
            _field(console, key, value)
    rows = [r for r in result.data.get("items", []) if isinstance(r, dict)]
    if rows:
        console.print(_table(rows, columns + verbose_columns if verbose else columns))
    else:
        console.print(Text("  (none)", style="dim"))
    if verbose:
        _render_meta(console, result)


def _listing(columns: tuple[_Column, ...], verbose_columns: tuple[_Column, ...] = ()) -> Renderer:
    return functools.partial(_render_listing, columns=columns, verbose_columns=verbose_columns)


# ── Single records ────────────────────────────────────────────────────


_REQUEST_FIELDS = (
    "item_id",
    "item_title",
    "borrower_id",
    "reviewer_id",
    "requested_at",
    "approved_at",
    "due_at",
    "returned_at",
    "available_copies",
    "late",
    "restocked",
)


def _render_request(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render one borrow request as a panel titled with its status."""
    data = result.data
    _status_line(console, result)
    status = str(data.get("status", ""))
    body = Text()
    for key in _REQUEST_FIELDS:
        if data.get(key) is not None:
            body.append(f"{key}: ", style="lend.key")
            body.append(f"{data[key]}\n")
    body.rstrip()
    title = Text(str(data.get("id", "")), style="lend.id")
    title.append(f"  {status}", style=style_for_status(status))
    console.print(Panel(body, title=title, title_align="left", expand=False))
    if verbose:
        _render_meta(console, result)


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line and every data field."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Renderer] = {
    # Requests
    "create_request": _render_request,
    "approve": _render_request,
    "reject": _render_request,
    "return_item": _render_request,
    "get_request": _render_request,
    "find_active": _listing(_REQUEST_COLUMNS, _REQUEST_VERBOSE_COLUMNS),
    "find_by_borrower": _listing(_REQUEST_COLUMNS, _REQUEST_VERBOSE_COLUMNS),
    # Catalogue and directory
    "list_items": _listing(_ITEM_COLUMNS),
    "list_users": _listing(_USER_COLUMNS),
    # Watchlist and notifications
    "list_watchlist": _listing(_WATCH_COLUMNS),
    "list_notifications": _listing(_NOTIFICATION_COLUMNS),
    # Maintenance
    "drain": _listing(_DELIVERY_COLUMNS),
}
