"""Command group: borrow request lifecycle."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

import click

from lendctl.commands._base import LendGroup
from lendctl.domain.lifecycle import RequestStatus
from lendctl.domain.roles import can_borrow, can_review
from lendctl.services.result import ErrorCode, ServiceResult

if TYPE_CHECKING:
    from lendctl.commands._context import AppContext

_DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M:%S%z"]


def _require_role(
    app: AppContext,
    op: str,
    user_id: str,
    allowed: Callable[[str], bool],
    action: str,
) -> ServiceResult | None:
    """FORBIDDEN unless *user_id* exists and its role passes *allowed*."""
    found = app.app.users.find(user_id)
    if found is None:
        return ServiceResult.failure(op, ErrorCode.NOT_FOUND, f"No user found with ID: {user_id}")
    if not allowed(found.role):
        return ServiceResult.failure(
            op,
            ErrorCode.FORBIDDEN,
            f"User {user_id} ({found.role}) may not {action}",
            user_id=user_id,
        )
    return None


@click.group(
    cls=LendGroup,
    examples="""\
  lendctl request create usr_0123456789ab itm_0123456789ab
  lendctl request approve req_0123456789ab --reviewer usr_ba9876543210
  lendctl request return req_0123456789ab
  lendctl --json request list --status approved""",
)
def request() -> None:
    """Create, review and close borrow requests."""


@request.command()
@click.argument("borrower_id")
@click.argument("item_id")
@click.pass_obj
def create(app: AppContext, borrower_id: str, item_id: str) -> None:
    """Ask to borrow an item. Every librarian and admin is notified."""
    denied = _require_role(app, "create_request", borrower_id, can_borrow, "borrow")
    if denied is not None:
        app.emit(denied)
        return
    lending = app.app
    app.emit(lending.lending.create_request(borrower_id, item_id, lending.users.staff_ids()))


@request.command(
    examples="""\
  lendctl request approve req_0123456789ab --reviewer usr_ba9876543210
  lendctl request approve req_0123456789ab --reviewer usr_ba9876543210 --due 2030-01-31""",
)
@click.argument("request_id")
@click.option("--reviewer", "reviewer_id", required=True, help="Approving staff member.")
@click.option(
    "--due",
    "due_at",
    type=click.DateTime(formats=_DATE_FORMATS),
    default=None,
    help="Due date (UTC). Defaults to the configured loan period.",
)
@click.pass_obj
def approve(
    app: AppContext,
    request_id: str,
    reviewer_id: str,
    due_at: datetime | None,
) -> None:
    """Approve a pending request and reserve a copy."""
    denied = _require_role(app, "approve", reviewer_id, can_review, "review requests")
    if denied is not None:
        app.emit(denied)
        return
    app.emit(app.app.lending.approve(request_id, reviewer_id, due_at))


@request.command()
@click.argument("request_id")
@click.option("--reviewer", "reviewer_id", required=True, help="Rejecting staff member.")
@click.pass_obj
def reject(app: AppContext, request_id: str, reviewer_id: str) -> None:
    """Reject a pending request."""
    denied = _require_role(app, "reject", reviewer_id, can_review, "review requests")
    if denied is not None:
        app.emit(denied)
        return
    app.emit(app.app.lending.reject(request_id, reviewer_id))


@request.command(name="return")
@click.argument("request_id")
@click.pass_obj
def return_cmd(app: AppContext, request_id: str) -> None:
    """Record the return of an approved request's copy."""
    app.emit(app.app.lending.return_item(request_id))


@request.command()
@click.argument("request_id")
@click.pass_obj
def show(app: AppContext, request_id: str) -> None:
    """Show one borrow request."""
    app.emit(app.app.lending.get(request_id))


@request.command(name="list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in RequestStatus]),
    default=RequestStatus.PENDING.value,
    show_default=True,
)
@click.pass_obj
def list_cmd(app: AppContext, status: str) -> None:
    """List requests in one status (pending: oldest first)."""
    app.emit(app.app.lending.find_active(status))


@request.command()
@click.argument("borrower_id")
@click.pass_obj
def history(app: AppContext, borrower_id: str) -> None:
    """A borrower's requests, newest first."""
    app.emit(app.app.lending.find_by_borrower(borrower_id))
