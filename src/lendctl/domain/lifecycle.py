"""Borrow request status lifecycle and due-date arithmetic.

States: pending -> approved -> returned, or pending -> rejected.
``rejected`` and ``returned`` are terminal: a request in either state is
never modified again.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import StrEnum


class RequestStatus(StrEnum):
    """Status of a borrow request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    RETURNED = "returned"


REQUEST_TRANSITIONS: dict[str, list[str]] = {
    "pending": ["approved", "rejected"],
    "approved": ["returned"],
    "rejected": [],
    "returned": [],
}

TERMINAL_STATUSES = frozenset({RequestStatus.REJECTED, RequestStatus.RETURNED})

DEFAULT_LOAN_DAYS = 14
DEFAULT_REMINDER_WINDOW_DAYS = 2

ONE_DAY = timedelta(days=1)


def is_valid_transition(
    current: str,
    target: str,
    transitions: dict[str, list[str]] = REQUEST_TRANSITIONS,
) -> bool:
    """Check if transitioning from *current* to *target* is allowed."""
    allowed = transitions.get(current, [])
    return target in allowed


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def default_due_at(approved_at: datetime, loan_days: int = DEFAULT_LOAN_DAYS) -> datetime:
    """Due date assigned when a reviewer does not supply one."""
    return approved_at + timedelta(days=loan_days)


def whole_days(start: datetime, end: datetime) -> int:
    """Floor of ``(end - start)`` in days. Negative when *end* precedes *start*."""
    return (end - start) // ONE_DAY


def is_late(returned_at: datetime, due_at: datetime | None) -> bool:
    """A return is late when it happens strictly after the due date."""
    return due_at is not None and returned_at > due_at


def classify_due(
    due_at: datetime,
    now: datetime,
    *,
    reminder_window_days: int = DEFAULT_REMINDER_WINDOW_DAYS,
) -> tuple[str | None, int]:
    """Decide which due-date notification, if any, an approved request needs.

    Returns ``("overdue", days_overdue)`` when *now* is past *due_at*,
    ``("reminder", days_until_due)`` when the due date falls within the
    reminder window, and ``(None, days_until_due)`` otherwise.
    """
    if now > due_at:
        return "overdue", whole_days(due_at, now)
    days_until_due = whole_days(now, due_at)
    if 0 <= days_until_due <= reminder_window_days:
        return "reminder", days_until_due
    return None, days_until_due
