"""Typed views over stored records.

The document store hands back plain dicts; services validate them into
these frozen models before applying business rules. Timestamps are stored
as ISO 8601 text and parsed back into timezone-aware datetimes here.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from lendctl.domain.lifecycle import RequestStatus, is_late, is_terminal
from lendctl.domain.roles import Role, is_staff


class _Record(BaseModel):
    model_config = {"frozen": True}

    def to_data(self) -> dict[str, Any]:
        """JSON-safe dict for ServiceResult payloads."""
        return self.model_dump(mode="json")


class Item(_Record):
    """A catalogued lendable unit and its copy counts."""

    id: str
    title: str
    total_copies: int = Field(gt=0)
    available_copies: int = Field(ge=0)
    created_at: datetime | None = None

    @property
    def is_available(self) -> bool:
        return self.available_copies > 0


class User(_Record):
    """A directory user: borrower or staff depending on role."""

    id: str
    name: str
    email: str
    role: Role = Role.MEMBER
    created_at: datetime | None = None

    @property
    def is_staff(self) -> bool:
        return is_staff(self.role)


class BorrowRequest(_Record):
    """One borrower's lifecycle record for borrowing one item."""

    id: str
    borrower_id: str
    item_id: str
    status: RequestStatus = RequestStatus.PENDING
    requested_at: datetime
    approved_at: datetime | None = None
    due_at: datetime | None = None
    returned_at: datetime | None = None
    reviewer_id: str | None = None

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)

    @property
    def was_late(self) -> bool:
        return self.returned_at is not None and is_late(self.returned_at, self.due_at)


class Notification(_Record):
    """A user-facing notification produced by a dispatcher handler."""

    id: str
    type: str
    message: str
    recipient_id: str
    item_id: str | None = None
    request_id: str | None = None
    read: bool = False
    created_at: datetime


class WatchlistEntry(_Record):
    """A borrower's standing request to hear when an item restocks."""

    id: str
    borrower_id: str
    item_id: str
    created_at: datetime
