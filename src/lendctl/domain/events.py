"""Notification types and their typed event payloads.

Each notification type has exactly one payload model. Producers build the
model, the dispatcher serializes it into the delivery WAL, and handlers
receive it back as the same model.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class NotificationType(StrEnum):
    """Kinds of notification the dispatcher fans out."""

    NEW_REQUEST = "NEW_REQUEST"
    DUE_DATE_REMINDER = "DUE_DATE_REMINDER"
    OVERDUE = "OVERDUE"
    BOOK_AVAILABLE = "BOOK_AVAILABLE"


def hook_name(notification_type: str) -> str:
    """Name of the hook that carries *notification_type* (``NEW_REQUEST`` -> ``new_request``)."""
    return NotificationType(notification_type).value.lower()


class _Event(BaseModel):
    model_config = {"frozen": True}


class NewRequestEvent(_Event):
    """A borrower created a request; every listed staff member should hear of it."""

    request_id: str
    borrower_id: str
    borrower_name: str
    item_id: str
    item_title: str
    staff_ids: list[str] = Field(default_factory=list)


class DueDateReminderEvent(_Event):
    request_id: str
    borrower_id: str
    borrower_name: str
    item_id: str
    item_title: str
    due_at: datetime
    days_until_due: int


class OverdueEvent(_Event):
    request_id: str
    borrower_id: str
    borrower_name: str
    item_id: str
    item_title: str
    due_at: datetime
    days_overdue: int


class Watcher(_Event):
    entry_id: str
    borrower_id: str


class BookAvailableEvent(_Event):
    """An item restocked; every watcher gets one notification."""

    item_id: str
    item_title: str
    watchers: list[Watcher] = Field(default_factory=list)


EVENT_MODELS: dict[NotificationType, type[_Event]] = {
    NotificationType.NEW_REQUEST: NewRequestEvent,
    NotificationType.DUE_DATE_REMINDER: DueDateReminderEvent,
    NotificationType.OVERDUE: OverdueEvent,
    NotificationType.BOOK_AVAILABLE: BookAvailableEvent,
}
