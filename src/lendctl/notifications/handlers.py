"""Default notification handlers.

Each handler translates one typed event into persisted Notification
records through the :class:`NotificationService`. A handler that fans out
to several recipients writes all of them in one transaction, so a retried
delivery never leaves a partial set behind.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from lendctl.domain.events import (
    BookAvailableEvent,
    DueDateReminderEvent,
    NewRequestEvent,
    NotificationType,
    OverdueEvent,
)

if TYPE_CHECKING:
    from lendctl.notifications.dispatcher import NotificationDispatcher
    from lendctl.services.notifications import NotificationService

DATE_FORMAT = "%Y-%m-%d"


def _date(value: datetime) -> str:
    return value.strftime(DATE_FORMAT)


def new_request_message(event: NewRequestEvent) -> str:
    return f'New borrow request from {event.borrower_name} for "{event.item_title}"'


def reminder_message(event: DueDateReminderEvent) -> str:
    return (
        f'Reminder: "{event.item_title}" is due back on {_date(event.due_at)} '
        f"(in {event.days_until_due} day(s))"
    )


def overdue_message(event: OverdueEvent) -> str:
    if event.days_overdue == 1:
        return f'"{event.item_title}" is 1 day overdue (due {_date(event.due_at)})'
    return (
        f'"{event.item_title}" is {event.days_overdue} days overdue '
        f"(due {_date(event.due_at)})"
    )


def book_available_message(event: BookAvailableEvent) -> str:
    return f'Good news! "{event.item_title}" is available again'


class NotificationHandlers:
    """The built-in observers: one method per notification type."""

    def __init__(self, notifications: NotificationService) -> None:
        self._notifications = notifications

    def new_request(self, event: NewRequestEvent) -> None:
        """Notify every staff recipient listed on the event."""
        self._notifications.create_many(
            NotificationType.NEW_REQUEST,
            new_request_message(event),
            event.staff_ids,
            item_id=event.item_id,
            request_id=event.request_id,
        )

    def due_date_reminder(self, event: DueDateReminderEvent) -> None:
        self._notifications.create_many(
            NotificationType.DUE_DATE_REMINDER,
            reminder_message(event),
            [event.borrower_id],
            item_id=event.item_id,
            request_id=event.request_id,
        )

    def overdue(self, event: OverdueEvent) -> None:
        self._notifications.create_many(
            NotificationType.OVERDUE,
            overdue_message(event),
            [event.borrower_id],
            item_id=event.item_id,
            request_id=event.request_id,
        )

    def book_available(self, event: BookAvailableEvent) -> None:
        """One notification per watcher."""
        self._notifications.create_many(
            NotificationType.BOOK_AVAILABLE,
            book_available_message(event),
            [w.borrower_id for w in event.watchers],
            item_id=event.item_id,
        )


def register_default_handlers(
    dispatcher: NotificationDispatcher,
    notifications: NotificationService,
) -> NotificationHandlers:
    """Attach the built-in handlers to *dispatcher*. Returns the handler object."""
    handlers = NotificationHandlers(notifications)
    dispatcher.attach(NotificationType.NEW_REQUEST, handlers.new_request)
    dispatcher.attach(NotificationType.DUE_DATE_REMINDER, handlers.due_date_reminder)
    dispatcher.attach(NotificationType.OVERDUE, handlers.overdue)
    dispatcher.attach(NotificationType.BOOK_AVAILABLE, handlers.book_available)
    return handlers
