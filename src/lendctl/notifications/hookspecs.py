"""Pluggy hook specifications: one hook per notification type.

Each hook receives the typed event payload for its type. Handlers attached
through :meth:`NotificationDispatcher.attach` and plugins loaded from the
``lendctl.handlers`` entry-point group implement these hooks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from lendctl.domain.events import (
        BookAvailableEvent,
        DueDateReminderEvent,
        NewRequestEvent,
        OverdueEvent,
    )

PROJECT_NAME = "lendctl"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class NotificationHookSpec:
    """Hook specifications for notification handlers."""

    @hookspec
    def new_request(self, payload: NewRequestEvent) -> None:
        """Called when a borrower creates a borrow request."""

    @hookspec
    def due_date_reminder(self, payload: DueDateReminderEvent) -> None:
        """Called when an approved request is due within the reminder window."""

    @hookspec
    def overdue(self, payload: OverdueEvent) -> None:
        """Called when an approved request is past its due date."""

    @hookspec
    def book_available(self, payload: BookAvailableEvent) -> None:
        """Called when an item with watchers restocks."""
