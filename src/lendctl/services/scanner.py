"""DueDateScanner — periodic reminder and overdue detection.

Each scan reads every approved request and classifies it against ``now``:
past due -> OVERDUE, due within the reminder window -> DUE_DATE_REMINDER,
otherwise nothing. Scans are not deduplicated: a request still in the
window on the next scan is notified again.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from lendctl.domain.events import DueDateReminderEvent, NotificationType, OverdueEvent
from lendctl.domain.lifecycle import DEFAULT_REMINDER_WINDOW_DAYS, RequestStatus, classify_due
from lendctl.domain.records import BorrowRequest, Item, User
from lendctl.infrastructure.scheduler import PeriodicJob
from lendctl.services._helpers import as_utc, utc_now
from lendctl.services.base import BaseService
from lendctl.services.result import ServiceResult
from lendctl.services.telemetry import annotate, traced

if TYPE_CHECKING:
    from lendctl.infrastructure.store import DocumentStore
    from lendctl.notifications.dispatcher import NotificationDispatcher
    from lendctl.services.lending import BorrowLifecycleManager

logger = logging.getLogger(__name__)

DEFAULT_SCAN_INTERVAL = timedelta(hours=24)


class DueDateScanner(BaseService):
    """Emits DUE_DATE_REMINDER and OVERDUE events for approved requests."""

    def __init__(
        self,
        store: DocumentStore,
        dispatcher: NotificationDispatcher | None,
        lending: BorrowLifecycleManager,
        *,
        reminder_window_days: int = DEFAULT_REMINDER_WINDOW_DAYS,
        interval: timedelta = DEFAULT_SCAN_INTERVAL,
    ) -> None:
        super().__init__(store, dispatcher)
        self._lending = lending
        self._reminder_window_days = reminder_window_days
        self._interval = interval
        self._job: PeriodicJob | None = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def start(self, interval: timedelta | None = None) -> bool:
        """Scan now, then every *interval* until :meth:`stop`.

        Returns False without doing anything when already running.
        """
        with self._lock:
            if self._job is not None:
                return False
            self._job = PeriodicJob(
                "lendctl-due-date-scanner",
                self.scan,
                interval or self._interval,
            )
            job = self._job
        return job.start()

    def stop(self) -> None:
        """Cancel future scans. Idempotent; an in-flight scan completes."""
        with self._lock:
            job, self._job = self._job, None
        if job is not None:
            job.stop()

    def is_running(self) -> bool:
        with self._lock:
            return self._job is not None

    # ------------------------------------------------------------------
    # Scan
    # ------------------------------------------------------------------

    @traced
    def scan(self, now: datetime | None = None) -> ServiceResult:
        """Run one pass over every approved request.

        A request whose item or borrower cannot be resolved is logged and
        counted under ``errors``; the pass carries on with the rest.
        """
        op = "scan"
        warnings: list[str] = []
        current = as_utc(now or utc_now())
        counts = {"checked": 0, "reminders": 0, "overdue": 0, "errors": 0}

        for request in self._lending.list_by_status(RequestStatus.APPROVED):
            counts["checked"] += 1
            try:
                kind = self._check(request, current, warnings)
            except Exception:
                logger.warning("Due-date check failed for %s", request.id, exc_info=True)
                counts["errors"] += 1
                continue
            if kind == "overdue":
                counts["overdue"] += 1
            elif kind == "reminder":
                counts["reminders"] += 1

        for key, value in counts.items():
            annotate(key, value)
        logger.debug(
            "Scan at %s: %d checked, %d reminder(s), %d overdue, %d error(s)",
            current.isoformat(),
            counts["checked"],
            counts["reminders"],
            counts["overdue"],
            counts["errors"],
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={**counts, "now": current.isoformat()},
            warnings=warnings,
        )

    def _check(
        self,
        request: BorrowRequest,
        now: datetime,
        warnings: list[str],
    ) -> str | None:
        if request.due_at is None:
            msg = f"Approved request {request.id} has no due date"
            raise LookupError(msg)
        kind, days = classify_due(
            request.due_at, now, reminder_window_days=self._reminder_window_days
        )
        if kind is None:
            return None

        item_row = self._store.get("items", request.item_id)
        if item_row is None:
            msg = f"Item {request.item_id} of request {request.id} not found"
            raise LookupError(msg)
        borrower_row = self._store.get("users", request.borrower_id)
        if borrower_row is None:
            msg = f"Borrower {request.borrower_id} of request {request.id} not found"
            raise LookupError(msg)
        item = Item.model_validate(item_row)
        borrower = User.model_validate(borrower_row)

        common = {
            "request_id": request.id,
            "borrower_id": borrower.id,
            "borrower_name": borrower.name,
            "item_id": item.id,
            "item_title": item.title,
            "due_at": request.due_at,
        }
        if kind == "overdue":
            self._dispatch_event(
                NotificationType.OVERDUE,
                OverdueEvent(**common, days_overdue=days),
                warnings,
            )
        else:
            self._dispatch_event(
                NotificationType.DUE_DATE_REMINDER,
                DueDateReminderEvent(**common, days_until_due=days),
                warnings,
            )
        return kind
