"""BaseService — abstract foundation for all lendctl services.

Every service receives the :class:`DocumentStore` and, when it produces
events, the :class:`NotificationDispatcher` at construction time. Nothing
is looked up from module-level state, so each test can assemble an
isolated set of services.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from lendctl.services.telemetry import trace_span

if TYPE_CHECKING:
    from pydantic import BaseModel

    from lendctl.infrastructure.store import DocumentStore
    from lendctl.notifications.dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


class BaseService:
    """Abstract base for all service-layer classes.

    Usage::

        class LendingService(BaseService):
            def reject(self, request_id: str, ...) -> ServiceResult:
                with self._store.transaction() as txn:
                    ...
    """

    def __init__(
        self,
        store: DocumentStore,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher

    def _dispatch_event(
        self,
        notification_type: str,
        payload: BaseModel,
        warnings: list[str],
    ) -> None:
        """Fan an event out through the dispatcher. No-op without one.

        INVARIANT: Handler failures are warnings, never errors.
        """
        if self._dispatcher is None:
            return
        with trace_span("dispatch", notification_type=str(notification_type)) as span:
            try:
                report = self._dispatcher.notify(notification_type, payload)
            except Exception:
                logger.warning("Event dispatch failed for %s", notification_type, exc_info=True)
                warnings.append(f"Event dispatch failed for {notification_type}")
                if span is not None:
                    span.outcome = "raised"
                return
            if span is not None:
                span.annotate("handlers", report.handlers)
                span.annotate("failed", report.failed)
                span.outcome = "ok" if not report.failed else "handler_failed"
        if report.failed:
            warnings.append(
                f"{report.failed} of {report.handlers} handler(s) failed for {notification_type}"
            )
