"""WAL-backed notification fan-out via a handler registry + ThreadPoolExecutor.

``notify`` writes one ``delivery_wal`` row per (event, handler) before
running the handlers concurrently, then waits until every one of them has
finished. A handler that raises is logged and recorded as ``failed``; the
others still run and the caller never sees the exception. ``drain()``
re-runs failed deliveries only, so a handler that already succeeded is
never invoked twice for the same event.

INVARIANT: Handler failures are warnings, never errors.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel
from sqlalchemy import case, insert, null, select, update

from lendctl.domain.events import EVENT_MODELS, NotificationType
from lendctl.infrastructure.database.schema import delivery_wal
from lendctl.notifications.registry import Handler, HandlerRegistry
from lendctl.services._helpers import now_iso

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchReport:
    """Outcome of one ``notify`` call."""

    notification_type: str
    handlers: int
    delivered: int
    failed: int


class NotificationDispatcher:
    """Subject side of the observer pattern.

    Parameters:
        engine: SQLAlchemy engine holding the ``delivery_wal`` table, or
            None for an unlogged in-memory dispatcher.
        registry: Handler registry; a fresh one is created when omitted.
        sync: Run handlers inline on the calling thread (tests / ``--sync``).
        max_retries: Failed attempts before a delivery becomes ``dead_letter``.
        max_workers: ThreadPoolExecutor worker count.
    """

    def __init__(
        self,
        engine: Engine | None = None,
        *,
        registry: HandlerRegistry | None = None,
        sync: bool = False,
        max_retries: int = 3,
        max_workers: int = 4,
    ) -> None:
        self._engine = engine
        self._registry = registry or HandlerRegistry()
        self._sync = sync
        self._max_retries = max_retries
        self._executor: ThreadPoolExecutor | None = (
            None
            if sync
            else ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="lendctl-notify")
        )

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry

    def attach(self, notification_type: str, handler: Handler) -> str:
        """Register *handler* for *notification_type*. Returns its registered name."""
        return self._registry.attach(notification_type, handler)

    def detach(self, notification_type: str, handler: Handler) -> bool:
        """Unregister *handler*. Returns True if it had been attached."""
        return self._registry.detach(notification_type, handler)

    def handler_count(self, notification_type: str) -> int:
        return self._registry.count(notification_type)

    def reset(self) -> None:
        """Drop every handler registration."""
        self._registry.reset()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def notify(
        self,
        notification_type: str,
        payload: BaseModel | dict[str, Any],
    ) -> DispatchReport:
        """Invoke every handler registered for *notification_type* with *payload*.

        Handlers run concurrently; this returns once all of them have
        completed. With no handler registered the call is a no-op.

        Raises:
            ValueError: If *notification_type* is unknown.
            pydantic.ValidationError: If *payload* does not fit the type's event model.
        """
        ntype = NotificationType(notification_type)
        event = self._coerce_payload(ntype, payload)

        handlers = self._registry.handlers_for(ntype)
        if not handlers:
            logger.debug("No handler registered for %s", ntype)
            return DispatchReport(ntype.value, 0, 0, 0)

        body = event.model_dump_json()
        deliveries = [(self._write_wal(ntype, name, body), name, fn) for name, fn in handlers]

        if self._executor is None:
            outcomes = [
                self._deliver(delivery_id, ntype, name, fn, event)
                for delivery_id, name, fn in deliveries
            ]
        else:
            futures: list[Future[bool]] = [
                self._executor.submit(self._deliver, delivery_id, ntype, name, fn, event)
                for delivery_id, name, fn in deliveries
            ]
            outcomes = [self._outcome(future) for future in futures]

        delivered = sum(1 for ok in outcomes if ok)
        report = DispatchReport(ntype.value, len(handlers), delivered, len(handlers) - delivered)
        logger.debug(
            "Dispatched %s to %d handler(s), %d failed",
            ntype,
            report.handlers,
            report.failed,
        )
        return report

    def drain(self, *, include_pending: bool = False) -> list[dict[str, Any]]:
        """Retry failed deliveries synchronously.

        With *include_pending*, deliveries left ``pending`` by an interrupted
        process are retried too; only use it when no ``notify`` is in flight
        (e.g. at startup).

        Returns a summary list of ``{id, event_type, handler, status}``.
        """
        if self._engine is None:
            return []

        statuses = ["failed", "pending"] if include_pending else ["failed"]
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(
                    delivery_wal.c.id,
                    delivery_wal.c.event_type,
                    delivery_wal.c.handler,
                    delivery_wal.c.payload,
                )
                .where(delivery_wal.c.status.in_(statuses))
                .order_by(delivery_wal.c.id)
            ).fetchall()

        results: list[dict[str, Any]] = []
        for row in rows:
            ntype = NotificationType(row.event_type)
            handler = self._registry.get_handler(ntype, row.handler)
            if handler is None:
                self._mark_dead(row.id, "Handler is no longer registered")
            else:
                event = EVENT_MODELS[ntype].model_validate_json(row.payload)
                self._deliver(row.id, ntype, row.handler, handler, event)

            with self._engine.connect() as conn:
                status = conn.execute(
                    select(delivery_wal.c.status).where(delivery_wal.c.id == row.id)
                ).scalar_one()
            results.append(
                {"id": row.id, "event_type": ntype.value, "handler": row.handler, "status": status}
            )
        return results

    def shutdown(self) -> None:
        """Shutdown the worker pool. Later dispatches run inline."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _coerce_payload(
        ntype: NotificationType,
        payload: BaseModel | dict[str, Any],
    ) -> BaseModel:
        model = EVENT_MODELS[ntype]
        if isinstance(payload, model):
            return payload
        if isinstance(payload, BaseModel):
            msg = f"{ntype} expects a {model.__name__} payload, got {type(payload).__name__}"
            raise ValueError(msg)
        return model.model_validate(payload)

    def _deliver(
        self,
        delivery_id: int | None,
        ntype: NotificationType,
        name: str,
        handler: Handler,
        event: BaseModel,
    ) -> bool:
        """Run one handler. Records the outcome; never raises for handler errors."""
        try:
            handler(event)
        except Exception as exc:
            logger.warning("Handler %s failed for %s: %s", name, ntype, exc, exc_info=True)
            self._mark_failed(delivery_id, str(exc))
            return False
        self._mark_completed(delivery_id)
        return True

    @staticmethod
    def _outcome(future: Future[bool]) -> bool:
        try:
            return future.result()
        except Exception:
            # Handler errors are caught in _deliver; this is WAL bookkeeping failing.
            logger.warning("Delivery bookkeeping failed", exc_info=True)
            return False

    def _write_wal(self, ntype: NotificationType, handler: str, payload: str) -> int | None:
        """Insert a pending delivery. Returns the row id (None without an engine)."""
        if self._engine is None:
            return None
        with self._engine.begin() as conn:
            result = conn.execute(
                insert(delivery_wal).values(
                    event_type=ntype.value,
                    handler=handler,
                    payload=payload,
                    status="pending",
                    retries=0,
                    created=now_iso(),
                )
            )
            assert result.inserted_primary_key is not None
            return int(result.inserted_primary_key[0])

    def _mark_completed(self, delivery_id: int | None) -> None:
        if self._engine is None or delivery_id is None:
            return
        with self._engine.begin() as conn:
            conn.execute(
                update(delivery_wal)
                .where(delivery_wal.c.id == delivery_id)
                .values(status="completed", error=None, completed=now_iso())
            )

    def _mark_failed(self, delivery_id: int | None, error: str) -> None:
        """Increment retries, mark failed or dead_letter in one statement."""
        if self._engine is None or delivery_id is None:
            return
        exhausted = delivery_wal.c.retries + 1 >= self._max_retries
        with self._engine.begin() as conn:
            conn.execute(
                update(delivery_wal)
                .where(delivery_wal.c.id == delivery_id)
                .values(
                    status=case((exhausted, "dead_letter"), else_="failed"),
                    error=error,
                    retries=delivery_wal.c.retries + 1,
                    completed=case((exhausted, now_iso()), else_=null()),
                )
            )

    def _mark_dead(self, delivery_id: int, error: str) -> None:
        if self._engine is None:
            return
        with self._engine.begin() as conn:
            conn.execute(
                update(delivery_wal)
                .where(delivery_wal.c.id == delivery_id)
                .values(status="dead_letter", error=error, completed=now_iso())
            )
