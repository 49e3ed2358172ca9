"""NotificationService — persistence and queries for user-facing notifications.

Notifications are written by dispatcher handlers and afterwards touched
only by their recipient (read-marking, deletion) or by retention cleanup.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from lendctl.domain.events import NotificationType
from lendctl.domain.ids import generate_id, is_blank
from lendctl.domain.records import Notification
from lendctl.services._helpers import as_utc, now_iso, parse_iso, utc_now
from lendctl.services.base import BaseService
from lendctl.services.result import ErrorCode, ServiceResult
from lendctl.services.telemetry import traced

DEFAULT_RETENTION_DAYS = 30

_COLLECTION = "notifications"


class NotificationService(BaseService):
    """Creates, lists and maintains notification records."""

    # ------------------------------------------------------------------
    # Writes used by handlers
    # ------------------------------------------------------------------

    def create_many(
        self,
        notification_type: str,
        message: str,
        recipient_ids: Iterable[str],
        *,
        item_id: str | None = None,
        request_id: str | None = None,
    ) -> list[str]:
        """Insert one notification per recipient in a single transaction.

        Storage errors propagate: the dispatcher records them against the
        delivery so it can be retried.
        """
        ntype = NotificationType(notification_type)
        created = now_iso()
        ids: list[str] = []
        with self._store.transaction() as txn:
            for recipient_id in recipient_ids:
                ids.append(
                    txn.put(
                        _COLLECTION,
                        {
                            "id": generate_id(_COLLECTION),
                            "type": ntype.value,
                            "message": message,
                            "recipient_id": recipient_id,
                            "item_id": item_id,
                            "request_id": request_id,
                            "read": False,
                            "created_at": created,
                        },
                    )
                )
        return ids

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @traced
    def create(
        self,
        notification_type: str,
        message: str,
        recipient_id: str,
        *,
        item_id: str | None = None,
        request_id: str | None = None,
    ) -> ServiceResult:
        op = "create_notification"
        if is_blank(recipient_id):
            return ServiceResult.failure(op, ErrorCode.VALIDATION, "Recipient is required")
        if is_blank(message):
            return ServiceResult.failure(op, ErrorCode.VALIDATION, "Message is required")
        try:
            ntype = NotificationType(notification_type)
        except ValueError:
            return ServiceResult.failure(
                op,
                ErrorCode.VALIDATION,
                f"Unknown notification type: {notification_type!r}",
            )

        [notification_id] = self.create_many(
            ntype, message, [recipient_id], item_id=item_id, request_id=request_id
        )
        record = self._store.get(_COLLECTION, notification_id)
        assert record is not None
        return ServiceResult(ok=True, op=op, data=Notification.model_validate(record).to_data())

    @traced
    def list_for_user(self, user_id: str, *, unread_only: bool = False) -> ServiceResult:
        """Notifications for *user_id*, newest first."""
        op = "list_notifications"
        filters: dict[str, object] = {"recipient_id": user_id}
        if unread_only:
            filters["read"] = False
        rows = self._store.query(_COLLECTION, **filters)
        records = sorted(
            (Notification.model_validate(r) for r in rows),
            key=lambda n: (n.created_at, n.id),
            reverse=True,
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "count": len(records),
                "items": [n.to_data() for n in records],
            },
        )

    def unread_count(self, user_id: str) -> ServiceResult:
        rows = self._store.query(_COLLECTION, recipient_id=user_id, read=False)
        return ServiceResult(ok=True, op="unread_count", data={"count": len(rows)})

    @traced
    def mark_read(self, notification_id: str, user_id: str) -> ServiceResult:
        op = "mark_read"
        with self._store.transaction() as txn:
            record = txn.get(_COLLECTION, notification_id)
            failure = _check_owner(op, record, notification_id, user_id)
            if failure is not None:
                return failure
            txn.update(_COLLECTION, notification_id, {"read": True})
            record = txn.get(_COLLECTION, notification_id)
        assert record is not None
        return ServiceResult(ok=True, op=op, data=Notification.model_validate(record).to_data())

    @traced
    def mark_all_read(self, user_id: str) -> ServiceResult:
        op = "mark_all_read"
        with self._store.transaction() as txn:
            unread = txn.query(_COLLECTION, recipient_id=user_id, read=False)
            for row in unread:
                txn.update(_COLLECTION, row["id"], {"read": True})
        return ServiceResult(ok=True, op=op, data={"count": len(unread)})

    @traced
    def delete(self, notification_id: str, user_id: str) -> ServiceResult:
        op = "delete_notification"
        with self._store.transaction() as txn:
            record = txn.get(_COLLECTION, notification_id)
            failure = _check_owner(op, record, notification_id, user_id)
            if failure is not None:
                return failure
            txn.delete(_COLLECTION, notification_id)
        return ServiceResult(ok=True, op=op, data={"id": notification_id, "deleted": True})

    @traced
    def clean_old(
        self,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        *,
        now: datetime | None = None,
    ) -> ServiceResult:
        """Batch-delete read notifications older than *retention_days*."""
        op = "clean_old"
        if retention_days < 0:
            return ServiceResult.failure(
                op, ErrorCode.VALIDATION, "Retention days must not be negative"
            )
        cutoff = as_utc(now or utc_now()) - timedelta(days=retention_days)

        with self._store.transaction() as txn:
            stale = [
                row["id"]
                for row in txn.query(_COLLECTION, read=True)
                if (created := parse_iso(row["created_at"])) is not None and created < cutoff
            ]
            removed = txn.batch_delete(_COLLECTION, stale)
        return ServiceResult(
            ok=True,
            op=op,
            data={"count": removed, "cutoff": cutoff.isoformat()},
        )


def _check_owner(
    op: str,
    record: dict[str, object] | None,
    notification_id: str,
    user_id: str,
) -> ServiceResult | None:
    if record is None:
        return ServiceResult.failure(
            op,
            ErrorCode.NOT_FOUND,
            f"No notification found with ID: {notification_id}",
        )
    if record["recipient_id"] != user_id:
        return ServiceResult.failure(
            op,
            ErrorCode.FORBIDDEN,
            f"Notification {notification_id} belongs to another user",
            notification_id=notification_id,
        )
    return None
