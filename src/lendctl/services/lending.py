"""BorrowLifecycleManager — the borrow-request state machine.

States: pending -> approved -> returned, or pending -> rejected.
Every transition is a compare-and-set on ``status`` so two reviewers
racing on the same request cannot both win. Approve and return change the
status and the inventory counter in one transaction: a failed reservation
rolls the status change back with it.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import IntegrityError

from lendctl.domain.events import NewRequestEvent, NotificationType
from lendctl.domain.ids import is_blank
from lendctl.domain.lifecycle import (
    DEFAULT_LOAN_DAYS,
    RequestStatus,
    default_due_at,
    is_late,
    is_valid_transition,
)
from lendctl.domain.records import BorrowRequest, Item, User
from lendctl.infrastructure.database.inventory import (
    InventoryConflictError,
    ItemNotFoundError,
    release_copy,
    reserve_copy,
)
from lendctl.services._helpers import as_utc, to_iso, utc_now
from lendctl.services.base import BaseService
from lendctl.services.result import ErrorCode, ServiceResult
from lendctl.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from collections.abc import Iterable

    from lendctl.infrastructure.store import DocumentStore, StoreTransaction
    from lendctl.notifications.dispatcher import NotificationDispatcher
    from lendctl.services.watchlist import WatchlistManager

logger = logging.getLogger(__name__)

_COLLECTION = "borrow_requests"


class BorrowLifecycleManager(BaseService):
    """Creates, reviews and closes borrow requests."""

    def __init__(
        self,
        store: DocumentStore,
        dispatcher: NotificationDispatcher | None = None,
        *,
        watchlist: WatchlistManager | None = None,
        loan_days: int = DEFAULT_LOAN_DAYS,
    ) -> None:
        super().__init__(store, dispatcher)
        self._watchlist = watchlist
        self._loan_days = loan_days

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @traced
    def create_request(
        self,
        borrower_id: str,
        item_id: str,
        staff_ids: Iterable[str] = (),
        *,
        now: datetime | None = None,
    ) -> ServiceResult:
        """Open a pending request and tell staff about it.

        CONFLICT when the borrower already has a pending request for the
        item, or when no copy of the item is currently available.
        """
        op = "create_request"
        warnings: list[str] = []
        if is_blank(borrower_id) or is_blank(item_id):
            return ServiceResult.failure(
                op, ErrorCode.VALIDATION, "Borrower ID and item ID are required"
            )
        requested_at = as_utc(now or utc_now())

        try:
            with self._store.transaction() as txn:
                item_row = txn.get("items", item_id)
                if item_row is None:
                    return ServiceResult.failure(
                        op, ErrorCode.NOT_FOUND, f"No item found with ID: {item_id}"
                    )
                borrower_row = txn.get("users", borrower_id)
                if borrower_row is None:
                    return ServiceResult.failure(
                        op, ErrorCode.NOT_FOUND, f"No user found with ID: {borrower_id}"
                    )
                item = Item.model_validate(item_row)
                borrower = User.model_validate(borrower_row)

                pending = txn.query(
                    _COLLECTION,
                    borrower_id=borrower_id,
                    item_id=item_id,
                    status=RequestStatus.PENDING.value,
                )
                if pending:
                    return _duplicate(op, borrower_id, item_id, pending[0]["id"])
                if not item.is_available:
                    return ServiceResult.failure(
                        op,
                        ErrorCode.CONFLICT,
                        f'No copy of "{item.title}" is available',
                        item_id=item_id,
                    )

                request_id = txn.put(
                    _COLLECTION,
                    {
                        "borrower_id": borrower_id,
                        "item_id": item_id,
                        "status": RequestStatus.PENDING.value,
                        "requested_at": to_iso(requested_at),
                    },
                )
                record = txn.get(_COLLECTION, request_id)
        except IntegrityError:
            # The partial unique index caught a concurrent duplicate.
            return _duplicate(op, borrower_id, item_id, None)

        request = BorrowRequest.model_validate(record)
        event = NewRequestEvent(
            request_id=request.id,
            borrower_id=borrower.id,
            borrower_name=borrower.name,
            item_id=item.id,
            item_title=item.title,
            staff_ids=list(staff_ids),
        )
        self._dispatch_event(NotificationType.NEW_REQUEST, event, warnings)

        logger.debug("Request %s created for %s by %s", request.id, item_id, borrower_id)
        return ServiceResult(ok=True, op=op, data=request.to_data(), warnings=warnings)

    @traced
    def approve(
        self,
        request_id: str,
        reviewer_id: str,
        due_at: datetime | None = None,
        *,
        now: datetime | None = None,
    ) -> ServiceResult:
        """Approve a pending request and reserve a copy for it.

        The status change and the reservation commit together or not at all.
        ``due_at`` defaults to ``approved_at`` plus the configured loan period.
        """
        op = "approve"
        if is_blank(request_id) or is_blank(reviewer_id):
            return ServiceResult.failure(
                op, ErrorCode.VALIDATION, "Request ID and reviewer ID are required"
            )
        approved_at = as_utc(now or utc_now())
        if due_at is None:
            due = default_due_at(approved_at, self._loan_days)
        else:
            due = as_utc(due_at)
            if due <= approved_at:
                return ServiceResult.failure(
                    op,
                    ErrorCode.VALIDATION,
                    "Due date must be after the approval time",
                    due_at=to_iso(due),
                )

        try:
            with self._store.transaction() as txn:
                current = _load(txn, request_id)
                if current is None:
                    return _not_found(op, request_id)
                failure = _check_transition(op, current, RequestStatus.APPROVED)
                if failure is not None:
                    return failure

                changed = txn.update(
                    _COLLECTION,
                    request_id,
                    {
                        "status": RequestStatus.APPROVED.value,
                        "approved_at": to_iso(approved_at),
                        "due_at": to_iso(due),
                        "reviewer_id": reviewer_id,
                    },
                    expect={"status": RequestStatus.PENDING.value},
                )
                if not changed:
                    return _already_processed(op, request_id)

                with trace_span("reserve_copy", item_id=current.item_id) as span:
                    available = reserve_copy(txn.conn, current.item_id)
                    if span is not None:
                        span.annotate("available_copies", available)
                record = txn.get(_COLLECTION, request_id)
        except ItemNotFoundError as exc:
            return ServiceResult.failure(op, ErrorCode.NOT_FOUND, str(exc))
        except InventoryConflictError as exc:
            return ServiceResult.failure(
                op,
                ErrorCode.CONFLICT,
                str(exc),
                request_id=request_id,
            )

        request = BorrowRequest.model_validate(record)
        logger.debug("Request %s approved by %s, due %s", request_id, reviewer_id, request.due_at)
        return ServiceResult(
            ok=True,
            op=op,
            data={**request.to_data(), "available_copies": available},
        )

    @traced
    def reject(self, request_id: str, reviewer_id: str) -> ServiceResult:
        """Reject a pending request. Rejected requests are final."""
        op = "reject"
        if is_blank(request_id) or is_blank(reviewer_id):
            return ServiceResult.failure(
                op, ErrorCode.VALIDATION, "Request ID and reviewer ID are required"
            )

        with self._store.transaction() as txn:
            current = _load(txn, request_id)
            if current is None:
                return _not_found(op, request_id)
            failure = _check_transition(op, current, RequestStatus.REJECTED)
            if failure is not None:
                return failure
            changed = txn.update(
                _COLLECTION,
                request_id,
                {"status": RequestStatus.REJECTED.value, "reviewer_id": reviewer_id},
                expect={"status": RequestStatus.PENDING.value},
            )
            if not changed:
                return _already_processed(op, request_id)
            record = txn.get(_COLLECTION, request_id)

        return ServiceResult(ok=True, op=op, data=BorrowRequest.model_validate(record).to_data())

    @traced
    def return_item(self, request_id: str, *, now: datetime | None = None) -> ServiceResult:
        """Close an approved request and put its copy back.

        When the copy brings the item back from zero available, the
        watchlist is told about the restock after the return commits.
        """
        op = "return_item"
        warnings: list[str] = []
        if is_blank(request_id):
            return ServiceResult.failure(op, ErrorCode.VALIDATION, "Request ID is required")
        returned_at = as_utc(now or utc_now())

        try:
            with self._store.transaction() as txn:
                current = _load(txn, request_id)
                if current is None:
                    return _not_found(op, request_id)
                failure = _check_transition(op, current, RequestStatus.RETURNED)
                if failure is not None:
                    return failure
                changed = txn.update(
                    _COLLECTION,
                    request_id,
                    {"status": RequestStatus.RETURNED.value, "returned_at": to_iso(returned_at)},
                    expect={"status": RequestStatus.APPROVED.value},
                )
                if not changed:
                    return _already_processed(op, request_id)
                with trace_span("release_copy", item_id=current.item_id) as span:
                    available, restocked = release_copy(txn.conn, current.item_id)
                    if span is not None:
                        span.annotate("available_copies", available)
                        span.annotate("restocked", restocked)
                record = txn.get(_COLLECTION, request_id)
        except ItemNotFoundError as exc:
            return ServiceResult.failure(op, ErrorCode.NOT_FOUND, str(exc))
        except InventoryConflictError as exc:
            return ServiceResult.failure(op, ErrorCode.CONFLICT, str(exc), request_id=request_id)

        request = BorrowRequest.model_validate(record)
        if restocked and self._watchlist is not None:
            restock = self._watchlist.on_restock(request.item_id)
            warnings.extend(restock.warnings)
            if not restock.ok and restock.error is not None:
                warnings.append(f"Restock announcement failed: {restock.error.message}")

        late = is_late(returned_at, request.due_at)
        logger.debug("Request %s returned (late=%s, restocked=%s)", request_id, late, restocked)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                **request.to_data(),
                "late": late,
                "available_copies": available,
                "restocked": restocked,
            },
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, request_id: str) -> ServiceResult:
        op = "get_request"
        with self._store.transaction() as txn:
            request = _load(txn, request_id)
        if request is None:
            return _not_found(op, request_id)
        return ServiceResult(ok=True, op=op, data=request.to_data())

    def list_by_status(self, status: str) -> list[BorrowRequest]:
        """Typed, unordered list of requests in *status*."""
        rows = self._store.query(_COLLECTION, status=RequestStatus(status).value)
        return [BorrowRequest.model_validate(r) for r in rows]

    @traced
    def find_active(self, status: str = RequestStatus.PENDING) -> ServiceResult:
        """Requests in *status*.

        Pending requests come oldest first (review queue order); every other
        status is ordered by approval time, most recent first.
        """
        op = "find_active"
        try:
            parsed = RequestStatus(status)
        except ValueError:
            valid = ", ".join(s.value for s in RequestStatus)
            return ServiceResult.failure(
                op,
                ErrorCode.VALIDATION,
                f"Unknown status: {status!r}. Expected one of: {valid}",
            )

        requests = self.list_by_status(parsed)
        if parsed is RequestStatus.PENDING:
            requests.sort(key=lambda r: (r.requested_at, r.id))
        else:
            requests.sort(key=_approved_key, reverse=True)
        return _listing(op, requests, self._titles(r.item_id for r in requests))

    @traced
    def find_by_borrower(self, borrower_id: str) -> ServiceResult:
        """The borrower's full history, newest request first."""
        op = "find_by_borrower"
        rows = self._store.query(_COLLECTION, borrower_id=borrower_id)
        requests = sorted(
            (BorrowRequest.model_validate(r) for r in rows),
            key=lambda r: (r.requested_at, r.id),
            reverse=True,
        )
        return _listing(op, requests, self._titles(r.item_id for r in requests))

    def _titles(self, item_ids: Iterable[str]) -> dict[str, str]:
        titles: dict[str, str] = {}
        with self._store.transaction() as txn:
            for item_id in set(item_ids):
                row = txn.get("items", item_id)
                if row is not None:
                    titles[item_id] = row["title"]
        return titles


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def _load(txn: StoreTransaction, request_id: str) -> BorrowRequest | None:
    record = txn.get(_COLLECTION, request_id)
    return BorrowRequest.model_validate(record) if record is not None else None


def _approved_key(request: BorrowRequest) -> tuple[datetime, str]:
    return request.approved_at or request.requested_at, request.id


def _listing(
    op: str,
    requests: list[BorrowRequest],
    titles: dict[str, str],
) -> ServiceResult:
    items: list[dict[str, Any]] = [
        {**r.to_data(), "item_title": titles.get(r.item_id)} for r in requests
    ]
    return ServiceResult(ok=True, op=op, data={"count": len(items), "items": items})


def _check_transition(
    op: str,
    request: BorrowRequest,
    target: RequestStatus,
) -> ServiceResult | None:
    if is_valid_transition(request.status, target):
        return None
    return ServiceResult.failure(
        op,
        ErrorCode.CONFLICT,
        f"Request {request.id} is {request.status}; cannot move to {target}",
        request_id=request.id,
        status=request.status.value,
    )


def _not_found(op: str, request_id: str) -> ServiceResult:
    return ServiceResult.failure(
        op, ErrorCode.NOT_FOUND, f"No borrow request found with ID: {request_id}"
    )


def _already_processed(op: str, request_id: str) -> ServiceResult:
    return ServiceResult.failure(
        op,
        ErrorCode.CONFLICT,
        f"Request {request_id} was already processed",
        request_id=request_id,
    )


def _duplicate(
    op: str,
    borrower_id: str,
    item_id: str,
    existing_id: str | None,
) -> ServiceResult:
    detail: dict[str, Any] = {"borrower_id": borrower_id, "item_id": item_id}
    if existing_id is not None:
        detail["request_id"] = existing_id
    return ServiceResult.failure(
        op,
        ErrorCode.CONFLICT,
        "A pending request for this item already exists",
        **detail,
    )
