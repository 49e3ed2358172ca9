"""SQLAlchemy Core table definitions for the lendctl database.

Each table backs one document-store collection. Timestamps are ISO 8601
text in UTC. The partial unique index on ``borrow_requests`` is the
storage-side guard for "one pending request per (borrower, item)".
"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
    text,
)

metadata = MetaData()

items = Table(
    "items",
    metadata,
    Column("id", Text, primary_key=True),
    Column("title", Text, nullable=False),
    Column("total_copies", Integer, nullable=False),
    Column("available_copies", Integer, nullable=False),
    Column("created_at", Text, nullable=False),
    CheckConstraint("total_copies > 0", name="ck_items_total_positive"),
    CheckConstraint(
        "available_copies >= 0 AND available_copies <= total_copies",
        name="ck_items_available_bounds",
    ),
)

users = Table(
    "users",
    metadata,
    Column("id", Text, primary_key=True),
    Column("name", Text, nullable=False),
    Column("email", Text, nullable=False),
    Column("role", Text, nullable=False),
    Column("created_at", Text, nullable=False),
)

borrow_requests = Table(
    "borrow_requests",
    metadata,
    Column("id", Text, primary_key=True),
    Column("borrower_id", Text, nullable=False),
    Column("item_id", Text, ForeignKey("items.id"), nullable=False),
    Column("status", Text, nullable=False),
    Column("requested_at", Text, nullable=False),
    Column("approved_at", Text),
    Column("due_at", Text),
    Column("returned_at", Text),
    Column("reviewer_id", Text),
)

notifications = Table(
    "notifications",
    metadata,
    Column("id", Text, primary_key=True),
    Column("type", Text, nullable=False),
    Column("message", Text, nullable=False),
    Column("recipient_id", Text, nullable=False),
    Column("item_id", Text),
    Column("request_id", Text),
    Column("read", Boolean, nullable=False, default=False, server_default="0"),
    Column("created_at", Text, nullable=False),
)

watchlist = Table(
    "watchlist",
    metadata,
    Column("id", Text, primary_key=True),
    Column("borrower_id", Text, nullable=False),
    Column("item_id", Text, ForeignKey("items.id"), nullable=False),
    Column("created_at", Text, nullable=False),
    UniqueConstraint("borrower_id", "item_id"),
)

# One row per (event, handler) delivery attempt chain.
delivery_wal = Table(
    "delivery_wal",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("event_type", Text, nullable=False),
    Column("handler", Text, nullable=False),
    Column("payload", Text, nullable=False),  # JSON
    Column("status", Text, nullable=False),
    Column("error", Text),
    Column("retries", Integer, default=0, server_default="0"),
    Column("created", Text, nullable=False),
    Column("completed", Text),
)

# ---------------------------------------------------------------------------
# Indexes for frequently filtered columns
# ---------------------------------------------------------------------------

Index("ix_requests_status", borrow_requests.c.status)
Index("ix_requests_borrower", borrow_requests.c.borrower_id)
Index("ix_requests_item", borrow_requests.c.item_id)
Index(
    "uq_requests_one_pending",
    borrow_requests.c.borrower_id,
    borrow_requests.c.item_id,
    unique=True,
    sqlite_where=text("status = 'pending'"),
)
Index("ix_notifications_recipient", notifications.c.recipient_id)
Index("ix_watchlist_item", watchlist.c.item_id)
Index("ix_delivery_wal_status", delivery_wal.c.status)

# Collection name -> backing table, for the document store.
COLLECTIONS: dict[str, Table] = {
    "items": items,
    "users": users,
    "borrow_requests": borrow_requests,
    "notifications": notifications,
    "watchlist": watchlist,
}
