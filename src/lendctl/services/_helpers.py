"""Shared service-layer helper functions."""

from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def now_iso() -> str:
    """Current UTC time as standard ISO 8601 (for WAL rows and timestamps)."""
    return utc_now().isoformat()


def to_iso(value: datetime) -> str:
    """Serialize *value* as UTC ISO 8601. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def as_utc(value: datetime) -> datetime:
    """Normalize *value* to an aware UTC datetime. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_iso(value: str | None) -> datetime | None:
    """Parse stored ISO 8601 text back into an aware UTC datetime."""
    if value is None:
        return None
    return as_utc(datetime.fromisoformat(value))
