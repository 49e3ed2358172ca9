"""Record ID prefixes and generation.

IDs are random (``{prefix}{12 hex chars}``) and permanent: once a record is
written its ID never changes.
"""

from __future__ import annotations

import re
import uuid

ID_PREFIXES: dict[str, str] = {
    "items": "itm_",
    "users": "usr_",
    "borrow_requests": "req_",
    "notifications": "ntf_",
    "watchlist": "wch_",
}

ID_PATTERNS: dict[str, re.Pattern[str]] = {
    collection: re.compile(rf"^{re.escape(prefix)}[0-9a-f]{{12}}$")
    for collection, prefix in ID_PREFIXES.items()
}


def generate_id(collection: str) -> str:
    """Generate a fresh ID for a record in *collection*.

    Raises:
        KeyError: If *collection* has no registered prefix.
    """
    prefix = ID_PREFIXES[collection]
    return f"{prefix}{uuid.uuid4().hex[:12]}"


def validate_id(record_id: str, collection: str) -> bool:
    """Check whether *record_id* looks like an ID generated for *collection*."""
    pattern = ID_PATTERNS.get(collection)
    if pattern is None:
        return False
    return pattern.match(record_id) is not None


def is_blank(value: str | None) -> bool:
    return value is None or not str(value).strip()
