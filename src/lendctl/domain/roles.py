"""User roles and the capability checks derived from them.

A user is a single record carrying a :class:`Role`; permissions are pure
functions over the enumeration rather than a class per role.
"""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    """Role of a directory user."""

    MEMBER = "member"
    LIBRARIAN = "librarian"
    ADMIN = "admin"


STAFF_ROLES = frozenset({Role.LIBRARIAN, Role.ADMIN})


def parse_role(value: str) -> Role:
    """Parse a role name case-insensitively.

    Raises:
        ValueError: If *value* is not a known role.
    """
    try:
        return Role(value.strip().lower())
    except ValueError:
        valid = ", ".join(r.value for r in Role)
        msg = f"Unknown role: {value!r}. Expected one of: {valid}"
        raise ValueError(msg) from None


def is_staff(role: str) -> bool:
    return role in STAFF_ROLES


def can_borrow(role: str) -> bool:
    """Every known role may borrow."""
    return role in set(Role)


def can_review(role: str) -> bool:
    """Only staff may approve or reject borrow requests."""
    return is_staff(role)
