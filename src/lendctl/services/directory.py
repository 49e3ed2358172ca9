"""UserDirectory — borrowers and staff, distinguished only by role."""

from __future__ import annotations

from lendctl.domain.ids import is_blank
from lendctl.domain.records import User
from lendctl.domain.roles import Role, is_staff, parse_role
from lendctl.services._helpers import now_iso
from lendctl.services.base import BaseService
from lendctl.services.result import ErrorCode, ServiceResult
from lendctl.services.telemetry import traced

_COLLECTION = "users"


class UserDirectory(BaseService):
    """Registers users and answers role lookups for the other services."""

    @traced
    def register_user(self, name: str, email: str, role: str = Role.MEMBER) -> ServiceResult:
        op = "register_user"
        if is_blank(name):
            return ServiceResult.failure(op, ErrorCode.VALIDATION, "Name is required")
        if is_blank(email) or "@" not in email:
            return ServiceResult.failure(
                op, ErrorCode.VALIDATION, f"Invalid email address: {email!r}"
            )
        try:
            parsed = parse_role(role)
        except ValueError as exc:
            return ServiceResult.failure(op, ErrorCode.VALIDATION, str(exc))

        with self._store.transaction() as txn:
            if txn.query(_COLLECTION, email=email.strip()):
                return ServiceResult.failure(
                    op,
                    ErrorCode.CONFLICT,
                    f"A user with email {email.strip()} already exists",
                )
            user_id = txn.put(
                _COLLECTION,
                {
                    "name": name.strip(),
                    "email": email.strip(),
                    "role": parsed.value,
                    "created_at": now_iso(),
                },
            )
            record = txn.get(_COLLECTION, user_id)
        return ServiceResult(ok=True, op=op, data=User.model_validate(record).to_data())

    def find(self, user_id: str) -> User | None:
        """Typed lookup for other services. None when *user_id* is unknown."""
        record = self._store.get(_COLLECTION, user_id)
        return User.model_validate(record) if record is not None else None

    def get(self, user_id: str) -> ServiceResult:
        op = "get_user"
        user = self.find(user_id)
        if user is None:
            return ServiceResult.failure(
                op, ErrorCode.NOT_FOUND, f"No user found with ID: {user_id}"
            )
        return ServiceResult(ok=True, op=op, data=user.to_data())

    def staff_ids(self) -> list[str]:
        """IDs of every librarian and admin, in registration order."""
        users = [User.model_validate(r) for r in self._store.query(_COLLECTION)]
        staff = [u for u in users if is_staff(u.role)]
        staff.sort(key=lambda u: (str(u.created_at), u.id))
        return [u.id for u in staff]

    def list_users(self, *, role: str | None = None) -> ServiceResult:
        op = "list_users"
        filters: dict[str, str] = {}
        if role is not None:
            try:
                filters["role"] = parse_role(role).value
            except ValueError as exc:
                return ServiceResult.failure(op, ErrorCode.VALIDATION, str(exc))
        users = sorted(
            (User.model_validate(r) for r in self._store.query(_COLLECTION, **filters)),
            key=lambda u: u.name.lower(),
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={"count": len(users), "items": [u.to_data() for u in users]},
        )
