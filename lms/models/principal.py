from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from lms.models.user import Role


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity for the current request.

    Built by the identity resolver from the bearer token subject plus the
    user's *current* role in the store, so role changes apply on the next
    request rather than when the token expires.
    """

    user_id: UUID
    role: Role

    def has_any_role(self, roles: set[Role] | frozenset[Role]) -> bool:
        return self.role in roles

    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def owns(self, owner_id: UUID) -> bool:
        return self.user_id == owner_id
