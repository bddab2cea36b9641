"""Profiles and role management.

Learners may switch themselves between STUDENT and INSTRUCTOR; only an
admin can grant or revoke ADMIN.
"""

from __future__ import annotations

import logging
from uuid import UUID

from lms.core.errors import ForbiddenError, NotFoundError
from lms.models.principal import Principal
from lms.models.user import Role, User
from lms.repos.gateway import Gateway
from lms.services.guards import require_role

logger = logging.getLogger(__name__)

SELF_ASSIGNABLE_ROLES = frozenset({Role.STUDENT, Role.INSTRUCTOR})


class UserService:
    def __init__(self, gateway: Gateway) -> None:
        self._gw = gateway

    async def get_profile(self, principal: Principal) -> User:
        user = await self._gw.users.get_by_id(principal.user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def change_own_role(self, principal: Principal, role: Role) -> User:
        if role not in SELF_ASSIGNABLE_ROLES or principal.is_admin():
            # Admin role changes go through set_role.
            logger.warning(
                "Self role change rejected user=%s from=%s to=%s",
                principal.user_id,
                principal.role,
                role,
            )
            raise ForbiddenError("This role cannot be self-assigned")
        return await self._update_role(principal.user_id, role)

    async def set_role(
        self, principal: Principal | None, user_id: UUID, role: Role
    ) -> User:
        admin = require_role(principal, {Role.ADMIN})
        updated = await self._update_role(user_id, role)
        logger.info(
            "Role set by admin=%s user=%s role=%s", admin.user_id, user_id, role
        )
        return updated

    async def _update_role(self, user_id: UUID, role: Role) -> User:
        updated = await self._gw.users.update_role(user_id, role)
        if updated is None:
            raise NotFoundError("User not found")
        logger.info("Role changed user=%s role=%s", user_id, role)
        return updated
