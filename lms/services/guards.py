"""Boundary guards that escalate missing identity or role to an error."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from lms.core.errors import ForbiddenError, UnauthorizedError
from lms.models.principal import Principal
from lms.models.user import Role

logger = logging.getLogger(__name__)


def require_auth(principal: Principal | None) -> Principal:
    if principal is None:
        raise UnauthorizedError("Authentication required")
    return principal


def require_role(principal: Principal | None, allowed: Iterable[Role]) -> Principal:
    principal = require_auth(principal)
    allowed = frozenset(allowed)
    if not principal.has_any_role(allowed):
        logger.warning(
            "Access denied: user=%s role=%s allowed=%s",
            principal.user_id,
            principal.role,
            sorted(allowed),
        )
        raise ForbiddenError("Insufficient permissions")
    return principal
