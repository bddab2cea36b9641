"""FastAPI dependencies: unit of work, identity resolution, services.

Identity resolution turns an optional bearer token into a Principal:

    no token                      → None (anonymous)
    bad/expired token             → 401
    token for an unknown user     → 401
    valid token                   → Principal(user id, role from the store)

Endpoints that need a caller depend on ``require_user``; endpoints that
behave differently for anonymous callers (catalog, course detail) take
``get_optional_principal`` and let the access policy decide.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from lms.core.errors import UnauthorizedError
from lms.db.engine import async_session_factory, get_async_session
from lms.models.principal import Principal
from lms.models.user import Role
from lms.repos.gateway import Gateway, InMemoryGateway, PgGateway
from lms.services import guards, token_service
from lms.services.cache import cache_service
from lms.services.certificate_service import CertificateService
from lms.services.course_service import CourseService
from lms.services.enrollment_service import EnrollmentService
from lms.services.instructor_service import InstructorService
from lms.services.progress_service import ProgressService
from lms.services.review_service import ReviewService
from lms.services.user_service import UserService

logger = logging.getLogger(__name__)

# Tokens come from the external auth provider; tokenUrl only feeds the docs.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token", auto_error=False)

# Used whenever DATABASE_URL is unset.  Tests reset it between cases.
memory_gateway = InMemoryGateway()


async def get_gateway() -> AsyncGenerator[Gateway, None]:
    """One gateway per request; with Postgres it wraps the request session."""
    if async_session_factory is None:
        yield memory_gateway
        return
    async for session in get_async_session():
        yield PgGateway(session)


GatewayDep = Annotated[Gateway, Depends(get_gateway)]


async def get_optional_principal(
    raw_token: Annotated[str | None, Depends(oauth2_scheme)],
    gateway: GatewayDep,
) -> Principal | None:
    if raw_token is None:
        return None

    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise UnauthorizedError("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise UnauthorizedError("Invalid token") from None

    try:
        user_id = UUID(claims["sub"])
    except ValueError:
        logger.warning("Token subject is not a user id: %r", claims["sub"])
        raise UnauthorizedError("Invalid token") from None

    user = await gateway.users.get_by_id(user_id)
    if user is None:
        logger.warning("Token for unknown user=%s rejected", user_id)
        raise UnauthorizedError("Unknown user")

    logger.debug("Token validated for user=%s role=%s", user.id, user.role)
    return Principal(user_id=user.id, role=user.role)


OptionalPrincipal = Annotated[Principal | None, Depends(get_optional_principal)]


def require_user(principal: OptionalPrincipal) -> Principal:
    return guards.require_auth(principal)


CurrentUser = Annotated[Principal, Depends(require_user)]


def require_role(*roles: Role):
    """Dependency factory: demand one of the given roles.

    Usage: Depends(require_role(Role.INSTRUCTOR, Role.ADMIN))
    """

    def _guard(principal: OptionalPrincipal) -> Principal:
        return guards.require_role(principal, roles)

    return _guard


# ---------------------------------------------------------------------------
# Services, bound to the request's gateway
# ---------------------------------------------------------------------------


def get_course_service(gateway: GatewayDep) -> CourseService:
    return CourseService(gateway, cache_service)


def get_enrollment_service(gateway: GatewayDep) -> EnrollmentService:
    return EnrollmentService(gateway)


def get_progress_service(gateway: GatewayDep) -> ProgressService:
    return ProgressService(gateway, cache_service)


def get_certificate_service(gateway: GatewayDep) -> CertificateService:
    return CertificateService(gateway)


def get_instructor_service(gateway: GatewayDep) -> InstructorService:
    return InstructorService(gateway)


def get_review_service(gateway: GatewayDep) -> ReviewService:
    return ReviewService(gateway)


def get_user_service(gateway: GatewayDep) -> UserService:
    return UserService(gateway)
