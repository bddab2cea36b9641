"""Current-user profile and role management."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from lms.api.dependencies import CurrentUser, get_user_service, require_role
from lms.models.principal import Principal
from lms.models.user import Role, User
from lms.services.user_service import UserService

router = APIRouter(tags=["users"])

UserServiceDep = Annotated[UserService, Depends(get_user_service)]


class UserOut(BaseModel):
    id: UUID
    email: str
    name: str
    role: Role
    created_at: int

    @staticmethod
    def of(u: User) -> UserOut:
        return UserOut(
            id=u.id, email=u.email, name=u.name, role=u.role, created_at=u.created_at
        )


class RoleIn(BaseModel):
    role: Role


@router.get("/v1/me", response_model=UserOut)
async def me(principal: CurrentUser, service: UserServiceDep) -> UserOut:
    return UserOut.of(await service.get_profile(principal))


@router.patch("/v1/me/role", response_model=UserOut)
async def change_my_role(
    payload: RoleIn, principal: CurrentUser, service: UserServiceDep
) -> UserOut:
    return UserOut.of(await service.change_own_role(principal, payload.role))


@router.patch("/v1/users/{user_id}/role", response_model=UserOut)
async def set_user_role(
    user_id: UUID,
    payload: RoleIn,
    principal: Annotated[Principal, Depends(require_role(Role.ADMIN))],
    service: UserServiceDep,
) -> UserOut:
    return UserOut.of(await service.set_role(principal, user_id, payload.role))
