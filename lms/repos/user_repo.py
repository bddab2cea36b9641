from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from lms.models.user import Role, User
from lms.repos.errors import DuplicateRecordError


class UserRepo(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def get_by_email(self, email: str) -> User | None: ...
    async def add(self, user: User) -> None: ...
    async def update_role(self, user_id: UUID, role: Role) -> User | None: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_email: dict[str, User] = {}
        self._by_id: dict[UUID, User] = {}

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        return self._by_email.get(email.strip().lower())

    async def add(self, user: User) -> None:
        if user.email in self._by_email:
            raise DuplicateRecordError("email already exists")
        self._by_email[user.email] = user
        self._by_id[user.id] = user

    async def update_role(self, user_id: UUID, role: Role) -> User | None:
        u = self._by_id.get(user_id)
        if u is None:
            return None

        updated = replace(u, role=role)
        self._by_id[user_id] = updated
        self._by_email[updated.email] = updated
        return updated
