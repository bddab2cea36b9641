from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID, uuid4


class Role(StrEnum):
    STUDENT = "STUDENT"
    INSTRUCTOR = "INSTRUCTOR"
    ADMIN = "ADMIN"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def is_at_least(self, minimum: Role) -> bool:
        return self.rank >= minimum.rank


_ROLE_RANK = {Role.STUDENT: 0, Role.INSTRUCTOR: 1, Role.ADMIN: 2}


def now_ts() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    email: str
    name: str = ""
    role: Role = Role.STUDENT
    created_at: int = 0

    @staticmethod
    def new(*, email: str, name: str = "", role: Role = Role.STUDENT) -> User:
        return User(
            id=uuid4(),
            email=email.strip().lower(),
            name=name.strip(),
            role=role,
            created_at=now_ts(),
        )
