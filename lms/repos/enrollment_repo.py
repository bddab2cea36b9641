from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.learning import Enrollment
from lms.repos.errors import DuplicateRecordError


class EnrollmentRepo(Protocol):
    async def get(self, user_id: UUID, course_id: UUID) -> Enrollment | None: ...
    async def add(self, enrollment: Enrollment) -> None: ...
    async def remove(self, user_id: UUID, course_id: UUID) -> bool: ...
    async def list_by_user(self, user_id: UUID) -> list[Enrollment]: ...
    async def list_by_course(self, course_id: UUID) -> list[Enrollment]: ...
    async def count_by_course(self, course_id: UUID) -> int: ...


class InMemoryEnrollmentRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], Enrollment] = {}

    async def get(self, user_id: UUID, course_id: UUID) -> Enrollment | None:
        return self._store.get((user_id, course_id))

    async def add(self, enrollment: Enrollment) -> None:
        # No await between the check and the insert: atomic on the event loop.
        key = (enrollment.user_id, enrollment.course_id)
        if key in self._store:
            raise DuplicateRecordError("enrollment already exists")
        self._store[key] = enrollment

    async def remove(self, user_id: UUID, course_id: UUID) -> bool:
        return self._store.pop((user_id, course_id), None) is not None

    async def list_by_user(self, user_id: UUID) -> list[Enrollment]:
        found = [e for e in self._store.values() if e.user_id == user_id]
        return sorted(found, key=lambda e: e.enrolled_at, reverse=True)

    async def list_by_course(self, course_id: UUID) -> list[Enrollment]:
        found = [e for e in self._store.values() if e.course_id == course_id]
        return sorted(found, key=lambda e: e.enrolled_at)

    async def count_by_course(self, course_id: UUID) -> int:
        return sum(1 for e in self._store.values() if e.course_id == course_id)
