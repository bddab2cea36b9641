from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.learning import Review
from lms.repos.errors import DuplicateRecordError


class ReviewRepo(Protocol):
    async def add(self, review: Review) -> None: ...
    async def list_by_course(self, course_id: UUID) -> list[Review]: ...


class InMemoryReviewRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], Review] = {}

    async def add(self, review: Review) -> None:
        key = (review.user_id, review.course_id)
        if key in self._store:
            raise DuplicateRecordError("review already exists")
        self._store[key] = review

    async def list_by_course(self, course_id: UUID) -> list[Review]:
        found = [r for r in self._store.values() if r.course_id == course_id]
        return sorted(found, key=lambda r: r.created_at, reverse=True)
