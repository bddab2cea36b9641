from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID, uuid4

from lms.models.learning import LessonCompletion, LessonProgress
from lms.models.user import now_ts
from lms.repos.course_repo import CourseRepo


class LessonProgressRepo(Protocol):
    async def get(self, user_id: UUID, lesson_id: UUID) -> LessonProgress | None: ...
    async def upsert(
        self, user_id: UUID, lesson_id: UUID, is_completed: bool
    ) -> LessonProgress: ...
    async def delete_for_lessons(self, lesson_ids: list[UUID]) -> int: ...
    async def eligible_lessons(
        self, user_id: UUID, course_id: UUID
    ) -> list[LessonCompletion]:
        """Published lessons in published chapters of the course, each with
        the user's completion flag (False when no progress row exists)."""
        ...


class InMemoryLessonProgressRepo:
    def __init__(self, courses: CourseRepo) -> None:
        self._courses = courses
        self._store: dict[tuple[UUID, UUID], LessonProgress] = {}

    async def get(self, user_id: UUID, lesson_id: UUID) -> LessonProgress | None:
        return self._store.get((user_id, lesson_id))

    async def upsert(
        self, user_id: UUID, lesson_id: UUID, is_completed: bool
    ) -> LessonProgress:
        key = (user_id, lesson_id)
        existing = self._store.get(key)
        if existing is None:
            record = LessonProgress(
                id=uuid4(),
                user_id=user_id,
                lesson_id=lesson_id,
                is_completed=is_completed,
                updated_at=now_ts(),
            )
        else:
            record = replace(existing, is_completed=is_completed, updated_at=now_ts())
        self._store[key] = record
        return record

    async def delete_for_lessons(self, lesson_ids: list[UUID]) -> int:
        doomed = set(lesson_ids)
        keys = [key for key in self._store if key[1] in doomed]
        for key in keys:
            del self._store[key]
        return len(keys)

    async def eligible_lessons(
        self, user_id: UUID, course_id: UUID
    ) -> list[LessonCompletion]:
        result: list[LessonCompletion] = []
        for chapter in await self._courses.list_chapters(course_id):
            if not chapter.is_published:
                continue
            for lesson in await self._courses.list_lessons(chapter.id):
                if not lesson.is_published:
                    continue
                progress = self._store.get((user_id, lesson.id))
                result.append(
                    LessonCompletion(
                        lesson_id=lesson.id,
                        chapter_id=chapter.id,
                        duration_minutes=lesson.duration_minutes,
                        is_completed=progress is not None and progress.is_completed,
                    )
                )
        return result
