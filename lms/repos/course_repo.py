"""Course tree repository: courses, their chapters, and chapter lessons."""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.course import Chapter, Course, CourseStatus, Lesson
from lms.repos.errors import DuplicateRecordError


class CourseRepo(Protocol):
    async def get_course(self, course_id: UUID) -> Course | None: ...
    async def get_course_by_slug(self, slug: str) -> Course | None: ...
    async def add_course(self, course: Course) -> None: ...
    async def update_course(self, course: Course) -> Course | None: ...
    async def list_courses(
        self, status: CourseStatus | None = None, owner_id: UUID | None = None
    ) -> list[Course]: ...
    async def delete_course(self, course_id: UUID) -> bool: ...

    async def get_chapter(self, chapter_id: UUID) -> Chapter | None: ...
    async def list_chapters(self, course_id: UUID) -> list[Chapter]: ...
    async def add_chapter(self, chapter: Chapter) -> None: ...
    async def update_chapter(self, chapter: Chapter) -> Chapter | None: ...
    async def delete_chapter(self, chapter_id: UUID) -> bool: ...

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None: ...
    async def list_lessons(self, chapter_id: UUID) -> list[Lesson]: ...
    async def add_lesson(self, lesson: Lesson) -> None: ...
    async def update_lesson(self, lesson: Lesson) -> Lesson | None: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._courses: dict[UUID, Course] = {}
        self._chapters: dict[UUID, Chapter] = {}
        self._lessons: dict[UUID, Lesson] = {}

    # --- courses ---

    async def get_course(self, course_id: UUID) -> Course | None:
        return self._courses.get(course_id)

    async def get_course_by_slug(self, slug: str) -> Course | None:
        return next((c for c in self._courses.values() if c.slug == slug), None)

    async def add_course(self, course: Course) -> None:
        if any(c.slug == course.slug for c in self._courses.values()):
            raise DuplicateRecordError("slug already exists")
        self._courses[course.id] = course

    async def update_course(self, course: Course) -> Course | None:
        if course.id not in self._courses:
            return None
        self._courses[course.id] = course
        return course

    async def list_courses(
        self, status: CourseStatus | None = None, owner_id: UUID | None = None
    ) -> list[Course]:
        courses = [
            c
            for c in self._courses.values()
            if (status is None or c.status is status)
            and (owner_id is None or c.owner_id == owner_id)
        ]
        return sorted(courses, key=lambda c: c.created_at, reverse=True)

    async def delete_course(self, course_id: UUID) -> bool:
        if self._courses.pop(course_id, None) is None:
            return False
        for chapter_id in [
            ch.id for ch in self._chapters.values() if ch.course_id == course_id
        ]:
            await self.delete_chapter(chapter_id)
        return True

    # --- chapters ---

    async def get_chapter(self, chapter_id: UUID) -> Chapter | None:
        return self._chapters.get(chapter_id)

    async def list_chapters(self, course_id: UUID) -> list[Chapter]:
        chapters = [ch for ch in self._chapters.values() if ch.course_id == course_id]
        return sorted(chapters, key=lambda ch: ch.position)

    async def add_chapter(self, chapter: Chapter) -> None:
        self._check_chapter_position(chapter)
        self._chapters[chapter.id] = chapter

    async def update_chapter(self, chapter: Chapter) -> Chapter | None:
        if chapter.id not in self._chapters:
            return None
        self._check_chapter_position(chapter)
        self._chapters[chapter.id] = chapter
        return chapter

    async def delete_chapter(self, chapter_id: UUID) -> bool:
        # Lessons go with their chapter, as ON DELETE CASCADE does in Postgres.
        if self._chapters.pop(chapter_id, None) is None:
            return False
        for lesson_id in [
            ls.id for ls in self._lessons.values() if ls.chapter_id == chapter_id
        ]:
            del self._lessons[lesson_id]
        return True

    def _check_chapter_position(self, chapter: Chapter) -> None:
        for other in self._chapters.values():
            if (
                other.id != chapter.id
                and other.course_id == chapter.course_id
                and other.position == chapter.position
            ):
                raise DuplicateRecordError("chapter position already taken")

    # --- lessons ---

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        return self._lessons.get(lesson_id)

    async def list_lessons(self, chapter_id: UUID) -> list[Lesson]:
        lessons = [ls for ls in self._lessons.values() if ls.chapter_id == chapter_id]
        return sorted(lessons, key=lambda ls: ls.position)

    async def add_lesson(self, lesson: Lesson) -> None:
        self._check_lesson_position(lesson)
        self._lessons[lesson.id] = lesson

    async def update_lesson(self, lesson: Lesson) -> Lesson | None:
        if lesson.id not in self._lessons:
            return None
        self._check_lesson_position(lesson)
        self._lessons[lesson.id] = lesson
        return lesson

    def _check_lesson_position(self, lesson: Lesson) -> None:
        for other in self._lessons.values():
            if (
                other.id != lesson.id
                and other.chapter_id == lesson.chapter_id
                and other.position == lesson.position
            ):
                raise DuplicateRecordError("lesson position already taken")
