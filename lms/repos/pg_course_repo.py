"""PostgreSQL implementation of CourseRepo.

Slug and position uniqueness come from the table constraints; each insert
or update runs in a SAVEPOINT so a violation surfaces as
DuplicateRecordError without poisoning the request's transaction.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import ChapterRow, CourseRow, LessonRow
from lms.models.course import Chapter, Course, CourseStatus, Lesson
from lms.repos.errors import DuplicateRecordError


class PgCourseRepo:
    """Satisfies the CourseRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # --- courses ---

    async def get_course(self, course_id: UUID) -> Course | None:
        row = await self._session.get(CourseRow, course_id)
        if row is None:
            return None
        return _row_to_course(row)

    async def get_course_by_slug(self, slug: str) -> Course | None:
        stmt = select(CourseRow).where(CourseRow.slug == slug)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_course(row)

    async def add_course(self, course: Course) -> None:
        row = CourseRow(
            id=course.id,
            owner_id=course.owner_id,
            title=course.title,
            slug=course.slug,
            description=course.description,
            status=course.status.value,
            price=course.price,
            level=course.level,
            category=course.category,
            created_at=course.created_at,
        )
        await self._insert(row, "slug already exists")

    async def update_course(self, course: Course) -> Course | None:
        stmt = (
            update(CourseRow)
            .where(CourseRow.id == course.id)
            .values(
                title=course.title,
                slug=course.slug,
                description=course.description,
                status=course.status.value,
                price=course.price,
                level=course.level,
                category=course.category,
            )
        )
        if not await self._update(stmt, "slug already exists"):
            return None
        return course

    async def list_courses(
        self, status: CourseStatus | None = None, owner_id: UUID | None = None
    ) -> list[Course]:
        stmt = select(CourseRow).order_by(CourseRow.created_at.desc())
        if status is not None:
            stmt = stmt.where(CourseRow.status == status.value)
        if owner_id is not None:
            stmt = stmt.where(CourseRow.owner_id == owner_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_course(r) for r in rows]

    async def delete_course(self, course_id: UUID) -> bool:
        # Chapters and lessons follow through ON DELETE CASCADE.
        stmt = delete(CourseRow).where(CourseRow.id == course_id)
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    # --- chapters ---

    async def get_chapter(self, chapter_id: UUID) -> Chapter | None:
        row = await self._session.get(ChapterRow, chapter_id)
        if row is None:
            return None
        return _row_to_chapter(row)

    async def list_chapters(self, course_id: UUID) -> list[Chapter]:
        stmt = (
            select(ChapterRow)
            .where(ChapterRow.course_id == course_id)
            .order_by(ChapterRow.position)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_chapter(r) for r in rows]

    async def add_chapter(self, chapter: Chapter) -> None:
        row = ChapterRow(
            id=chapter.id,
            course_id=chapter.course_id,
            title=chapter.title,
            position=chapter.position,
            is_published=chapter.is_published,
            is_free=chapter.is_free,
        )
        await self._insert(row, "chapter position already taken")

    async def update_chapter(self, chapter: Chapter) -> Chapter | None:
        stmt = (
            update(ChapterRow)
            .where(ChapterRow.id == chapter.id)
            .values(
                title=chapter.title,
                position=chapter.position,
                is_published=chapter.is_published,
                is_free=chapter.is_free,
            )
        )
        if not await self._update(stmt, "chapter position already taken"):
            return None
        return chapter

    async def delete_chapter(self, chapter_id: UUID) -> bool:
        stmt = delete(ChapterRow).where(ChapterRow.id == chapter_id)
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    # --- lessons ---

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        row = await self._session.get(LessonRow, lesson_id)
        if row is None:
            return None
        return _row_to_lesson(row)

    async def list_lessons(self, chapter_id: UUID) -> list[Lesson]:
        stmt = (
            select(LessonRow)
            .where(LessonRow.chapter_id == chapter_id)
            .order_by(LessonRow.position)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_lesson(r) for r in rows]

    async def add_lesson(self, lesson: Lesson) -> None:
        row = LessonRow(
            id=lesson.id,
            chapter_id=lesson.chapter_id,
            title=lesson.title,
            position=lesson.position,
            is_published=lesson.is_published,
            is_free=lesson.is_free,
            duration_minutes=lesson.duration_minutes,
            video_url=lesson.video_url,
        )
        await self._insert(row, "lesson position already taken")

    async def update_lesson(self, lesson: Lesson) -> Lesson | None:
        stmt = (
            update(LessonRow)
            .where(LessonRow.id == lesson.id)
            .values(
                title=lesson.title,
                position=lesson.position,
                is_published=lesson.is_published,
                is_free=lesson.is_free,
                duration_minutes=lesson.duration_minutes,
                video_url=lesson.video_url,
            )
        )
        if not await self._update(stmt, "lesson position already taken"):
            return None
        return lesson

    # --- helpers ---

    async def _insert(self, row: object, conflict_message: str) -> None:
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError:
            raise DuplicateRecordError(conflict_message) from None

    async def _update(self, stmt, conflict_message: str) -> bool:
        # ORM-enabled UPDATE also refreshes any row already in the identity map.
        try:
            async with self._session.begin_nested():
                result = await self._session.execute(stmt)
        except IntegrityError:
            raise DuplicateRecordError(conflict_message) from None
        return result.rowcount > 0


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        owner_id=row.owner_id,
        title=row.title,
        slug=row.slug,
        description=row.description or "",
        status=CourseStatus(row.status),
        price=row.price,
        level=row.level,
        category=row.category,
        created_at=row.created_at,
    )


def _row_to_chapter(row: ChapterRow) -> Chapter:
    return Chapter(
        id=row.id,
        course_id=row.course_id,
        title=row.title,
        position=row.position,
        is_published=row.is_published,
        is_free=row.is_free,
    )


def _row_to_lesson(row: LessonRow) -> Lesson:
    return Lesson(
        id=row.id,
        chapter_id=row.chapter_id,
        title=row.title,
        position=row.position,
        is_published=row.is_published,
        is_free=row.is_free,
        duration_minutes=row.duration_minutes,
        video_url=row.video_url,
    )
