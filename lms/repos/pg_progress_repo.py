"""PostgreSQL implementation of LessonProgressRepo."""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import and_, delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import ChapterRow, LessonProgressRow, LessonRow
from lms.models.learning import LessonCompletion, LessonProgress
from lms.models.user import now_ts


class PgLessonProgressRepo:
    """Satisfies the LessonProgressRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: UUID, lesson_id: UUID) -> LessonProgress | None:
        stmt = select(LessonProgressRow).where(
            LessonProgressRow.user_id == user_id,
            LessonProgressRow.lesson_id == lesson_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_progress(row)

    async def upsert(
        self, user_id: UUID, lesson_id: UUID, is_completed: bool
    ) -> LessonProgress:
        """One statement, so two concurrent writers never create two rows.

        Last writer wins on is_completed; the row id is stable.
        """
        now = now_ts()
        stmt = insert(LessonProgressRow).values(
            id=uuid4(),
            user_id=user_id,
            lesson_id=lesson_id,
            is_completed=is_completed,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "lesson_id"],
            set_={"is_completed": stmt.excluded.is_completed, "updated_at": now},
        ).returning(
            LessonProgressRow.id,
            LessonProgressRow.user_id,
            LessonProgressRow.lesson_id,
            LessonProgressRow.is_completed,
            LessonProgressRow.updated_at,
        )
        row = (await self._session.execute(stmt)).one()
        return LessonProgress(
            id=row.id,
            user_id=row.user_id,
            lesson_id=row.lesson_id,
            is_completed=row.is_completed,
            updated_at=row.updated_at,
        )

    async def delete_for_lessons(self, lesson_ids: list[UUID]) -> int:
        if not lesson_ids:
            return 0
        stmt = delete(LessonProgressRow).where(
            LessonProgressRow.lesson_id.in_(lesson_ids)
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    async def eligible_lessons(
        self, user_id: UUID, course_id: UUID
    ) -> list[LessonCompletion]:
        stmt = (
            select(
                LessonRow.id,
                LessonRow.chapter_id,
                LessonRow.duration_minutes,
                LessonProgressRow.is_completed,
            )
            .join(ChapterRow, ChapterRow.id == LessonRow.chapter_id)
            .outerjoin(
                LessonProgressRow,
                and_(
                    LessonProgressRow.lesson_id == LessonRow.id,
                    LessonProgressRow.user_id == user_id,
                ),
            )
            .where(
                ChapterRow.course_id == course_id,
                ChapterRow.is_published.is_(True),
                LessonRow.is_published.is_(True),
            )
            .order_by(ChapterRow.position, LessonRow.position)
        )
        rows = (await self._session.execute(stmt)).all()
        return [
            LessonCompletion(
                lesson_id=r.id,
                chapter_id=r.chapter_id,
                duration_minutes=r.duration_minutes,
                is_completed=bool(r.is_completed),
            )
            for r in rows
        ]


def _row_to_progress(row: LessonProgressRow) -> LessonProgress:
    return LessonProgress(
        id=row.id,
        user_id=row.user_id,
        lesson_id=row.lesson_id,
        is_completed=row.is_completed,
        updated_at=row.updated_at,
    )
