"""PostgreSQL implementation of ReviewRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import ReviewRow
from lms.models.learning import Review
from lms.repos.errors import DuplicateRecordError


class PgReviewRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, review: Review) -> None:
        stmt = (
            insert(ReviewRow)
            .values(
                id=review.id,
                user_id=review.user_id,
                course_id=review.course_id,
                rating=review.rating,
                comment=review.comment,
                created_at=review.created_at,
            )
            .on_conflict_do_nothing(index_elements=["user_id", "course_id"])
            .returning(ReviewRow.id)
        )
        inserted = (await self._session.execute(stmt)).scalar_one_or_none()
        if inserted is None:
            raise DuplicateRecordError("review already exists")

    async def list_by_course(self, course_id: UUID) -> list[Review]:
        stmt = (
            select(ReviewRow)
            .where(ReviewRow.course_id == course_id)
            .order_by(ReviewRow.created_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            Review(
                id=r.id,
                user_id=r.user_id,
                course_id=r.course_id,
                rating=r.rating,
                comment=r.comment,
                created_at=r.created_at,
            )
            for r in rows
        ]
