"""PostgreSQL implementation of CertificateRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.tables import CertificateRow
from lms.models.learning import Certificate
from lms.repos.errors import DuplicateRecordError


class PgCertificateRepo:
    """Satisfies the CertificateRepo Protocol using PostgreSQL.

    Insert-only; no method updates or deletes a certificate row.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: UUID, course_id: UUID) -> Certificate | None:
        stmt = select(CertificateRow).where(
            CertificateRow.user_id == user_id,
            CertificateRow.course_id == course_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_certificate(row)

    async def get_by_id(self, certificate_id: UUID) -> Certificate | None:
        row = await self._session.get(CertificateRow, certificate_id)
        if row is None:
            return None
        return _row_to_certificate(row)

    async def add(self, certificate: Certificate) -> None:
        stmt = (
            insert(CertificateRow)
            .values(
                id=certificate.id,
                user_id=certificate.user_id,
                course_id=certificate.course_id,
                issued_at=certificate.issued_at,
            )
            .on_conflict_do_nothing(index_elements=["user_id", "course_id"])
            .returning(CertificateRow.id)
        )
        inserted = (await self._session.execute(stmt)).scalar_one_or_none()
        if inserted is None:
            raise DuplicateRecordError("certificate already issued")

    async def list_by_user(self, user_id: UUID) -> list[Certificate]:
        stmt = (
            select(CertificateRow)
            .where(CertificateRow.user_id == user_id)
            .order_by(CertificateRow.issued_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_certificate(r) for r in rows]

    async def count_by_course(self, course_id: UUID) -> int:
        stmt = select(func.count()).where(CertificateRow.course_id == course_id)
        return (await self._session.execute(stmt)).scalar_one()


def _row_to_certificate(row: CertificateRow) -> Certificate:
    return Certificate(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        issued_at=row.issued_at,
    )
