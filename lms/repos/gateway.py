"""Persistence gateway: every repository the services need, plus a commit
boundary.

Services take a Gateway instead of individual repos so one request works
against one unit of work.  ``checkpoint()`` makes everything written so
far durable; the progress recorder calls it between the upsert and the
certificate evaluation.
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from lms.repos.certificate_repo import CertificateRepo, InMemoryCertificateRepo
from lms.repos.course_repo import CourseRepo, InMemoryCourseRepo
from lms.repos.enrollment_repo import EnrollmentRepo, InMemoryEnrollmentRepo
from lms.repos.pg_certificate_repo import PgCertificateRepo
from lms.repos.pg_course_repo import PgCourseRepo
from lms.repos.pg_enrollment_repo import PgEnrollmentRepo
from lms.repos.pg_progress_repo import PgLessonProgressRepo
from lms.repos.pg_review_repo import PgReviewRepo
from lms.repos.pg_user_repo import PgUserRepo
from lms.repos.progress_repo import InMemoryLessonProgressRepo, LessonProgressRepo
from lms.repos.review_repo import InMemoryReviewRepo, ReviewRepo
from lms.repos.user_repo import InMemoryUserRepo, UserRepo


class Gateway(Protocol):
    users: UserRepo
    courses: CourseRepo
    enrollments: EnrollmentRepo
    progress: LessonProgressRepo
    certificates: CertificateRepo
    reviews: ReviewRepo

    async def checkpoint(self) -> None: ...


class InMemoryGateway:
    """Process-local stores for dev and tests.  Writes are immediately visible,
    so checkpoint() has nothing to do."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.users = InMemoryUserRepo()
        self.courses = InMemoryCourseRepo()
        self.enrollments = InMemoryEnrollmentRepo()
        self.progress = InMemoryLessonProgressRepo(self.courses)
        self.certificates = InMemoryCertificateRepo()
        self.reviews = InMemoryReviewRepo()

    async def checkpoint(self) -> None:
        return None


class PgGateway:
    """All repos share one request-scoped AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.users = PgUserRepo(session)
        self.courses = PgCourseRepo(session)
        self.enrollments = PgEnrollmentRepo(session)
        self.progress = PgLessonProgressRepo(session)
        self.certificates = PgCertificateRepo(session)
        self.reviews = PgReviewRepo(session)

    async def checkpoint(self) -> None:
        await self._session.commit()
