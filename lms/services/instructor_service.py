"""Instructor dashboard: the caller's own courses with analytics, and totals.

Completion rate is measured over eligible lessons across every enrolled
learner: completed lesson marks divided by enrollments times eligible
lessons.  Revenue is price times enrollments; free courses earn nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from lms.core.errors import ForbiddenError
from lms.models.course import Course
from lms.models.principal import Principal
from lms.models.user import Role
from lms.repos.gateway import Gateway
from lms.services.completion import summarize
from lms.services.guards import require_auth

logger = logging.getLogger(__name__)


def _percent(part: int, whole: int) -> float:
    return round(part * 100 / whole, 1) if whole else 0.0


@dataclass(frozen=True, slots=True)
class CourseAnalytics:
    course: Course
    enrollment_count: int
    chapter_count: int
    review_count: int
    rating_sum: int
    completed_marks: int
    possible_marks: int

    @property
    def average_rating(self) -> float:
        if not self.review_count:
            return 0.0
        return round(self.rating_sum / self.review_count, 1)

    @property
    def completion_rate(self) -> float:
        return _percent(self.completed_marks, self.possible_marks)

    @property
    def revenue(self) -> Decimal:
        return (self.course.price or Decimal(0)) * self.enrollment_count


@dataclass(frozen=True, slots=True)
class InstructorStats:
    total_courses: int
    total_students: int
    total_revenue: Decimal
    average_rating: float
    completion_rate: float


class InstructorService:
    def __init__(self, gateway: Gateway) -> None:
        self._gw = gateway

    @staticmethod
    def _require_instructor(principal: Principal | None) -> Principal:
        principal = require_auth(principal)
        if not principal.role.is_at_least(Role.INSTRUCTOR):
            logger.warning("Instructor dashboard denied user=%s", principal.user_id)
            raise ForbiddenError("Instructor access required")
        return principal

    async def _analytics(self, course: Course) -> CourseAnalytics:
        enrollments = await self._gw.enrollments.list_by_course(course.id)
        reviews = await self._gw.reviews.list_by_course(course.id)
        chapters = await self._gw.courses.list_chapters(course.id)

        completed = possible = 0
        for enrollment in enrollments:
            summary = await summarize(self._gw.progress, enrollment.user_id, course.id)
            completed += summary.completed
            possible += summary.total

        return CourseAnalytics(
            course=course,
            enrollment_count=len(enrollments),
            chapter_count=len(chapters),
            review_count=len(reviews),
            rating_sum=sum(r.rating for r in reviews),
            completed_marks=completed,
            possible_marks=possible,
        )

    async def list_courses(self, principal: Principal | None) -> list[CourseAnalytics]:
        """Courses the caller owns, newest first, drafts included."""
        principal = self._require_instructor(principal)
        courses = await self._gw.courses.list_courses(owner_id=principal.user_id)
        return [await self._analytics(course) for course in courses]

    async def stats(self, principal: Principal | None) -> InstructorStats:
        courses = await self.list_courses(principal)
        reviews = sum(c.review_count for c in courses)
        return InstructorStats(
            total_courses=len(courses),
            total_students=sum(c.enrollment_count for c in courses),
            total_revenue=sum((c.revenue for c in courses), Decimal(0)),
            average_rating=(
                round(sum(c.rating_sum for c in courses) / reviews, 1)
                if reviews
                else 0.0
            ),
            completion_rate=_percent(
                sum(c.completed_marks for c in courses),
                sum(c.possible_marks for c in courses),
            ),
        )
