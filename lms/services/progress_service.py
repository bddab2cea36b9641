"""Progress recorder: the only writer of lesson progress.

set_lesson_progress() sequence:

    lesson exists                      else NotFound
    caller enrolled or course owner    else Forbidden
    upsert (user, lesson) progress
    checkpoint                         progress is durable from here on
    if completed: issue certificate    reads the just-written row
    invalidate the cached summary

If issuance fails after the checkpoint the error reaches the caller, the
progress write stands, and repeating the same call is safe.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from uuid import UUID

from lms.core.errors import ForbiddenError, NotFoundError
from lms.core.metrics import CACHE_OPERATIONS, LESSON_PROGRESS_UPDATES
from lms.models.course import Course
from lms.models.learning import LessonProgress
from lms.models.principal import Principal
from lms.repos.gateway import Gateway
from lms.services import access_policy
from lms.services.cache import CacheService, progress_key
from lms.services.certificate_service import CertificateService
from lms.services.completion import summarize

logger = logging.getLogger(__name__)

# Writers delete the summary after each progress write.  A read that
# misses, computes, and stores after a concurrent writer's delete leaves a
# stale summary behind; it lives at most this many seconds.  Progress rows
# and certificates themselves are never read from the cache.
PROGRESS_CACHE_TTL = 300


@dataclass(frozen=True, slots=True)
class CourseProgress:
    course_id: UUID
    completed: int
    total: int
    percent: int
    is_complete: bool
    certificate_id: UUID | None


@dataclass(frozen=True, slots=True)
class LearnerStats:
    total_enrollments: int
    completed_courses: int
    total_certificates: int
    learning_hours: int


class ProgressService:
    def __init__(self, gateway: Gateway, cache: CacheService) -> None:
        self._gw = gateway
        self._cache = cache
        self._certificates = CertificateService(gateway)

    async def _course_of_lesson(self, lesson_id: UUID) -> Course:
        lesson = await self._gw.courses.get_lesson(lesson_id)
        if lesson is None:
            raise NotFoundError("Lesson not found")
        chapter = await self._gw.courses.get_chapter(lesson.chapter_id)
        course = (
            await self._gw.courses.get_course(chapter.course_id)
            if chapter is not None
            else None
        )
        if course is None:
            raise NotFoundError("Lesson not found")
        return course

    async def set_lesson_progress(
        self, principal: Principal, lesson_id: UUID, is_completed: bool
    ) -> LessonProgress:
        course = await self._course_of_lesson(lesson_id)

        # A free lesson only opens viewing; recording needs enrollment.
        if not principal.owns(course.owner_id):
            enrolled = await self._gw.enrollments.get(principal.user_id, course.id)
            if enrolled is None:
                logger.warning(
                    "Progress rejected, not enrolled user=%s course=%s",
                    principal.user_id,
                    course.id,
                )
                raise ForbiddenError("Not enrolled in this course")

        record = await self._gw.progress.upsert(
            principal.user_id, lesson_id, is_completed
        )
        await self._gw.checkpoint()
        LESSON_PROGRESS_UPDATES.labels(completed=str(is_completed).lower()).inc()
        logger.info(
            "Lesson progress recorded user=%s lesson=%s completed=%s",
            principal.user_id,
            lesson_id,
            is_completed,
            extra={
                "user_id": str(principal.user_id),
                "course_id": str(course.id),
                "lesson_id": str(lesson_id),
            },
        )

        try:
            if is_completed:
                await self._certificates.issue_if_complete(
                    principal.user_id, course.id
                )
        finally:
            await self._cache.delete(progress_key(course.id, principal.user_id))

        return record

    async def get_course_progress(
        self, principal: Principal, course_id: UUID
    ) -> CourseProgress:
        """Read-through cached summary of one learner's progress in a course."""
        course = await self._gw.courses.get_course(course_id)
        if course is None:
            raise NotFoundError("Course not found")
        if not access_policy.can_access_course(principal, course):
            raise ForbiddenError("Course is not available")

        key = progress_key(course_id, principal.user_id)
        cached = await self._cache.get(key)
        if cached is not None:
            CACHE_OPERATIONS.labels(operation="hit").inc()
            return _progress_from_json(cached)
        CACHE_OPERATIONS.labels(operation="miss").inc()

        summary = await summarize(self._gw.progress, principal.user_id, course_id)
        certificate = await self._gw.certificates.get(principal.user_id, course_id)
        progress = CourseProgress(
            course_id=course_id,
            completed=summary.completed,
            total=summary.total,
            percent=summary.percent,
            is_complete=summary.is_complete,
            certificate_id=certificate.id if certificate is not None else None,
        )
        await self._cache.set(key, _progress_to_json(progress), PROGRESS_CACHE_TTL)
        return progress

    async def learner_stats(self, principal: Principal) -> LearnerStats:
        enrollments = await self._gw.enrollments.list_by_user(principal.user_id)
        certificates = await self._gw.certificates.list_by_user(principal.user_id)

        completed_courses = 0
        minutes = 0
        for enrollment in enrollments:
            summary = await summarize(
                self._gw.progress, principal.user_id, enrollment.course_id
            )
            if summary.is_complete:
                completed_courses += 1
            minutes += summary.minutes_completed

        return LearnerStats(
            total_enrollments=len(enrollments),
            completed_courses=completed_courses,
            total_certificates=len(certificates),
            learning_hours=round(minutes / 60),
        )


def _progress_to_json(p: CourseProgress) -> str:
    return json.dumps(
        {
            "course_id": str(p.course_id),
            "completed": p.completed,
            "total": p.total,
            "percent": p.percent,
            "is_complete": p.is_complete,
            "certificate_id": str(p.certificate_id) if p.certificate_id else None,
        }
    )


def _progress_from_json(raw: str) -> CourseProgress:
    data = json.loads(raw)
    cert = data["certificate_id"]
    return CourseProgress(
        course_id=UUID(data["course_id"]),
        completed=data["completed"],
        total=data["total"],
        percent=data["percent"],
        is_complete=data["is_complete"],
        certificate_id=UUID(cert) if cert else None,
    )
