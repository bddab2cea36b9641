"""Course catalog and authoring.

Authoring operations (create, update, delete, status changes, chapters,
lessons) require edit rights on the course; the catalog and course detail
are readable by anyone the access policy lets through.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any
from uuid import UUID

from lms.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailedError,
)
from lms.models.course import Chapter, Course, CourseStatus, Lesson
from lms.models.principal import Principal
from lms.repos.errors import DuplicateRecordError
from lms.repos.gateway import Gateway
from lms.services import access_policy
from lms.services.cache import CacheService, progress_key
from lms.services.guards import require_auth

logger = logging.getLogger(__name__)

COURSE_LEVELS = frozenset({"Beginner", "Intermediate", "Advanced"})
PRICE_FILTERS = frozenset({"free", "paid"})


@dataclass(frozen=True, slots=True)
class LessonView:
    lesson: Lesson
    locked: bool


@dataclass(frozen=True, slots=True)
class ChapterView:
    chapter: Chapter
    lessons: list[LessonView]


@dataclass(frozen=True, slots=True)
class CourseDetail:
    course: Course
    chapters: list[ChapterView]
    is_enrolled: bool
    enrollment_count: int
    review_count: int
    avg_rating: float


def slugify(title: str) -> str:
    slug = title.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_]+", "-", slug)
    return slug.strip("-") or "course"


def _clean_title(title: str | None) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationFailedError("title must be non-empty")
    return title


def _check_price(price: Decimal | None) -> None:
    if price is not None and price < 0:
        raise ValidationFailedError("price must be >= 0")


def _check_level(level: str | None) -> None:
    if level is not None and level not in COURSE_LEVELS:
        raise ValidationFailedError(
            f"level must be one of {', '.join(sorted(COURSE_LEVELS))}"
        )


def _check_position(position: int) -> None:
    if position < 0:
        raise ValidationFailedError("position must be >= 0")


class CourseService:
    def __init__(self, gateway: Gateway, cache: CacheService) -> None:
        self._gw = gateway
        self._cache = cache

    # ------------------------------------------------------------------
    # Lookups shared by the authoring operations
    # ------------------------------------------------------------------

    async def _get_course(self, course_id: UUID) -> Course:
        course = await self._gw.courses.get_course(course_id)
        if course is None:
            raise NotFoundError("Course not found")
        return course

    async def _editable_course(
        self, principal: Principal | None, course_id: UUID
    ) -> Course:
        principal = require_auth(principal)
        course = await self._get_course(course_id)
        if not access_policy.can_edit_course(principal, course):
            logger.warning(
                "Edit denied user=%s course=%s", principal.user_id, course_id
            )
            raise ForbiddenError("You cannot edit this course")
        return course

    async def _editable_chapter(
        self, principal: Principal | None, chapter_id: UUID
    ) -> tuple[Course, Chapter]:
        chapter = await self._gw.courses.get_chapter(chapter_id)
        if chapter is None:
            raise NotFoundError("Chapter not found")
        course = await self._editable_course(principal, chapter.course_id)
        return course, chapter

    async def _unique_slug(self, base: str) -> str:
        slug = base
        counter = 1
        while await self._gw.courses.get_course_by_slug(slug) is not None:
            counter += 1
            slug = f"{base}-{counter}"
        return slug

    async def _invalidate_progress(self, course_id: UUID) -> None:
        # Curriculum changes move every learner's eligible lesson set.
        await self._cache.delete_pattern(progress_key(course_id, "*"))

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------

    async def create_course(
        self,
        principal: Principal | None,
        *,
        title: str,
        description: str = "",
        price: Decimal | None = None,
        level: str | None = None,
        category: str | None = None,
        slug: str | None = None,
    ) -> Course:
        principal = require_auth(principal)
        if not access_policy.can_create_course(principal):
            logger.warning("Course creation denied user=%s", principal.user_id)
            raise ForbiddenError("Only instructors can create courses")

        title = _clean_title(title)
        _check_price(price)
        _check_level(level)

        base = slugify(slug) if slug else slugify(title)
        course = Course.new(
            owner_id=principal.user_id,
            title=title,
            slug=await self._unique_slug(base),
            description=description,
            price=price,
            level=level,
            category=category,
        )
        try:
            await self._gw.courses.add_course(course)
        except DuplicateRecordError:
            raise ConflictError("A course with this slug already exists") from None
        logger.info(
            "Course created id=%s owner=%s slug=%s",
            course.id,
            principal.user_id,
            course.slug,
        )
        return course

    async def update_course(
        self, principal: Principal | None, course_id: UUID, changes: dict[str, Any]
    ) -> Course:
        """Apply a partial update of title, description, price, level, category."""
        course = await self._editable_course(principal, course_id)
        allowed = {"title", "description", "price", "level", "category"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationFailedError(
                f"cannot update field(s): {', '.join(sorted(unknown))}"
            )
        if "title" in changes:
            changes["title"] = _clean_title(changes["title"])
        if "description" in changes:
            changes["description"] = changes["description"] or ""
        if "price" in changes:
            _check_price(changes["price"])
        if "level" in changes:
            _check_level(changes["level"])

        updated = await self._gw.courses.update_course(replace(course, **changes))
        if updated is None:
            raise NotFoundError("Course not found")
        logger.info("Course updated id=%s fields=%s", course_id, sorted(changes))
        return updated

    async def _set_status(self, course: Course, status: CourseStatus) -> Course:
        updated = await self._gw.courses.update_course(replace(course, status=status))
        if updated is None:
            raise NotFoundError("Course not found")
        logger.info(
            "Course status changed id=%s %s -> %s", course.id, course.status, status
        )
        return updated

    async def publish_course(
        self, principal: Principal | None, course_id: UUID
    ) -> Course:
        course = await self._editable_course(principal, course_id)
        chapters = await self._gw.courses.list_chapters(course_id)
        if not any(ch.is_published for ch in chapters):
            raise InvalidStateError("Course must have at least one published chapter")
        return await self._set_status(course, CourseStatus.PUBLISHED)

    async def unpublish_course(
        self, principal: Principal | None, course_id: UUID
    ) -> Course:
        course = await self._editable_course(principal, course_id)
        return await self._set_status(course, CourseStatus.DRAFT)

    async def archive_course(
        self, principal: Principal | None, course_id: UUID
    ) -> Course:
        course = await self._editable_course(principal, course_id)
        return await self._set_status(course, CourseStatus.ARCHIVED)

    async def delete_course(self, principal: Principal | None, course_id: UUID) -> None:
        """Remove a course with its chapters, lessons and their progress.

        Once learners have enrolled, reviewed or earned a certificate the
        course can only be archived: certificates must stay verifiable.
        """
        await self._editable_course(principal, course_id)
        if await self._gw.enrollments.count_by_course(course_id):
            raise ConflictError("Course has enrollments; archive it instead")
        if await self._gw.certificates.count_by_course(course_id):
            raise ConflictError("Course has certificates; archive it instead")
        if await self._gw.reviews.list_by_course(course_id):
            raise ConflictError("Course has reviews; archive it instead")

        lesson_ids = []
        for chapter in await self._gw.courses.list_chapters(course_id):
            lessons = await self._gw.courses.list_lessons(chapter.id)
            lesson_ids += [ls.id for ls in lessons]
        await self._gw.progress.delete_for_lessons(lesson_ids)
        if not await self._gw.courses.delete_course(course_id):
            raise NotFoundError("Course not found")
        await self._invalidate_progress(course_id)
        logger.info("Course deleted id=%s lessons=%d", course_id, len(lesson_ids))

    # ------------------------------------------------------------------
    # Chapters and lessons
    # ------------------------------------------------------------------

    async def add_chapter(
        self,
        principal: Principal | None,
        course_id: UUID,
        *,
        title: str,
        position: int | None = None,
        is_published: bool = False,
        is_free: bool = False,
    ) -> Chapter:
        await self._editable_course(principal, course_id)
        if position is None:
            existing = await self._gw.courses.list_chapters(course_id)
            position = max((ch.position for ch in existing), default=-1) + 1
        _check_position(position)

        chapter = Chapter.new(
            course_id=course_id,
            title=_clean_title(title),
            position=position,
            is_published=is_published,
            is_free=is_free,
        )
        try:
            await self._gw.courses.add_chapter(chapter)
        except DuplicateRecordError:
            raise ConflictError(f"Chapter position {position} is taken") from None
        await self._invalidate_progress(course_id)
        logger.info("Chapter added id=%s course=%s", chapter.id, course_id)
        return chapter

    async def update_chapter(
        self,
        principal: Principal | None,
        course_id: UUID,
        chapter_id: UUID,
        changes: dict[str, Any],
    ) -> Chapter:
        _, chapter = await self._editable_chapter(principal, chapter_id)
        if chapter.course_id != course_id:
            raise NotFoundError("Chapter not found")
        if "title" in changes:
            changes["title"] = _clean_title(changes["title"])
        if "position" in changes:
            _check_position(changes["position"])

        try:
            updated = await self._gw.courses.update_chapter(replace(chapter, **changes))
        except DuplicateRecordError:
            raise ConflictError("Chapter position is taken") from None
        if updated is None:
            raise NotFoundError("Chapter not found")
        await self._invalidate_progress(course_id)
        return updated

    async def delete_chapter(
        self, principal: Principal | None, course_id: UUID, chapter_id: UUID
    ) -> None:
        """Remove a chapter, its lessons and learners' progress on them.

        Certificates already issued for the course are kept.
        """
        _, chapter = await self._editable_chapter(principal, chapter_id)
        if chapter.course_id != course_id:
            raise NotFoundError("Chapter not found")

        lessons = await self._gw.courses.list_lessons(chapter_id)
        await self._gw.progress.delete_for_lessons([ls.id for ls in lessons])
        if not await self._gw.courses.delete_chapter(chapter_id):
            raise NotFoundError("Chapter not found")
        await self._invalidate_progress(course_id)
        logger.info(
            "Chapter deleted id=%s course=%s lessons=%d",
            chapter_id,
            course_id,
            len(lessons),
        )

    async def add_lesson(
        self,
        principal: Principal | None,
        chapter_id: UUID,
        *,
        title: str,
        position: int | None = None,
        is_published: bool = False,
        is_free: bool = False,
        duration_minutes: int | None = None,
        video_url: str | None = None,
    ) -> Lesson:
        course, _ = await self._editable_chapter(principal, chapter_id)
        if position is None:
            existing = await self._gw.courses.list_lessons(chapter_id)
            position = max((ls.position for ls in existing), default=-1) + 1
        _check_position(position)
        if duration_minutes is not None and duration_minutes < 0:
            raise ValidationFailedError("duration_minutes must be >= 0")

        lesson = Lesson.new(
            chapter_id=chapter_id,
            title=_clean_title(title),
            position=position,
            is_published=is_published,
            is_free=is_free,
            duration_minutes=duration_minutes,
            video_url=video_url,
        )
        try:
            await self._gw.courses.add_lesson(lesson)
        except DuplicateRecordError:
            raise ConflictError(f"Lesson position {position} is taken") from None
        await self._invalidate_progress(course.id)
        logger.info("Lesson added id=%s chapter=%s", lesson.id, chapter_id)
        return lesson

    async def update_lesson(
        self,
        principal: Principal | None,
        chapter_id: UUID,
        lesson_id: UUID,
        changes: dict[str, Any],
    ) -> Lesson:
        course, _ = await self._editable_chapter(principal, chapter_id)
        lesson = await self._gw.courses.get_lesson(lesson_id)
        if lesson is None or lesson.chapter_id != chapter_id:
            raise NotFoundError("Lesson not found")
        if "title" in changes:
            changes["title"] = _clean_title(changes["title"])
        if "position" in changes:
            _check_position(changes["position"])

        try:
            updated = await self._gw.courses.update_lesson(replace(lesson, **changes))
        except DuplicateRecordError:
            raise ConflictError("Lesson position is taken") from None
        if updated is None:
            raise NotFoundError("Lesson not found")
        await self._invalidate_progress(course.id)
        return updated

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    async def list_catalog(
        self,
        *,
        price_filter: str | None = None,
        search: str | None = None,
        category: str | None = None,
        level: str | None = None,
    ) -> list[Course]:
        """Published courses, newest first, with simple filters."""
        if price_filter is not None and price_filter not in PRICE_FILTERS:
            raise ValidationFailedError("price filter must be 'free' or 'paid'")

        courses = await self._gw.courses.list_courses(CourseStatus.PUBLISHED)
        if price_filter == "free":
            courses = [c for c in courses if c.is_free]
        elif price_filter == "paid":
            courses = [c for c in courses if not c.is_free]
        if category:
            courses = [c for c in courses if c.category == category]
        if level:
            courses = [c for c in courses if c.level == level]
        if search:
            needle = search.strip().lower()
            courses = [
                c
                for c in courses
                if needle in c.title.lower() or needle in c.description.lower()
            ]
        return courses

    async def get_course_detail(
        self, principal: Principal | None, course_id: UUID
    ) -> CourseDetail:
        course = await self._get_course(course_id)
        if not access_policy.can_access_course(principal, course):
            if principal is None:
                raise UnauthorizedError("Authentication required")
            raise ForbiddenError("Course is not available")

        is_enrolled = (
            principal is not None
            and await self._gw.enrollments.get(principal.user_id, course_id)
            is not None
        )
        # Owners and admins see drafts of chapters and lessons too.
        show_all = access_policy.can_edit_course(principal, course) or (
            principal is not None and principal.owns(course.owner_id)
        )

        chapters: list[ChapterView] = []
        for chapter in await self._gw.courses.list_chapters(course_id):
            if not (show_all or chapter.is_published):
                continue
            lessons = [
                LessonView(
                    lesson=lesson,
                    locked=not access_policy.can_view_lesson(
                        principal, course, chapter, lesson, is_enrolled
                    ),
                )
                for lesson in await self._gw.courses.list_lessons(chapter.id)
                if show_all or lesson.is_published
            ]
            chapters.append(ChapterView(chapter=chapter, lessons=lessons))

        reviews = await self._gw.reviews.list_by_course(course_id)
        avg = sum(r.rating for r in reviews) / len(reviews) if reviews else 0.0
        return CourseDetail(
            course=course,
            chapters=chapters,
            is_enrolled=is_enrolled,
            enrollment_count=await self._gw.enrollments.count_by_course(course_id),
            review_count=len(reviews),
            avg_rating=round(avg, 1),
        )
