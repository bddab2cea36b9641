from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum
from uuid import UUID, uuid4

from lms.models.user import now_ts


class CourseStatus(StrEnum):
    DRAFT = "Draft"
    PUBLISHED = "Published"
    ARCHIVED = "Archived"


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    owner_id: UUID
    title: str
    slug: str
    description: str = ""
    status: CourseStatus = CourseStatus.DRAFT
    price: Decimal | None = None  # None or 0 means free
    level: str | None = None  # Beginner|Intermediate|Advanced
    category: str | None = None
    created_at: int = 0

    @property
    def is_free(self) -> bool:
        return not self.price

    @property
    def is_published(self) -> bool:
        return self.status is CourseStatus.PUBLISHED

    @staticmethod
    def new(
        *,
        owner_id: UUID,
        title: str,
        slug: str,
        description: str = "",
        price: Decimal | None = None,
        level: str | None = None,
        category: str | None = None,
        status: CourseStatus = CourseStatus.DRAFT,
    ) -> Course:
        return Course(
            id=uuid4(),
            owner_id=owner_id,
            title=title,
            slug=slug,
            description=description,
            status=status,
            price=price,
            level=level,
            category=category,
            created_at=now_ts(),
        )


@dataclass(frozen=True, slots=True)
class Chapter:
    id: UUID
    course_id: UUID
    title: str
    position: int
    is_published: bool = False
    is_free: bool = False  # informational; lesson.is_free gates viewing

    @staticmethod
    def new(
        *,
        course_id: UUID,
        title: str,
        position: int,
        is_published: bool = False,
        is_free: bool = False,
    ) -> Chapter:
        return Chapter(
            id=uuid4(),
            course_id=course_id,
            title=title,
            position=position,
            is_published=is_published,
            is_free=is_free,
        )


@dataclass(frozen=True, slots=True)
class Lesson:
    id: UUID
    chapter_id: UUID
    title: str
    position: int
    is_published: bool = False
    is_free: bool = False
    duration_minutes: int | None = None
    video_url: str | None = None

    @staticmethod
    def new(
        *,
        chapter_id: UUID,
        title: str,
        position: int,
        is_published: bool = False,
        is_free: bool = False,
        duration_minutes: int | None = None,
        video_url: str | None = None,
    ) -> Lesson:
        return Lesson(
            id=uuid4(),
            chapter_id=chapter_id,
            title=title,
            position=position,
            is_published=is_published,
            is_free=is_free,
            duration_minutes=duration_minutes,
            video_url=video_url,
        )
