"""Course catalog and course authoring endpoints."""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel

from lms.api.dependencies import CurrentUser, OptionalPrincipal, get_course_service
from lms.models.course import Chapter, Course, Lesson
from lms.services.course_service import CourseDetail, CourseService

router = APIRouter(prefix="/v1/courses", tags=["courses"])

CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]


class CourseOut(BaseModel):
    id: UUID
    owner_id: UUID
    title: str
    slug: str
    description: str
    status: str
    price: Decimal | None
    is_free: bool
    level: str | None
    category: str | None
    created_at: int

    @staticmethod
    def of(course: Course) -> CourseOut:
        return CourseOut(
            id=course.id,
            owner_id=course.owner_id,
            title=course.title,
            slug=course.slug,
            description=course.description,
            status=course.status.value,
            price=course.price,
            is_free=course.is_free,
            level=course.level,
            category=course.category,
            created_at=course.created_at,
        )


class ChapterOut(BaseModel):
    id: UUID
    course_id: UUID
    title: str
    position: int
    is_published: bool
    is_free: bool

    @staticmethod
    def of(chapter: Chapter) -> ChapterOut:
        return ChapterOut(
            id=chapter.id,
            course_id=chapter.course_id,
            title=chapter.title,
            position=chapter.position,
            is_published=chapter.is_published,
            is_free=chapter.is_free,
        )


class LessonOut(BaseModel):
    id: UUID
    chapter_id: UUID
    title: str
    position: int
    is_published: bool
    is_free: bool
    duration_minutes: int | None
    video_url: str | None = None

    @staticmethod
    def of(lesson: Lesson, *, locked: bool = False) -> LessonOut:
        return LessonOut(
            id=lesson.id,
            chapter_id=lesson.chapter_id,
            title=lesson.title,
            position=lesson.position,
            is_published=lesson.is_published,
            is_free=lesson.is_free,
            duration_minutes=lesson.duration_minutes,
            # Locked lessons show in the outline without their content.
            video_url=None if locked else lesson.video_url,
        )


class CurriculumLessonOut(LessonOut):
    locked: bool


class CurriculumChapterOut(ChapterOut):
    lessons: list[CurriculumLessonOut]


class CourseDetailOut(CourseOut):
    chapters: list[CurriculumChapterOut]
    is_enrolled: bool
    enrollment_count: int
    review_count: int
    avg_rating: float


class CourseCreateIn(BaseModel):
    title: str
    description: str = ""
    price: Decimal | None = None
    level: Literal["Beginner", "Intermediate", "Advanced"] | None = None
    category: str | None = None
    slug: str | None = None


class CourseUpdateIn(BaseModel):
    title: str | None = None
    description: str | None = None
    price: Decimal | None = None
    level: Literal["Beginner", "Intermediate", "Advanced"] | None = None
    category: str | None = None


def _detail_out(detail: CourseDetail) -> CourseDetailOut:
    base = CourseOut.of(detail.course).model_dump()
    chapters = [
        CurriculumChapterOut(
            **ChapterOut.of(cv.chapter).model_dump(),
            lessons=[
                CurriculumLessonOut(
                    **LessonOut.of(lv.lesson, locked=lv.locked).model_dump(),
                    locked=lv.locked,
                )
                for lv in cv.lessons
            ],
        )
        for cv in detail.chapters
    ]
    return CourseDetailOut(
        **base,
        chapters=chapters,
        is_enrolled=detail.is_enrolled,
        enrollment_count=detail.enrollment_count,
        review_count=detail.review_count,
        avg_rating=detail.avg_rating,
    )


@router.get("", response_model=list[CourseOut])
async def list_courses(
    service: CourseServiceDep,
    price: Annotated[Literal["free", "paid"] | None, Query()] = None,
    q: Annotated[str | None, Query(max_length=200)] = None,
    category: str | None = None,
    level: str | None = None,
) -> list[CourseOut]:
    courses = await service.list_catalog(
        price_filter=price, search=q, category=category, level=level
    )
    return [CourseOut.of(c) for c in courses]


@router.post("", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
async def create_course(
    payload: CourseCreateIn,
    principal: CurrentUser,
    service: CourseServiceDep,
) -> CourseOut:
    course = await service.create_course(
        principal,
        title=payload.title,
        description=payload.description,
        price=payload.price,
        level=payload.level,
        category=payload.category,
        slug=payload.slug,
    )
    return CourseOut.of(course)


@router.get("/{course_id}", response_model=CourseDetailOut)
async def get_course(
    course_id: UUID,
    principal: OptionalPrincipal,
    service: CourseServiceDep,
) -> CourseDetailOut:
    return _detail_out(await service.get_course_detail(principal, course_id))


@router.patch("/{course_id}", response_model=CourseOut)
async def update_course(
    course_id: UUID,
    payload: CourseUpdateIn,
    principal: CurrentUser,
    service: CourseServiceDep,
) -> CourseOut:
    changes = payload.model_dump(exclude_unset=True)
    course = await service.update_course(principal, course_id, changes)
    return CourseOut.of(course)


@router.post("/{course_id}/publish", response_model=CourseOut)
async def publish_course(
    course_id: UUID, principal: CurrentUser, service: CourseServiceDep
) -> CourseOut:
    return CourseOut.of(await service.publish_course(principal, course_id))


@router.post("/{course_id}/unpublish", response_model=CourseOut)
async def unpublish_course(
    course_id: UUID, principal: CurrentUser, service: CourseServiceDep
) -> CourseOut:
    return CourseOut.of(await service.unpublish_course(principal, course_id))


@router.post("/{course_id}/archive", response_model=CourseOut)
async def archive_course(
    course_id: UUID, principal: CurrentUser, service: CourseServiceDep
) -> CourseOut:
    return CourseOut.of(await service.archive_course(principal, course_id))


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(
    course_id: UUID, principal: CurrentUser, service: CourseServiceDep
) -> Response:
    await service.delete_course(principal, course_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
