"""Chapter and lesson authoring endpoints."""

from __future__ import annotations

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from lms.api.courses import ChapterOut, LessonOut
from lms.api.dependencies import CurrentUser, get_course_service
from lms.services.course_service import CourseService

router = APIRouter(tags=["curriculum"])

CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]

# These fields may be omitted from a PATCH but never cleared.
_REQUIRED_FIELDS = ("title", "position", "is_published", "is_free")


class ChapterCreateIn(BaseModel):
    title: str
    position: int | None = None
    is_published: bool = False
    is_free: bool = False


class ChapterUpdateIn(BaseModel):
    title: str | None = None
    position: int | None = None
    is_published: bool | None = None
    is_free: bool | None = None


class LessonCreateIn(BaseModel):
    title: str
    position: int | None = None
    is_published: bool = False
    is_free: bool = False
    duration_minutes: int | None = Field(default=None, ge=0)
    video_url: str | None = None


class LessonUpdateIn(BaseModel):
    title: str | None = None
    position: int | None = None
    is_published: bool | None = None
    is_free: bool | None = None
    duration_minutes: int | None = Field(default=None, ge=0)
    video_url: str | None = None


def _changes(payload: BaseModel) -> dict[str, Any]:
    changes = payload.model_dump(exclude_unset=True)
    for name in _REQUIRED_FIELDS:
        if name in changes and changes[name] is None:
            del changes[name]
    return changes


@router.post(
    "/v1/courses/{course_id}/chapters",
    response_model=ChapterOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_chapter(
    course_id: UUID,
    payload: ChapterCreateIn,
    principal: CurrentUser,
    service: CourseServiceDep,
) -> ChapterOut:
    chapter = await service.add_chapter(
        principal,
        course_id,
        title=payload.title,
        position=payload.position,
        is_published=payload.is_published,
        is_free=payload.is_free,
    )
    return ChapterOut.of(chapter)


@router.patch(
    "/v1/courses/{course_id}/chapters/{chapter_id}", response_model=ChapterOut
)
async def update_chapter(
    course_id: UUID,
    chapter_id: UUID,
    payload: ChapterUpdateIn,
    principal: CurrentUser,
    service: CourseServiceDep,
) -> ChapterOut:
    chapter = await service.update_chapter(
        principal, course_id, chapter_id, _changes(payload)
    )
    return ChapterOut.of(chapter)


@router.delete(
    "/v1/courses/{course_id}/chapters/{chapter_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_chapter(
    course_id: UUID,
    chapter_id: UUID,
    principal: CurrentUser,
    service: CourseServiceDep,
) -> Response:
    await service.delete_chapter(principal, course_id, chapter_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/v1/chapters/{chapter_id}/lessons",
    response_model=LessonOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_lesson(
    chapter_id: UUID,
    payload: LessonCreateIn,
    principal: CurrentUser,
    service: CourseServiceDep,
) -> LessonOut:
    lesson = await service.add_lesson(
        principal,
        chapter_id,
        title=payload.title,
        position=payload.position,
        is_published=payload.is_published,
        is_free=payload.is_free,
        duration_minutes=payload.duration_minutes,
        video_url=payload.video_url,
    )
    return LessonOut.of(lesson)


@router.patch("/v1/chapters/{chapter_id}/lessons/{lesson_id}", response_model=LessonOut)
async def update_lesson(
    chapter_id: UUID,
    lesson_id: UUID,
    payload: LessonUpdateIn,
    principal: CurrentUser,
    service: CourseServiceDep,
) -> LessonOut:
    lesson = await service.update_lesson(
        principal, chapter_id, lesson_id, _changes(payload)
    )
    return LessonOut.of(lesson)
