"""Lesson progress and learner progress summaries.

PUT /v1/lessons/{lesson_id}/progress records completion and, when the
last eligible lesson is completed, issues the course certificate in the
same request.  ``is_completed`` must be a JSON boolean; anything else is
rejected with 422 before any state is touched.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, StrictBool

from lms.api.dependencies import CurrentUser, get_progress_service
from lms.services.progress_service import ProgressService

router = APIRouter(tags=["progress"])

ProgressServiceDep = Annotated[ProgressService, Depends(get_progress_service)]


class LessonProgressIn(BaseModel):
    is_completed: StrictBool


class LessonProgressOut(BaseModel):
    id: UUID
    user_id: UUID
    lesson_id: UUID
    is_completed: bool
    updated_at: int


class CourseProgressOut(BaseModel):
    course_id: UUID
    completed_lessons: int
    total_lessons: int
    progress: int
    is_complete: bool
    certificate_id: UUID | None


class LearnerStatsOut(BaseModel):
    total_enrollments: int
    completed_courses: int
    total_certificates: int
    total_learning_hours: int


@router.put("/v1/lessons/{lesson_id}/progress", response_model=LessonProgressOut)
async def set_lesson_progress(
    lesson_id: UUID,
    payload: LessonProgressIn,
    principal: CurrentUser,
    service: ProgressServiceDep,
) -> LessonProgressOut:
    record = await service.set_lesson_progress(
        principal, lesson_id, payload.is_completed
    )
    return LessonProgressOut(
        id=record.id,
        user_id=record.user_id,
        lesson_id=record.lesson_id,
        is_completed=record.is_completed,
        updated_at=record.updated_at,
    )


@router.get("/v1/courses/{course_id}/progress", response_model=CourseProgressOut)
async def get_course_progress(
    course_id: UUID, principal: CurrentUser, service: ProgressServiceDep
) -> CourseProgressOut:
    p = await service.get_course_progress(principal, course_id)
    return CourseProgressOut(
        course_id=p.course_id,
        completed_lessons=p.completed,
        total_lessons=p.total,
        progress=p.percent,
        is_complete=p.is_complete,
        certificate_id=p.certificate_id,
    )


@router.get("/v1/me/stats", response_model=LearnerStatsOut)
async def my_stats(
    principal: CurrentUser, service: ProgressServiceDep
) -> LearnerStatsOut:
    stats = await service.learner_stats(principal)
    return LearnerStatsOut(
        total_enrollments=stats.total_enrollments,
        completed_courses=stats.completed_courses,
        total_certificates=stats.total_certificates,
        total_learning_hours=stats.learning_hours,
    )
