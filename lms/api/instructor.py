"""Instructor dashboard endpoints.

  GET /v1/instructor/courses   own courses with enrollment, rating, completion
  GET /v1/instructor/stats     totals across own courses
"""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from lms.api.courses import CourseOut
from lms.api.dependencies import CurrentUser, get_instructor_service
from lms.services.instructor_service import InstructorService

router = APIRouter(prefix="/v1/instructor", tags=["instructor"])

InstructorServiceDep = Annotated[InstructorService, Depends(get_instructor_service)]


class InstructorCourseOut(CourseOut):
    enrollment_count: int
    chapter_count: int
    review_count: int
    average_rating: float
    completion_rate: float
    revenue: Decimal


class InstructorStatsOut(BaseModel):
    total_courses: int
    total_students: int
    total_revenue: Decimal
    average_rating: float
    completion_rate: float


@router.get("/courses", response_model=list[InstructorCourseOut])
async def my_courses(
    principal: CurrentUser, service: InstructorServiceDep
) -> list[InstructorCourseOut]:
    return [
        InstructorCourseOut(
            **CourseOut.of(a.course).model_dump(),
            enrollment_count=a.enrollment_count,
            chapter_count=a.chapter_count,
            review_count=a.review_count,
            average_rating=a.average_rating,
            completion_rate=a.completion_rate,
            revenue=a.revenue,
        )
        for a in await service.list_courses(principal)
    ]


@router.get("/stats", response_model=InstructorStatsOut)
async def my_stats(
    principal: CurrentUser, service: InstructorServiceDep
) -> InstructorStatsOut:
    stats = await service.stats(principal)
    return InstructorStatsOut(
        total_courses=stats.total_courses,
        total_students=stats.total_students,
        total_revenue=stats.total_revenue,
        average_rating=stats.average_rating,
        completion_rate=stats.completion_rate,
    )
