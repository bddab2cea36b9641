"""Enrollment endpoints.

  POST   /v1/courses/{id}/enroll     201 created | 402 pay first | 409 already
  DELETE /v1/courses/{id}/enroll     204
  POST   /v1/courses/{id}/purchase   mock checkout
  GET    /v1/me/enrollments          dashboard list with progress
"""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Response, status
from pydantic import BaseModel, StrictBool

from lms.api.courses import CourseOut
from lms.api.dependencies import CurrentUser, get_enrollment_service
from lms.models.learning import Enrollment
from lms.services.enrollment_service import EnrollmentService

router = APIRouter(tags=["enrollments"])

EnrollmentServiceDep = Annotated[EnrollmentService, Depends(get_enrollment_service)]


class EnrollIn(BaseModel):
    payment_completed: StrictBool = False


class EnrollmentOut(BaseModel):
    id: UUID
    user_id: UUID
    course_id: UUID
    enrolled_at: int

    @staticmethod
    def of(e: Enrollment) -> EnrollmentOut:
        return EnrollmentOut(
            id=e.id, user_id=e.user_id, course_id=e.course_id, enrolled_at=e.enrolled_at
        )


class PaymentSessionOut(BaseModel):
    id: str
    course_id: UUID
    user_id: UUID
    amount: Decimal
    currency: str
    status: str
    url: str


class CheckoutOut(BaseModel):
    enrollment: EnrollmentOut | None = None
    payment_session: PaymentSessionOut | None = None


class EnrollmentProgressOut(EnrollmentOut):
    course: CourseOut
    completed_lessons: int
    total_lessons: int
    progress: int


@router.post(
    "/v1/courses/{course_id}/enroll",
    response_model=EnrollmentOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll(
    course_id: UUID,
    principal: CurrentUser,
    service: EnrollmentServiceDep,
    payload: Annotated[EnrollIn | None, Body()] = None,
) -> EnrollmentOut:
    payment_completed = payload.payment_completed if payload else False
    enrollment = await service.enroll(principal, course_id, payment_completed)
    return EnrollmentOut.of(enrollment)


@router.delete("/v1/courses/{course_id}/enroll", status_code=status.HTTP_204_NO_CONTENT)
async def unenroll(
    course_id: UUID, principal: CurrentUser, service: EnrollmentServiceDep
) -> Response:
    await service.unenroll(principal, course_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/v1/courses/{course_id}/purchase", response_model=CheckoutOut)
async def purchase(
    course_id: UUID, principal: CurrentUser, service: EnrollmentServiceDep
) -> CheckoutOut:
    result = await service.start_checkout(principal, course_id)
    if result.enrollment is not None:
        return CheckoutOut(enrollment=EnrollmentOut.of(result.enrollment))
    session = result.payment_session
    if session is None:
        raise RuntimeError("checkout returned neither an enrollment nor a session")
    return CheckoutOut(
        payment_session=PaymentSessionOut(
            id=session.id,
            course_id=session.course_id,
            user_id=session.user_id,
            amount=session.amount,
            currency=session.currency,
            status=session.status,
            url=session.url,
        )
    )


@router.get("/v1/me/enrollments", response_model=list[EnrollmentProgressOut])
async def my_enrollments(
    principal: CurrentUser, service: EnrollmentServiceDep
) -> list[EnrollmentProgressOut]:
    return [
        EnrollmentProgressOut(
            **EnrollmentOut.of(v.enrollment).model_dump(),
            course=CourseOut.of(v.course),
            completed_lessons=v.summary.completed,
            total_lessons=v.summary.total,
            progress=v.summary.percent,
        )
        for v in await service.list_enrollments(principal)
    ]
