"""Enrollment manager: enroll, unenroll, mock checkout, learner enrollments.

enroll() checks, in order:

    course exists                       else NotFound
    course is Published                 else InvalidState
    caller does not own the course      else Forbidden
    caller not already enrolled         else Conflict
    course is free, or payment done     else PaymentRequired

The pre-check for an existing enrollment only produces the friendly
error; the store's (user_id, course_id) constraint is what guarantees a
single row when two requests race.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from lms.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    PaymentRequiredError,
)
from lms.core.metrics import ENROLLMENTS
from lms.models.course import Course
from lms.models.learning import Enrollment, PaymentSession
from lms.models.principal import Principal
from lms.models.user import now_ts
from lms.repos.errors import DuplicateRecordError
from lms.repos.gateway import Gateway
from lms.services.completion import CompletionSummary, summarize

logger = logging.getLogger(__name__)

CHECKOUT_CURRENCY = "usd"


@dataclass(frozen=True, slots=True)
class EnrollmentView:
    enrollment: Enrollment
    course: Course
    summary: CompletionSummary


@dataclass(frozen=True, slots=True)
class CheckoutResult:
    """Exactly one of ``enrollment`` (free course) or ``payment_session``."""

    enrollment: Enrollment | None = None
    payment_session: PaymentSession | None = None


class EnrollmentService:
    def __init__(self, gateway: Gateway) -> None:
        self._gw = gateway

    async def _enrollable_course(
        self, principal: Principal, course_id: UUID
    ) -> Course:
        course = await self._gw.courses.get_course(course_id)
        if course is None:
            raise NotFoundError("Course not found")
        if not course.is_published:
            raise InvalidStateError("Course is not available for enrollment")
        if principal.owns(course.owner_id):
            logger.warning(
                "Self-enrollment rejected user=%s course=%s",
                principal.user_id,
                course_id,
            )
            raise ForbiddenError("You cannot enroll in your own course")
        if await self._gw.enrollments.get(principal.user_id, course_id) is not None:
            ENROLLMENTS.labels(result="conflict").inc()
            raise ConflictError("Already enrolled in this course")
        return course

    async def _create(self, principal: Principal, course: Course) -> Enrollment:
        enrollment = Enrollment.new(user_id=principal.user_id, course_id=course.id)
        try:
            await self._gw.enrollments.add(enrollment)
        except DuplicateRecordError:
            ENROLLMENTS.labels(result="conflict").inc()
            raise ConflictError("Already enrolled in this course") from None
        ENROLLMENTS.labels(result="created").inc()
        logger.info(
            "Enrollment created user=%s course=%s free=%s",
            principal.user_id,
            course.id,
            course.is_free,
            extra={"user_id": str(principal.user_id), "course_id": str(course.id)},
        )
        return enrollment

    async def enroll(
        self, principal: Principal, course_id: UUID, payment_completed: bool = False
    ) -> Enrollment:
        course = await self._enrollable_course(principal, course_id)
        if not course.is_free and not payment_completed:
            ENROLLMENTS.labels(result="payment_required").inc()
            logger.info(
                "Payment required user=%s course=%s price=%s",
                principal.user_id,
                course_id,
                course.price,
            )
            raise PaymentRequiredError(
                course.id, course.title, course.price or Decimal(0)
            )
        return await self._create(principal, course)

    async def unenroll(self, principal: Principal, course_id: UUID) -> None:
        """Remove the enrollment.  Progress and certificates are kept."""
        removed = await self._gw.enrollments.remove(principal.user_id, course_id)
        if not removed:
            raise NotFoundError("Enrollment not found")
        ENROLLMENTS.labels(result="removed").inc()
        logger.info(
            "Enrollment removed user=%s course=%s", principal.user_id, course_id
        )

    async def start_checkout(
        self, principal: Principal, course_id: UUID
    ) -> CheckoutResult:
        """Mock purchase: free courses enroll at once, paid ones get a pending
        payment session and no enrollment until payment completes."""
        course = await self._enrollable_course(principal, course_id)
        if course.is_free:
            return CheckoutResult(enrollment=await self._create(principal, course))

        session = PaymentSession(
            id=f"mock_session_{now_ts()}",
            course_id=course.id,
            user_id=principal.user_id,
            amount=course.price or Decimal(0),
            currency=CHECKOUT_CURRENCY,
            status="pending",
            url=f"/payment/checkout?session={course.id}&user={principal.user_id}",
        )
        logger.info(
            "Payment session created user=%s course=%s amount=%s",
            principal.user_id,
            course.id,
            session.amount,
        )
        return CheckoutResult(payment_session=session)

    async def is_enrolled(self, user_id: UUID, course_id: UUID) -> bool:
        return await self._gw.enrollments.get(user_id, course_id) is not None

    async def list_enrollments(self, principal: Principal) -> list[EnrollmentView]:
        views = []
        for enrollment in await self._gw.enrollments.list_by_user(principal.user_id):
            course = await self._gw.courses.get_course(enrollment.course_id)
            if course is None:
                continue
            views.append(
                EnrollmentView(
                    enrollment=enrollment,
                    course=course,
                    summary=await summarize(
                        self._gw.progress, principal.user_id, course.id
                    ),
                )
            )
        return views
