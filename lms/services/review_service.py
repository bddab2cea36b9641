from __future__ import annotations

import logging
from uuid import UUID

from lms.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from lms.models.learning import Review
from lms.models.principal import Principal
from lms.repos.errors import DuplicateRecordError
from lms.repos.gateway import Gateway

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class ReviewService:
    def __init__(self, gateway: Gateway) -> None:
        self._gw = gateway

    async def add_review(
        self,
        principal: Principal,
        course_id: UUID,
        rating: int,
        comment: str | None = None,
    ) -> Review:
        """Only enrolled learners may review, once per course."""
        if await self._gw.courses.get_course(course_id) is None:
            raise NotFoundError("Course not found")
        if await self._gw.enrollments.get(principal.user_id, course_id) is None:
            raise ForbiddenError("Only enrolled learners can review this course")
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationFailedError(
                f"rating must be between {MIN_RATING} and {MAX_RATING}"
            )

        review = Review.new(
            user_id=principal.user_id,
            course_id=course_id,
            rating=rating,
            comment=comment.strip() if comment else None,
        )
        try:
            await self._gw.reviews.add(review)
        except DuplicateRecordError:
            raise ConflictError("You have already reviewed this course") from None
        logger.info(
            "Review added user=%s course=%s rating=%d",
            principal.user_id,
            course_id,
            rating,
        )
        return review

    async def list_reviews(self, course_id: UUID) -> list[Review]:
        if await self._gw.courses.get_course(course_id) is None:
            raise NotFoundError("Course not found")
        return await self._gw.reviews.list_by_course(course_id)
