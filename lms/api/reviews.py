from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from lms.api.dependencies import CurrentUser, get_review_service
from lms.models.learning import Review
from lms.services.review_service import ReviewService

router = APIRouter(prefix="/v1/courses/{course_id}/reviews", tags=["reviews"])

ReviewServiceDep = Annotated[ReviewService, Depends(get_review_service)]


class ReviewIn(BaseModel):
    rating: int
    comment: str | None = Field(default=None, max_length=2000)


class ReviewOut(BaseModel):
    id: UUID
    user_id: UUID
    course_id: UUID
    rating: int
    comment: str | None
    created_at: int

    @staticmethod
    def of(r: Review) -> ReviewOut:
        return ReviewOut(
            id=r.id,
            user_id=r.user_id,
            course_id=r.course_id,
            rating=r.rating,
            comment=r.comment,
            created_at=r.created_at,
        )


@router.get("", response_model=list[ReviewOut])
async def list_reviews(course_id: UUID, service: ReviewServiceDep) -> list[ReviewOut]:
    return [ReviewOut.of(r) for r in await service.list_reviews(course_id)]


@router.post("", response_model=ReviewOut, status_code=status.HTTP_201_CREATED)
async def add_review(
    course_id: UUID,
    payload: ReviewIn,
    principal: CurrentUser,
    service: ReviewServiceDep,
) -> ReviewOut:
    review = await service.add_review(
        principal, course_id, payload.rating, payload.comment
    )
    return ReviewOut.of(review)
