"""Learner-side records: enrollment, lesson progress, certificates, reviews.

Each of Enrollment, Certificate and LessonProgress has a natural
composite key (user + course, user + lesson) that the store keeps unique.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID, uuid4

from lms.models.user import now_ts


@dataclass(frozen=True, slots=True)
class Enrollment:
    id: UUID
    user_id: UUID
    course_id: UUID
    enrolled_at: int

    @staticmethod
    def new(*, user_id: UUID, course_id: UUID) -> Enrollment:
        return Enrollment(
            id=uuid4(), user_id=user_id, course_id=course_id, enrolled_at=now_ts()
        )


@dataclass(frozen=True, slots=True)
class LessonProgress:
    id: UUID
    user_id: UUID
    lesson_id: UUID
    is_completed: bool
    updated_at: int


@dataclass(frozen=True, slots=True)
class Certificate:
    """Proof of completion.  Append-only: never updated or revoked."""

    id: UUID
    user_id: UUID
    course_id: UUID
    issued_at: int

    @staticmethod
    def new(*, user_id: UUID, course_id: UUID) -> Certificate:
        return Certificate(
            id=uuid4(), user_id=user_id, course_id=course_id, issued_at=now_ts()
        )


@dataclass(frozen=True, slots=True)
class Review:
    id: UUID
    user_id: UUID
    course_id: UUID
    rating: int  # 1..5
    comment: str | None = None
    created_at: int = 0

    @staticmethod
    def new(
        *, user_id: UUID, course_id: UUID, rating: int, comment: str | None = None
    ) -> Review:
        return Review(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            rating=rating,
            comment=comment,
            created_at=now_ts(),
        )


@dataclass(frozen=True, slots=True)
class LessonCompletion:
    """An eligible lesson joined with one user's completion flag."""

    lesson_id: UUID
    chapter_id: UUID
    duration_minutes: int | None
    is_completed: bool


@dataclass(frozen=True, slots=True)
class PaymentSession:
    """Mock checkout handle.  Not persisted; real payments are out of scope."""

    id: str
    course_id: UUID
    user_id: UUID
    amount: Decimal
    currency: str
    status: str
    url: str
