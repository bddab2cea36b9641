from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from lms.core.errors import ForbiddenError, UnauthorizedError
from lms.models.course import CourseStatus
from lms.models.learning import Enrollment, Review
from lms.models.user import Role
from lms.repos.gateway import InMemoryGateway
from lms.services.instructor_service import InstructorService
from tests.conftest import (
    make_chapter,
    make_course,
    make_intro_course,
    make_lesson,
    make_user,
    principal_of,
)


@pytest.fixture
def gw() -> InMemoryGateway:
    return InMemoryGateway()


def _enroll(gw: InMemoryGateway, user, course) -> None:
    enrollment = Enrollment.new(user_id=user.id, course_id=course.id)
    asyncio.run(gw.enrollments.add(enrollment))


def _review(gw: InMemoryGateway, user, course, rating: int) -> None:
    review = Review.new(user_id=user.id, course_id=course.id, rating=rating)
    asyncio.run(gw.reviews.add(review))


def test_dashboard_requires_instructor(gw: InMemoryGateway) -> None:
    service = InstructorService(gw)
    with pytest.raises(UnauthorizedError):
        asyncio.run(service.list_courses(None))
    with pytest.raises(ForbiddenError):
        asyncio.run(service.stats(principal_of(make_user(gw, Role.STUDENT))))


def test_lists_only_own_courses_including_drafts(gw: InMemoryGateway) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    published = make_course(gw, owner, title="Live")
    draft = make_course(gw, owner, title="Draft", status=CourseStatus.DRAFT)
    make_course(gw, make_user(gw, Role.INSTRUCTOR), title="Elsewhere")

    courses = asyncio.run(InstructorService(gw).list_courses(principal_of(owner)))
    assert {a.course.id for a in courses} == {published.id, draft.id}


def test_course_analytics(gw: InMemoryGateway) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    course, lessons = make_intro_course(gw, owner, price=Decimal("20.00"))
    # Unpublished lessons do not count toward completion.
    make_lesson(gw, make_chapter(gw, course, position=1, is_published=False))
    alice, bob = make_user(gw), make_user(gw)
    _enroll(gw, alice, course)
    _enroll(gw, bob, course)
    for lesson in lessons:
        asyncio.run(gw.progress.upsert(alice.id, lesson.id, True))
    asyncio.run(gw.progress.upsert(bob.id, lessons[0].id, True))
    _review(gw, alice, course, 5)
    _review(gw, bob, course, 4)

    [analytics] = asyncio.run(InstructorService(gw).list_courses(principal_of(owner)))

    assert analytics.enrollment_count == 2
    assert analytics.chapter_count == 2
    assert analytics.review_count == 2
    assert analytics.average_rating == 4.5
    # 3 of 4 eligible lesson marks.
    assert analytics.completion_rate == 75.0
    assert analytics.revenue == Decimal("40.00")


def test_course_without_learners_has_zero_rates(gw: InMemoryGateway) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    make_intro_course(gw, owner)

    [analytics] = asyncio.run(InstructorService(gw).list_courses(principal_of(owner)))
    assert analytics.completion_rate == 0.0
    assert analytics.average_rating == 0.0
    assert analytics.revenue == Decimal(0)


def test_stats_totals_across_courses(gw: InMemoryGateway) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    paid, paid_lessons = make_intro_course(gw, owner, price=Decimal("10.00"))
    free = make_course(gw, owner, title="Free")
    free_lesson = make_lesson(gw, make_chapter(gw, free))
    alice, bob = make_user(gw), make_user(gw)
    _enroll(gw, alice, paid)
    _enroll(gw, alice, free)
    _enroll(gw, bob, free)
    asyncio.run(gw.progress.upsert(alice.id, paid_lessons[0].id, True))
    asyncio.run(gw.progress.upsert(bob.id, free_lesson.id, True))
    _review(gw, alice, paid, 3)
    _review(gw, alice, free, 4)
    _review(gw, bob, free, 5)

    stats = asyncio.run(InstructorService(gw).stats(principal_of(owner)))

    assert stats.total_courses == 2
    assert stats.total_students == 3
    assert stats.total_revenue == Decimal("10.00")
    assert stats.average_rating == 4.0
    # paid: 1 of 2, free: 1 of 2 -> 2 of 4.
    assert stats.completion_rate == 50.0


def test_stats_for_instructor_without_courses(gw: InMemoryGateway) -> None:
    stats = asyncio.run(
        InstructorService(gw).stats(principal_of(make_user(gw, Role.INSTRUCTOR)))
    )
    assert stats.total_courses == 0
    assert stats.total_revenue == Decimal(0)
    assert stats.completion_rate == 0.0
