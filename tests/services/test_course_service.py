from __future__ import annotations

import asyncio
from decimal import Decimal
from uuid import uuid4

import pytest

from lms.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailedError,
)
from lms.models.course import CourseStatus
from lms.models.learning import Certificate, Enrollment, Review
from lms.models.user import Role
from lms.repos.gateway import InMemoryGateway
from lms.services.cache import InMemoryCacheService, progress_key
from lms.services.course_service import CourseService, slugify
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


@pytest.fixture
def service(gw: InMemoryGateway) -> CourseService:
    return CourseService(gw, InMemoryCacheService())


# ---- slugs ----


def test_slugify() -> None:
    assert slugify("Intro to Python!") == "intro-to-python"
    assert slugify("  Data_Science 101 ") == "data-science-101"
    assert slugify("!!!") == "course"


def test_duplicate_title_gets_numbered_slug(
    gw: InMemoryGateway, service: CourseService
) -> None:
    p = principal_of(make_user(gw, Role.INSTRUCTOR))
    first = asyncio.run(service.create_course(p, title="Intro"))
    second = asyncio.run(service.create_course(p, title="Intro"))
    third = asyncio.run(service.create_course(p, title="Intro"))
    assert [first.slug, second.slug, third.slug] == ["intro", "intro-2", "intro-3"]


# ---- creation ----


def test_new_course_starts_as_draft(
    gw: InMemoryGateway, service: CourseService
) -> None:
    instructor = make_user(gw, Role.INSTRUCTOR)
    course = asyncio.run(
        service.create_course(
            principal_of(instructor),
            title="  Intro  ",
            price=Decimal("9.99"),
            level="Beginner",
        )
    )
    assert course.status is CourseStatus.DRAFT
    assert course.title == "Intro"
    assert course.owner_id == instructor.id


def test_student_cannot_create_course(
    gw: InMemoryGateway, service: CourseService
) -> None:
    with pytest.raises(ForbiddenError):
        asyncio.run(service.create_course(principal_of(make_user(gw)), title="X"))


def test_anonymous_cannot_create_course(service: CourseService) -> None:
    with pytest.raises(UnauthorizedError):
        asyncio.run(service.create_course(None, title="X"))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"title": "   "},
        {"title": "X", "price": Decimal("-1")},
        {"title": "X", "level": "Expert"},
    ],
    ids=["blank-title", "negative-price", "bad-level"],
)
def test_create_course_validation(
    gw: InMemoryGateway, service: CourseService, kwargs: dict
) -> None:
    p = principal_of(make_user(gw, Role.INSTRUCTOR))
    with pytest.raises(ValidationFailedError):
        asyncio.run(service.create_course(p, **kwargs))


# ---- updates and status ----


def test_update_course_partial(gw: InMemoryGateway, service: CourseService) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    course = make_course(gw, owner)
    updated = asyncio.run(
        service.update_course(
            principal_of(owner), course.id, {"price": Decimal("5"), "description": None}
        )
    )
    assert updated.price == Decimal("5")
    assert updated.description == ""
    assert updated.title == course.title


def test_update_course_rejects_unknown_field(
    gw: InMemoryGateway, service: CourseService
) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    course = make_course(gw, owner)
    with pytest.raises(ValidationFailedError):
        asyncio.run(
            service.update_course(principal_of(owner), course.id, {"status": "x"})
        )


def test_other_instructor_cannot_update(
    gw: InMemoryGateway, service: CourseService
) -> None:
    course = make_course(gw, make_user(gw, Role.INSTRUCTOR))
    intruder = make_user(gw, Role.INSTRUCTOR)
    with pytest.raises(ForbiddenError):
        asyncio.run(
            service.update_course(principal_of(intruder), course.id, {"title": "Y"})
        )


def test_admin_can_update_any_course(
    gw: InMemoryGateway, service: CourseService
) -> None:
    course = make_course(gw, make_user(gw, Role.INSTRUCTOR))
    admin = make_user(gw, Role.ADMIN)
    updated = asyncio.run(
        service.update_course(principal_of(admin), course.id, {"title": "Renamed"})
    )
    assert updated.title == "Renamed"


def test_publish_requires_published_chapter(
    gw: InMemoryGateway, service: CourseService
) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    course = make_course(gw, owner, status=CourseStatus.DRAFT)
    make_chapter(gw, course, is_published=False)

    with pytest.raises(InvalidStateError):
        asyncio.run(service.publish_course(principal_of(owner), course.id))

    make_chapter(gw, course, position=1)
    published = asyncio.run(service.publish_course(principal_of(owner), course.id))
    assert published.status is CourseStatus.PUBLISHED


def test_unpublish_and_archive(gw: InMemoryGateway, service: CourseService) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    course = make_course(gw, owner)
    p = principal_of(owner)

    assert asyncio.run(service.unpublish_course(p, course.id)).status is (
        CourseStatus.DRAFT
    )
    assert asyncio.run(service.archive_course(p, course.id)).status is (
        CourseStatus.ARCHIVED
    )


# ---- chapters and lessons ----


def test_chapter_positions_auto_increment(
    gw: InMemoryGateway, service: CourseService
) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    course = make_course(gw, owner)
    p = principal_of(owner)
    a = asyncio.run(service.add_chapter(p, course.id, title="A"))
    b = asyncio.run(service.add_chapter(p, course.id, title="B"))
    assert (a.position, b.position) == (0, 1)


def test_taken_chapter_position_is_conflict(
    gw: InMemoryGateway, service: CourseService
) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    course = make_course(gw, owner)
    p = principal_of(owner)
    asyncio.run(service.add_chapter(p, course.id, title="A", position=0))
    with pytest.raises(ConflictError):
        asyncio.run(service.add_chapter(p, course.id, title="B", position=0))


def test_add_lesson_invalidates_progress_cache(gw: InMemoryGateway) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    student = make_user(gw)
    course, _ = make_intro_course(gw, owner)
    chapter = asyncio.run(gw.courses.list_chapters(course.id))[0]
    cache = InMemoryCacheService()
    key = progress_key(course.id, student.id)
    asyncio.run(cache.set(key, "{}", 300))

    service = CourseService(gw, cache)
    asyncio.run(service.add_lesson(principal_of(owner), chapter.id, title="Extra"))

    assert asyncio.run(cache.get(key)) is None


def test_update_lesson_in_other_chapter_is_not_found(
    gw: InMemoryGateway, service: CourseService
) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    course = make_course(gw, owner)
    first = make_chapter(gw, course)
    second = make_chapter(gw, course, position=1)
    lesson = make_lesson(gw, first)

    with pytest.raises(NotFoundError):
        asyncio.run(
            service.update_lesson(
                principal_of(owner), second.id, lesson.id, {"title": "Moved"}
            )
        )


# ---- catalog ----


def test_catalog_lists_only_published(
    gw: InMemoryGateway, service: CourseService
) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    live = make_course(gw, owner, title="Live")
    make_course(gw, owner, title="Draft", status=CourseStatus.DRAFT)
    make_course(gw, owner, title="Old", status=CourseStatus.ARCHIVED)

    assert [c.id for c in asyncio.run(service.list_catalog())] == [live.id]


def test_catalog_price_filter_and_search(
    gw: InMemoryGateway, service: CourseService
) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    free = make_course(gw, owner, title="Python Basics")
    paid = make_course(gw, owner, title="Advanced Rust", price=Decimal("20"))

    assert [c.id for c in asyncio.run(service.list_catalog(price_filter="free"))] == [
        free.id
    ]
    assert [c.id for c in asyncio.run(service.list_catalog(price_filter="paid"))] == [
        paid.id
    ]
    assert [c.id for c in asyncio.run(service.list_catalog(search="rust"))] == [
        paid.id
    ]


def test_catalog_rejects_unknown_price_filter(service: CourseService) -> None:
    with pytest.raises(ValidationFailedError):
        asyncio.run(service.list_catalog(price_filter="cheap"))


# ---- detail ----


def test_detail_locks_paid_lessons_for_visitors(
    gw: InMemoryGateway, service: CourseService
) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    course = make_course(gw, owner)
    chapter = make_chapter(gw, course)
    make_lesson(gw, chapter, position=0, is_free=True)
    make_lesson(gw, chapter, position=1)
    make_lesson(gw, chapter, position=2, is_published=False)

    detail = asyncio.run(service.get_course_detail(None, course.id))
    [ch] = detail.chapters
    assert [lv.locked for lv in ch.lessons] == [False, True]
    assert detail.is_enrolled is False


def test_detail_shows_drafts_to_owner(
    gw: InMemoryGateway, service: CourseService
) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    course = make_course(gw, owner, status=CourseStatus.DRAFT)
    chapter = make_chapter(gw, course, is_published=False)
    make_lesson(gw, chapter, is_published=False)

    detail = asyncio.run(service.get_course_detail(principal_of(owner), course.id))
    assert len(detail.chapters) == 1
    assert detail.chapters[0].lessons[0].locked is False


def test_draft_detail_unauthorized_for_anonymous_forbidden_for_student(
    gw: InMemoryGateway, service: CourseService
) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    course = make_course(gw, owner, status=CourseStatus.DRAFT)

    with pytest.raises(UnauthorizedError):
        asyncio.run(service.get_course_detail(None, course.id))
    with pytest.raises(ForbiddenError):
        asyncio.run(
            service.get_course_detail(principal_of(make_user(gw)), course.id)
        )


def test_detail_average_rating(gw: InMemoryGateway, service: CourseService) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    course = make_course(gw, owner)
    for rating in (5, 4, 4):
        reviewer = make_user(gw)
        asyncio.run(
            gw.reviews.add(
                Review.new(user_id=reviewer.id, course_id=course.id, rating=rating)
            )
        )

    detail = asyncio.run(service.get_course_detail(None, course.id))
    assert detail.review_count == 3
    assert detail.avg_rating == 4.3


# ---- deletion ----


def test_delete_course_removes_curriculum_and_progress(
    gw: InMemoryGateway, service: CourseService
) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    course, lessons = make_intro_course(gw, owner)
    asyncio.run(gw.progress.upsert(owner.id, lessons[0].id, True))

    asyncio.run(service.delete_course(principal_of(owner), course.id))

    assert asyncio.run(gw.courses.get_course(course.id)) is None
    assert asyncio.run(gw.courses.list_chapters(course.id)) == []
    assert asyncio.run(gw.courses.get_lesson(lessons[0].id)) is None
    assert asyncio.run(gw.progress.get(owner.id, lessons[0].id)) is None


def test_admin_may_delete_any_course(
    gw: InMemoryGateway, service: CourseService
) -> None:
    course = make_course(gw, make_user(gw, Role.INSTRUCTOR))
    admin = make_user(gw, Role.ADMIN)
    asyncio.run(service.delete_course(principal_of(admin), course.id))
    assert asyncio.run(gw.courses.get_course(course.id)) is None


def test_delete_course_needs_edit_rights(
    gw: InMemoryGateway, service: CourseService
) -> None:
    course = make_course(gw, make_user(gw, Role.INSTRUCTOR))
    other = make_user(gw, Role.INSTRUCTOR)

    with pytest.raises(UnauthorizedError):
        asyncio.run(service.delete_course(None, course.id))
    with pytest.raises(ForbiddenError):
        asyncio.run(service.delete_course(principal_of(other), course.id))
    assert asyncio.run(gw.courses.get_course(course.id)) is not None


def test_delete_course_with_enrollment_is_conflict(
    gw: InMemoryGateway, service: CourseService
) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    course = make_course(gw, owner)
    student = make_user(gw)
    enrollment = Enrollment.new(user_id=student.id, course_id=course.id)
    asyncio.run(gw.enrollments.add(enrollment))

    with pytest.raises(ConflictError, match="archive"):
        asyncio.run(service.delete_course(principal_of(owner), course.id))
    assert asyncio.run(gw.courses.get_course(course.id)) is not None


def test_delete_course_with_certificate_is_conflict(
    gw: InMemoryGateway, service: CourseService
) -> None:
    """A learner who unenrolled still holds a verifiable certificate."""
    owner = make_user(gw, Role.INSTRUCTOR)
    course = make_course(gw, owner)
    student = make_user(gw)
    cert = Certificate.new(user_id=student.id, course_id=course.id)
    asyncio.run(gw.certificates.add(cert))

    with pytest.raises(ConflictError):
        asyncio.run(service.delete_course(principal_of(owner), course.id))
    assert asyncio.run(gw.certificates.get_by_id(cert.id)) == cert


def test_delete_unknown_course(service: CourseService, gw: InMemoryGateway) -> None:
    admin = make_user(gw, Role.ADMIN)
    with pytest.raises(NotFoundError):
        asyncio.run(service.delete_course(principal_of(admin), uuid4()))


def test_delete_chapter_drops_lessons_and_progress_but_keeps_certificate(
    gw: InMemoryGateway,
) -> None:
    cache = InMemoryCacheService()
    service = CourseService(gw, cache)
    owner = make_user(gw, Role.INSTRUCTOR)
    student = make_user(gw)
    course, lessons = make_intro_course(gw, owner)
    chapter_id = lessons[0].chapter_id
    kept = make_chapter(gw, course, position=1)
    for lesson in lessons:
        asyncio.run(gw.progress.upsert(student.id, lesson.id, True))
    cert = Certificate.new(user_id=student.id, course_id=course.id)
    asyncio.run(gw.certificates.add(cert))
    key = progress_key(course.id, student.id)
    asyncio.run(cache.set(key, "cached", 300))

    asyncio.run(service.delete_chapter(principal_of(owner), course.id, chapter_id))

    assert [ch.id for ch in asyncio.run(gw.courses.list_chapters(course.id))] == [
        kept.id
    ]
    assert asyncio.run(gw.courses.list_lessons(chapter_id)) == []
    assert all(
        asyncio.run(gw.progress.get(student.id, ls.id)) is None for ls in lessons
    )
    assert asyncio.run(gw.certificates.get(student.id, course.id)) == cert
    assert asyncio.run(cache.get(key)) is None


def test_delete_chapter_checks_course_and_rights(
    gw: InMemoryGateway, service: CourseService
) -> None:
    owner = make_user(gw, Role.INSTRUCTOR)
    course = make_course(gw, owner, title="One")
    other_course = make_course(gw, owner, title="Two")
    chapter = make_chapter(gw, course)

    with pytest.raises(NotFoundError):
        asyncio.run(
            service.delete_chapter(principal_of(owner), other_course.id, chapter.id)
        )
    with pytest.raises(ForbiddenError):
        asyncio.run(
            service.delete_chapter(
                principal_of(make_user(gw, Role.STUDENT)), course.id, chapter.id
            )
        )
    assert asyncio.run(gw.courses.get_chapter(chapter.id)) == chapter
