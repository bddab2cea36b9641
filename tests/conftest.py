from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from lms.api.dependencies import memory_gateway
from lms.main import app
from lms.models.course import Chapter, Course, CourseStatus, Lesson
from lms.models.principal import Principal
from lms.models.user import Role, User
from lms.repos.errors import DuplicateRecordError
from lms.repos.gateway import InMemoryGateway
from lms.services import token_service
from lms.services.cache import InMemoryCacheService, cache_service


@pytest.fixture(autouse=True)
def reset_gateway() -> None:
    """Fresh in-memory stores for every test."""
    memory_gateway.reset()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    if isinstance(cache_service, InMemoryCacheService):
        cache_service.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def gateway() -> InMemoryGateway:
    """The gateway the app serves from, for seeding and inspecting state."""
    return memory_gateway


def mint_token(user: User) -> str:
    """Create a valid ES256 JWT whose subject is the user's id."""
    return token_service.create_access_token(sub=str(user.id))


def auth(user: User | None) -> dict[str, str]:
    if user is None:
        return {}
    return {"Authorization": f"Bearer {mint_token(user)}"}


def principal_of(user: User) -> Principal:
    return Principal(user_id=user.id, role=user.role)


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------


def make_user(
    gw: InMemoryGateway, role: Role = Role.STUDENT, email: str | None = None
) -> User:
    user = User.new(
        email=email or f"{role.lower()}-{len(gw.users._by_id)}@example.com",
        name=f"Test {role.title()}",
        role=role,
    )
    asyncio.run(gw.users.add(user))
    return user


def make_course(
    gw: InMemoryGateway,
    owner: User,
    *,
    title: str = "Intro",
    price: Decimal | None = None,
    status: CourseStatus = CourseStatus.PUBLISHED,
) -> Course:
    course = Course.new(
        owner_id=owner.id,
        title=title,
        slug=f"{title.lower().replace(' ', '-')}-{len(gw.courses._courses)}",
        price=price,
        status=status,
    )
    asyncio.run(gw.courses.add_course(course))
    return course


def make_chapter(
    gw: InMemoryGateway,
    course: Course,
    *,
    position: int = 0,
    is_published: bool = True,
    is_free: bool = False,
) -> Chapter:
    chapter = Chapter.new(
        course_id=course.id,
        title=f"Chapter {position}",
        position=position,
        is_published=is_published,
        is_free=is_free,
    )
    asyncio.run(gw.courses.add_chapter(chapter))
    return chapter


def make_lesson(
    gw: InMemoryGateway,
    chapter: Chapter,
    *,
    position: int = 0,
    is_published: bool = True,
    is_free: bool = False,
    duration_minutes: int | None = None,
) -> Lesson:
    lesson = Lesson.new(
        chapter_id=chapter.id,
        title=f"Lesson {position}",
        position=position,
        is_published=is_published,
        is_free=is_free,
        duration_minutes=duration_minutes,
        video_url=f"https://videos.example.com/{chapter.id}/{position}.mp4",
    )
    asyncio.run(gw.courses.add_lesson(lesson))
    return lesson


def make_intro_course(
    gw: InMemoryGateway, owner: User, *, price: Decimal | None = None
) -> tuple[Course, list[Lesson]]:
    """Published course with one published chapter holding two published lessons."""
    course = make_course(gw, owner, title="Intro", price=price)
    chapter = make_chapter(gw, course)
    lessons = [make_lesson(gw, chapter, position=i) for i in range(2)]
    return course, lessons


def open_race_window(monkeypatch: pytest.MonkeyPatch, repo: object) -> list[object]:
    """Make ``repo.get`` yield to the event loop after reading.

    Concurrent callers then all pass their existence check before any of
    them inserts, so the losers reach ``repo.add`` and collide.  Returns
    the list of records whose insert raised DuplicateRecordError.
    """
    original_get = repo.get  # type: ignore[attr-defined]
    original_add = repo.add  # type: ignore[attr-defined]
    collisions: list[object] = []

    async def get(*args: object) -> object:
        found = await original_get(*args)
        await asyncio.sleep(0)
        return found

    async def add(record: object) -> None:
        try:
            await original_add(record)
        except DuplicateRecordError:
            collisions.append(record)
            raise

    monkeypatch.setattr(repo, "get", get)
    monkeypatch.setattr(repo, "add", add)
    return collisions
