"""End-to-end progress and certificate flow over HTTP."""

from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from lms.models.user import Role
from lms.repos.gateway import InMemoryGateway
from tests.conftest import auth, make_intro_course, make_user


def _complete(client: TestClient, lesson_id, user, done: bool = True):
    return client.put(
        f"/v1/lessons/{lesson_id}/progress",
        json={"is_completed": done},
        headers=auth(user),
    )


def test_completing_course_issues_certificate(
    client: TestClient, gateway: InMemoryGateway
) -> None:
    course, lessons = make_intro_course(gateway, make_user(gateway, Role.INSTRUCTOR))
    student = make_user(gateway)
    client.post(f"/v1/courses/{course.id}/enroll", headers=auth(student))

    first = _complete(client, lessons[0].id, student)
    assert first.status_code == 200
    assert first.json()["is_completed"] is True

    progress = client.get(f"/v1/courses/{course.id}/progress", headers=auth(student))
    assert progress.json()["progress"] == 50
    assert progress.json()["certificate_id"] is None

    _complete(client, lessons[1].id, student)
    _complete(client, lessons[1].id, student)

    progress = client.get(f"/v1/courses/{course.id}/progress", headers=auth(student))
    body = progress.json()
    assert body["is_complete"] is True
    assert body["progress"] == 100
    assert body["certificate_id"] is not None

    certs = client.get("/v1/me/certificates", headers=auth(student)).json()
    assert len(certs) == 1
    assert certs[0]["id"] == body["certificate_id"]


@pytest.mark.parametrize("value", ["true", 1, None])
def test_is_completed_must_be_boolean(
    client: TestClient, gateway: InMemoryGateway, value: object
) -> None:
    course, lessons = make_intro_course(gateway, make_user(gateway, Role.INSTRUCTOR))
    student = make_user(gateway)
    client.post(f"/v1/courses/{course.id}/enroll", headers=auth(student))

    resp = client.put(
        f"/v1/lessons/{lessons[0].id}/progress",
        json={"is_completed": value},
        headers=auth(student),
    )

    assert resp.status_code == 422
    assert asyncio.run(gateway.progress.get(student.id, lessons[0].id)) is None


def test_progress_without_enrollment_is_403(
    client: TestClient, gateway: InMemoryGateway
) -> None:
    _, lessons = make_intro_course(gateway, make_user(gateway, Role.INSTRUCTOR))
    resp = _complete(client, lessons[0].id, make_user(gateway))
    assert resp.status_code == 403


def test_progress_requires_auth(client: TestClient, gateway: InMemoryGateway) -> None:
    _, lessons = make_intro_course(gateway, make_user(gateway, Role.INSTRUCTOR))
    resp = client.put(
        f"/v1/lessons/{lessons[0].id}/progress", json={"is_completed": True}
    )
    assert resp.status_code == 401


def test_my_stats(client: TestClient, gateway: InMemoryGateway) -> None:
    course, lessons = make_intro_course(gateway, make_user(gateway, Role.INSTRUCTOR))
    student = make_user(gateway)
    client.post(f"/v1/courses/{course.id}/enroll", headers=auth(student))
    for lesson in lessons:
        _complete(client, lesson.id, student)

    resp = client.get("/v1/me/stats", headers=auth(student))

    assert resp.json() == {
        "total_enrollments": 1,
        "completed_courses": 1,
        "total_certificates": 1,
        "total_learning_hours": 0,
    }
