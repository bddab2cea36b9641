from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from lms.api.dependencies import get_enrollment_service
from lms.main import app
from lms.models.user import Role
from lms.repos.gateway import InMemoryGateway
from lms.services.enrollment_service import CheckoutResult
from tests.conftest import auth, make_course, make_intro_course, make_user


def test_enroll_free_course(client: TestClient, gateway: InMemoryGateway) -> None:
    course = make_course(gateway, make_user(gateway, Role.INSTRUCTOR))
    student = make_user(gateway)

    resp = client.post(f"/v1/courses/{course.id}/enroll", headers=auth(student))

    assert resp.status_code == 201
    assert resp.json()["course_id"] == str(course.id)
    assert resp.json()["user_id"] == str(student.id)


def test_enroll_paid_course_returns_402_with_course(
    client: TestClient, gateway: InMemoryGateway
) -> None:
    course = make_course(
        gateway, make_user(gateway, Role.INSTRUCTOR), price=Decimal("49.99")
    )
    student = make_user(gateway)

    resp = client.post(f"/v1/courses/{course.id}/enroll", headers=auth(student))

    assert resp.status_code == 402
    assert resp.json() == {
        "error": "payment_required",
        "detail": "Payment required",
        "course": {"id": str(course.id), "title": course.title, "price": "49.99"},
    }
    mine = client.get("/v1/me/enrollments", headers=auth(student))
    assert mine.json() == []


def test_enroll_paid_course_after_payment(
    client: TestClient, gateway: InMemoryGateway
) -> None:
    course = make_course(
        gateway, make_user(gateway, Role.INSTRUCTOR), price=Decimal("10")
    )
    student = make_user(gateway)

    resp = client.post(
        f"/v1/courses/{course.id}/enroll",
        json={"payment_completed": True},
        headers=auth(student),
    )
    assert resp.status_code == 201


def test_payment_flag_must_be_boolean(
    client: TestClient, gateway: InMemoryGateway
) -> None:
    course = make_course(
        gateway, make_user(gateway, Role.INSTRUCTOR), price=Decimal("10")
    )
    resp = client.post(
        f"/v1/courses/{course.id}/enroll",
        json={"payment_completed": "yes"},
        headers=auth(make_user(gateway)),
    )
    assert resp.status_code == 422


def test_enroll_twice_is_409(client: TestClient, gateway: InMemoryGateway) -> None:
    course = make_course(gateway, make_user(gateway, Role.INSTRUCTOR))
    student = make_user(gateway)

    client.post(f"/v1/courses/{course.id}/enroll", headers=auth(student))
    resp = client.post(f"/v1/courses/{course.id}/enroll", headers=auth(student))

    assert resp.status_code == 409
    assert resp.json()["error"] == "conflict"


def test_owner_self_enroll_is_403(client: TestClient, gateway: InMemoryGateway) -> None:
    owner = make_user(gateway, Role.INSTRUCTOR)
    course = make_course(gateway, owner)

    resp = client.post(f"/v1/courses/{course.id}/enroll", headers=auth(owner))
    assert resp.status_code == 403


def test_enroll_requires_auth(client: TestClient, gateway: InMemoryGateway) -> None:
    course = make_course(gateway, make_user(gateway, Role.INSTRUCTOR))
    resp = client.post(f"/v1/courses/{course.id}/enroll")
    assert resp.status_code == 401


def test_unenroll(client: TestClient, gateway: InMemoryGateway) -> None:
    course = make_course(gateway, make_user(gateway, Role.INSTRUCTOR))
    student = make_user(gateway)
    client.post(f"/v1/courses/{course.id}/enroll", headers=auth(student))

    resp = client.delete(f"/v1/courses/{course.id}/enroll", headers=auth(student))
    assert resp.status_code == 204

    again = client.delete(f"/v1/courses/{course.id}/enroll", headers=auth(student))
    assert again.status_code == 404


def test_purchase_paid_course_returns_session(
    client: TestClient, gateway: InMemoryGateway
) -> None:
    course = make_course(
        gateway, make_user(gateway, Role.INSTRUCTOR), price=Decimal("25.00")
    )
    student = make_user(gateway)

    resp = client.post(f"/v1/courses/{course.id}/purchase", headers=auth(student))

    assert resp.status_code == 200
    body = resp.json()
    assert body["enrollment"] is None
    session = body["payment_session"]
    assert session["status"] == "pending"
    assert session["currency"] == "usd"
    assert Decimal(session["amount"]) == Decimal("25.00")


def test_purchase_free_course_enrolls(
    client: TestClient, gateway: InMemoryGateway
) -> None:
    course = make_course(gateway, make_user(gateway, Role.INSTRUCTOR))
    student = make_user(gateway)

    resp = client.post(f"/v1/courses/{course.id}/purchase", headers=auth(student))

    assert resp.status_code == 200
    assert resp.json()["payment_session"] is None
    assert resp.json()["enrollment"]["course_id"] == str(course.id)


def test_my_enrollments_shows_progress(
    client: TestClient, gateway: InMemoryGateway
) -> None:
    course, lessons = make_intro_course(gateway, make_user(gateway, Role.INSTRUCTOR))
    student = make_user(gateway)
    client.post(f"/v1/courses/{course.id}/enroll", headers=auth(student))
    client.put(
        f"/v1/lessons/{lessons[0].id}/progress",
        json={"is_completed": True},
        headers=auth(student),
    )

    resp = client.get("/v1/me/enrollments", headers=auth(student))

    [row] = resp.json()
    assert row["course"]["id"] == str(course.id)
    assert (row["completed_lessons"], row["total_lessons"], row["progress"]) == (
        1,
        2,
        50,
    )


def test_purchase_with_empty_checkout_is_a_server_error(
    client: TestClient, gateway: InMemoryGateway
) -> None:
    class EmptyCheckout:
        async def start_checkout(self, principal, course_id) -> CheckoutResult:
            return CheckoutResult()

    student = make_user(gateway)
    app.dependency_overrides[get_enrollment_service] = EmptyCheckout
    try:
        with pytest.raises(RuntimeError, match="neither an enrollment nor a session"):
            client.post(f"/v1/courses/{uuid4()}/purchase", headers=auth(student))
    finally:
        app.dependency_overrides.pop(get_enrollment_service)
