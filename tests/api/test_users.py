from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from lms.models.user import Role
from lms.repos.gateway import InMemoryGateway
from lms.services import token_service
from tests.conftest import auth, make_course, make_user


def test_me_returns_profile(client: TestClient, gateway: InMemoryGateway) -> None:
    student = make_user(gateway)
    resp = client.get("/v1/me", headers=auth(student))
    assert resp.status_code == 200
    assert resp.json()["id"] == str(student.id)
    assert resp.json()["role"] == "STUDENT"


def test_invalid_token_is_401(client: TestClient) -> None:
    resp = client.get("/v1/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "unauthorized"


def test_expired_token_is_401(client: TestClient, gateway: InMemoryGateway) -> None:
    student = make_user(gateway)
    token = token_service.create_access_token(sub=str(student.id), ttl_minutes=-1)
    resp = client.get("/v1/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token expired"


def test_token_for_unknown_user_is_401(client: TestClient) -> None:
    token = token_service.create_access_token(sub=str(uuid4()))
    resp = client.get("/v1/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_invalid_token_rejected_even_on_public_route(
    client: TestClient, gateway: InMemoryGateway
) -> None:
    """A presented token must be valid; it is never silently ignored."""
    course = make_course(gateway, make_user(gateway, Role.INSTRUCTOR))
    resp = client.get(
        f"/v1/courses/{course.id}", headers={"Authorization": "Bearer garbage"}
    )
    assert resp.status_code == 401


def test_role_change_applies_on_next_request(
    client: TestClient, gateway: InMemoryGateway
) -> None:
    """Role is read from the store per request, not baked into the token."""
    user = make_user(gateway)
    headers = auth(user)

    denied = client.post("/v1/courses", json={"title": "Mine"}, headers=headers)
    assert denied.status_code == 403

    resp = client.patch("/v1/me/role", json={"role": "INSTRUCTOR"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["role"] == "INSTRUCTOR"

    allowed = client.post("/v1/courses", json={"title": "Mine"}, headers=headers)
    assert allowed.status_code == 201


def test_demoted_owner_loses_edit_rights(
    client: TestClient, gateway: InMemoryGateway
) -> None:
    owner = make_user(gateway, Role.INSTRUCTOR)
    course = make_course(gateway, owner)
    admin = make_user(gateway, Role.ADMIN)

    client.patch(
        f"/v1/users/{owner.id}/role", json={"role": "STUDENT"}, headers=auth(admin)
    )

    resp = client.patch(
        f"/v1/courses/{course.id}", json={"title": "Nope"}, headers=auth(owner)
    )
    assert resp.status_code == 403


def test_self_assign_admin_is_403(client: TestClient, gateway: InMemoryGateway) -> None:
    resp = client.patch(
        "/v1/me/role", json={"role": "ADMIN"}, headers=auth(make_user(gateway))
    )
    assert resp.status_code == 403


def test_unknown_role_is_422(client: TestClient, gateway: InMemoryGateway) -> None:
    resp = client.patch(
        "/v1/me/role", json={"role": "OWNER"}, headers=auth(make_user(gateway))
    )
    assert resp.status_code == 422
