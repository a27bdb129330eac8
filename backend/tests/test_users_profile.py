"""Tests for users, provider users and the profile"""
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from vpdb.models.token import Token
from vpdb.models.user import User
from vpdb.utils.auth import generate_app_token, generate_id

from conftest import PASSWORD, bearer


@pytest.fixture
def provider_headers(db, admin):
    """Headers of a github application token"""
    token = Token(
        id=generate_id(),
        token=generate_app_token(),
        label="GitHub",
        type="application",
        scopes=["service", "community"],
        provider="github",
        expires_at=datetime.utcnow() + timedelta(days=1),
        created_by_pk=admin.pk,
    )
    db.add(token)
    db.commit()
    return bearer(token.token)


PROVIDER_USER = {"provider_id": 1234, "email": "octocat@github.test", "username": "octocat", "name": "The Octocat"}


def test_create_provider_user(client: TestClient, db, provider_headers):
    response = client.put("/v1/users", json=PROVIDER_USER, headers=provider_headers)
    assert response.status_code == 201

    data = response.json()
    assert data["username"] == "octocat"
    assert data["roles"] == ["member"]
    assert data["providers"] == {"github": {"id": "1234", "name": "The Octocat"}}

    response = client.put("/v1/users", json=PROVIDER_USER, headers=provider_headers)
    assert response.status_code == 200
    assert response.json()["id"] == data["id"]
    assert db.query(User).filter(User.email == "octocat@github.test").count() == 1


def test_provider_user_links_existing_email(client: TestClient, member, provider_headers):
    body = {**PROVIDER_USER, "email": member.email}
    response = client.put("/v1/users", json=body, headers=provider_headers)
    assert response.status_code == 200
    assert response.json()["id"] == member.id
    assert "github" in response.json()["providers"]


def test_provider_user_username_taken(client: TestClient, member, provider_headers):
    response = client.put("/v1/users", json={**PROVIDER_USER, "username": member.username}, headers=provider_headers)
    assert response.status_code == 422
    assert response.json()["errors"][0]["path"] == "username"


def test_provider_user_needs_service_token(client: TestClient, member, headers):
    response = client.put("/v1/users", json=PROVIDER_USER, headers=headers(member))
    assert response.status_code == 401
    assert "invalid scope" in response.json()["error"]


def test_search_users(client: TestClient, member, contributor, admin, headers):
    response = client.get("/v1/users?q=contrib", headers=headers(member))
    assert response.status_code == 200
    assert [u["id"] for u in response.json()] == [contributor.id]
    assert "email" not in response.json()[0]

    assert client.get("/v1/users?q=co", headers=headers(member)).status_code == 400
    assert client.get("/v1/users", headers=headers(member)).status_code == 403

    response = client.get("/v1/users", headers=headers(admin))
    assert response.status_code == 200
    assert len(response.json()) == 3
    assert "email" in response.json()[0]


def test_view_user(client: TestClient, member, admin, headers):
    response = client.get(f"/v1/users/{admin.id}", headers=headers(member))
    assert response.status_code == 200
    assert "roles" not in response.json()

    response = client.get(f"/v1/users/{member.id}", headers=headers(admin))
    assert response.json()["email"] == member.email

    assert client.get("/v1/users/nope", headers=headers(member)).status_code == 404


def _user_body(user, **changes):
    body = {"name": user.name, "username": user.username, "email": user.email, "roles": user.roles}
    body.update(changes)
    return body


def test_update_user(client: TestClient, member, admin, headers):
    response = client.patch(f"/v1/users/{member.id}", json=_user_body(member, roles=["member", "contributor"]),
                            headers=headers(admin))
    assert response.status_code == 200
    assert response.json()["roles"] == ["member", "contributor"]

    # the user is told their data changed, once
    response = client.get("/v1/profile", headers=headers(member))
    assert response.headers["X-User-Dirty"] == "1"
    assert "add" in response.json()["permissions"]["roms"]
    assert client.get("/v1/profile", headers=headers(member)).headers["X-User-Dirty"] == "0"


def test_update_user_validation(client: TestClient, member, contributor, admin, headers):
    path = f"/v1/users/{member.id}"
    assert client.patch(path, json=_user_body(member), headers=headers(contributor)).status_code == 403

    response = client.patch(path, json=_user_body(member, id="other"), headers=headers(admin))
    assert response.status_code == 422
    assert response.json()["errors"][0]["path"] == "id"

    response = client.patch(path, json=_user_body(member, roles=["wizard"]), headers=headers(admin))
    assert response.status_code == 422

    response = client.patch(path, json=_user_body(member, roles=["root"]), headers=headers(admin))
    assert response.status_code == 422
    assert response.json()["errors"][0]["message"] == "Only root users can grant the root role."

    response = client.patch(path, json=_user_body(member, plan="gold"), headers=headers(admin))
    assert response.status_code == 422

    response = client.patch(path, json=_user_body(member, email=contributor.email), headers=headers(admin))
    assert response.status_code == 422
    assert response.json()["errors"][0]["path"] == "email"


def test_root_grants_root(client: TestClient, member, root, headers):
    response = client.patch(f"/v1/users/{member.id}", json=_user_body(member, roles=["root"], plan="vip"),
                            headers=headers(root))
    assert response.status_code == 200
    assert response.json()["plan"] == "vip"


def test_view_profile(client: TestClient, member, headers):
    response = client.get("/v1/profile", headers=headers(member))
    assert response.status_code == 200

    data = response.json()
    assert data["email"] == member.email
    assert data["plan_config"]["id"] == "free"
    assert "add" in data["permissions"]["releases"]


def test_update_profile(client: TestClient, member, contributor, headers):
    response = client.patch("/v1/profile", json={"name": "New Name", "email": "new@vpdb.test"}, headers=headers(member))
    assert response.status_code == 200
    assert response.json()["name"] == "New Name"

    response = client.patch("/v1/profile", json={"email": contributor.email}, headers=headers(member))
    assert response.status_code == 422

    response = client.patch("/v1/profile", json={"username": "changed"}, headers=headers(member))
    assert response.status_code == 422

    response = client.patch("/v1/profile", json={"roles": ["root"]}, headers=headers(member))
    assert response.status_code == 400


def test_change_password(client: TestClient, member, headers):
    response = client.patch("/v1/profile", json={"password": "new-password"}, headers=headers(member))
    assert response.status_code == 422
    assert response.json()["errors"][0]["path"] == "current_password"

    response = client.patch("/v1/profile", json={"password": "new-password", "current_password": "wrong"},
                            headers=headers(member))
    assert response.status_code == 422

    response = client.patch("/v1/profile", json={"password": "new-password", "current_password": PASSWORD},
                            headers=headers(member))
    assert response.status_code == 200

    response = client.post("/v1/authenticate", json={"username": member.username, "password": "new-password"})
    assert response.status_code == 200


def test_create_local_account(client: TestClient, db, headers):
    user = User(id=generate_id(), name="Octocat", email="octocat@github.test", roles=["member"])
    db.add(user)
    db.commit()

    response = client.patch("/v1/profile", json={"password": "secret-password"}, headers=headers(user))
    assert response.status_code == 422
    assert response.json()["errors"][0]["path"] == "username"

    response = client.patch("/v1/profile", json={"username": "octocat", "password": "secret-password"},
                            headers=headers(user))
    assert response.status_code == 200
    assert response.json()["username"] == "octocat"

    response = client.post("/v1/authenticate", json={"username": "octocat", "password": "secret-password"})
    assert response.status_code == 200
