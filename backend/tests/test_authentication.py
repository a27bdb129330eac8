"""Tests for request authentication and login"""
import time
from datetime import datetime, timedelta

from fastapi.testclient import TestClient

from vpdb.models.token import Token
from vpdb.models.user import UserProvider
from vpdb.utils.auth import generate_app_token, generate_id
from vpdb.utils.jwt_utils import create_api_token, create_storage_token

from conftest import PASSWORD, bearer


def _app_token(db, user, token_type="personal", scopes=None, provider=None, **kwargs):
    token = Token(
        id=generate_id(),
        token=generate_app_token(),
        label="Test token",
        type=token_type,
        scopes=scopes or ["all"],
        provider=provider,
        expires_at=kwargs.pop("expires_at", datetime.utcnow() + timedelta(days=1)),
        created_by_pk=user.pk,
        **kwargs,
    )
    db.add(token)
    db.commit()
    return token


def test_jwt_authentication(client: TestClient, member, headers):
    """A valid JWT identifies the user and comes back refreshed"""
    response = client.get("/v1/profile", headers=headers(member))
    assert response.status_code == 200
    assert response.json()["id"] == member.id
    assert response.headers["X-User-Id"] == member.id
    assert "X-Token-Refresh" in response.headers


def test_missing_credentials(client: TestClient):
    response = client.get("/v1/profile")
    assert response.status_code == 401
    assert "provide credentials" in response.json()["error"]


def test_bad_authorization_header(client: TestClient):
    response = client.get("/v1/profile", headers={"Authorization": "Token abc"})
    assert response.status_code == 401
    assert response.json()["error"].startswith("Bad Authorization header")


def test_expired_jwt(client: TestClient, member):
    token = create_api_token(member.id, now=int(time.time()) - 7200)
    response = client.get("/v1/profile", headers=bearer(token))
    assert response.status_code == 401
    assert response.json()["error"] == "Token has expired"


def test_forged_jwt(client: TestClient, member):
    token = create_api_token(member.id)[:-4] + "abcd"
    response = client.get("/v1/profile", headers=bearer(token))
    assert response.status_code == 401
    assert response.json()["error"] == "Bad JSON Web Token"


def test_bad_credential_on_public_route(client: TestClient):
    """Public routes work without credentials but reject bad ones"""
    assert client.get("/v1/games").status_code == 200
    response = client.get("/v1/games", headers=bearer("not-a-jwt"))
    assert response.status_code == 401


def test_unrestricted_token_in_url(client: TestClient, member):
    response = client.get(f"/v1/profile?token={create_api_token(member.id)}")
    assert response.status_code == 401
    assert "query parameter" in response.json()["error"]


def test_storage_token_wrong_path(client: TestClient, member):
    token = create_storage_token(member.id, "/storage/v1/files/abc")
    response = client.get(f"/v1/profile?token={token}")
    assert response.status_code == 401
    assert response.json()["error"].startswith('Token is only valid for "GET/HEAD /storage/v1/files/abc"')


def test_storage_token_wrong_scope(client: TestClient, member):
    """A storage token on its path still needs a matching scope"""
    token = create_storage_token(member.id, "/v1/profile")
    response = client.get(f"/v1/profile?token={token}")
    assert response.status_code == 401
    assert "invalid scope" in response.json()["error"]


def test_personal_token(client: TestClient, db, subscriber):
    token = _app_token(db, subscriber)
    response = client.get("/v1/profile", headers=bearer(token.token))
    assert response.status_code == 200
    assert "X-Token-Refresh" not in response.headers

    db.refresh(token)
    assert token.last_used_at is not None


def test_personal_token_plan_disabled(client: TestClient, db, member):
    token = _app_token(db, member)
    response = client.get("/v1/profile", headers=bearer(token.token))
    assert response.status_code == 401
    assert "does not allow the use of personal tokens" in response.json()["error"]


def test_personal_token_expired_or_inactive(client: TestClient, db, subscriber):
    expired = _app_token(db, subscriber, expires_at=datetime.utcnow() - timedelta(minutes=1))
    inactive = _app_token(db, subscriber, is_active=False)

    response = client.get("/v1/profile", headers=bearer(expired.token))
    assert response.status_code == 401
    assert response.json()["error"] == "Application token has expired."

    response = client.get("/v1/profile", headers=bearer(inactive.token))
    assert response.status_code == 401
    assert response.json()["error"] == "Token is inactive."


def test_app_token_in_url(client: TestClient, db, subscriber):
    token = _app_token(db, subscriber)
    response = client.get(f"/v1/profile?token={token.token}")
    assert response.status_code == 401
    assert response.json()["error"] == "Application tokens must be provided in the header."


def test_unknown_app_token(client: TestClient):
    response = client.get("/v1/profile", headers=bearer("a" * 32))
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid application token."


def test_application_token_needs_user_header(client: TestClient, db, admin, member):
    token = _app_token(db, admin, token_type="application", scopes=["community"], provider="github")
    response = client.post("/v1/games/unknown/star", headers=bearer(token.token))
    assert response.status_code == 400
    assert response.json()["error"].startswith("Must provide")


def test_application_token_acts_as_provider_user(client: TestClient, db, admin, member, game):
    db.add(UserProvider(user_pk=member.pk, provider="github", provider_id="1234", name="octocat"))
    db.commit()
    token = _app_token(db, admin, token_type="application", scopes=["community"], provider="github")

    response = client.post(f"/v1/games/{game.id}/star", headers={**bearer(token.token), "X-User-Id": "1234"})
    assert response.status_code == 201
    assert response.headers["X-User-Id"] == member.id

    response = client.get(f"/v1/games/{game.id}/star", headers={**bearer(token.token), "X-Vpdb-User-Id": member.id})
    assert response.status_code == 200


def test_application_token_other_provider(client: TestClient, db, admin, member, game):
    token = _app_token(db, admin, token_type="application", scopes=["community"], provider="google")
    response = client.post(f"/v1/games/{game.id}/star", headers={**bearer(token.token), "X-Vpdb-User-Id": member.id})
    assert response.status_code == 400
    assert "has not been authenticated with google" in response.json()["error"]


def test_authenticate_with_password(client: TestClient, member):
    response = client.post("/v1/authenticate", json={"username": "member", "password": PASSWORD})
    assert response.status_code == 200

    data = response.json()
    assert data["user"]["id"] == member.id
    assert client.get("/v1/profile", headers=bearer(data["token"])).status_code == 200


def test_authenticate_wrong_password(client: TestClient, member):
    response = client.post("/v1/authenticate", json={"username": "member", "password": "nope"})
    assert response.status_code == 401
    assert response.json()["error"] == "Wrong username or password."


def test_authenticate_without_credentials(client: TestClient):
    response = client.post("/v1/authenticate", json={})
    assert response.status_code == 400


def test_authenticate_inactive_user(client: TestClient, create_user):
    create_user("sleeper", is_active=False)
    response = client.post("/v1/authenticate", json={"username": "sleeper", "password": PASSWORD})
    assert response.status_code == 403


def test_authenticate_with_login_token(client: TestClient, db, subscriber):
    login = _app_token(db, subscriber, scopes=["login"])
    response = client.post("/v1/authenticate", json={"token": login.token})
    assert response.status_code == 200
    assert response.json()["user"]["id"] == subscriber.id


def test_authenticate_login_token_rules(client: TestClient, db, subscriber, admin):
    all_scopes = _app_token(db, subscriber, scopes=["all", "login"])
    application = _app_token(db, admin, token_type="application", scopes=["community"], provider="github")

    response = client.post("/v1/authenticate", json={"token": "not-hex"})
    assert response.status_code == 400
    assert response.json()["error"] == "Incorrect login token."

    response = client.post("/v1/authenticate", json={"token": "b" * 32})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid token."

    response = client.post("/v1/authenticate", json={"token": all_scopes.token})
    assert response.status_code == 401
    assert "exclusively" in response.json()["error"]

    response = client.post("/v1/authenticate", json={"token": application.token})
    assert response.status_code == 401


def test_storage_authenticate(client: TestClient, member, headers):
    response = client.post(
        "/storage/v1/authenticate",
        json={"paths": ["/storage/v1/files/a", "/storage/v1/files/b"]},
        headers=headers(member),
    )
    assert response.status_code == 200
    assert set(response.json()) == {"/storage/v1/files/a", "/storage/v1/files/b"}
