"""Tests for releases and their moderation"""
from fastapi.testclient import TestClient

from vpdb.models.game import Game


def _create_release(client, game, user, headers, name="Test release"):
    response = client.post("/v1/releases", json={"game_id": game.id, "name": name}, headers=headers(user))
    assert response.status_code == 201
    return response.json()


def test_member_release_is_pending(client: TestClient, db, member, game, headers):
    release = _create_release(client, game, member, headers)
    assert release["moderation"]["is_approved"] is False
    assert release["moderation"]["history"] == []

    db.refresh(game)
    assert game.counter_releases == 0


def test_contributor_release_is_auto_approved(client: TestClient, db, contributor, game, headers):
    release = _create_release(client, game, contributor, headers)
    moderation = release["moderation"]
    assert moderation["is_approved"] is True
    assert moderation["auto_approved"] is True
    assert moderation["history"][0]["event"] == "approved"

    db.refresh(game)
    assert game.counter_releases == 1


def test_create_release_unknown_game(client: TestClient, member, headers):
    response = client.post("/v1/releases", json={"game_id": "nope", "name": "Test release"}, headers=headers(member))
    assert response.status_code == 422
    assert response.json()["errors"][0]["path"] == "game_id"


def test_pending_release_visibility(client: TestClient, create_user, member, moderator, game, headers):
    release = _create_release(client, game, member, headers)
    stranger = create_user("stranger")

    assert client.get(f"/v1/releases/{release['id']}").status_code == 404
    assert client.get(f"/v1/releases/{release['id']}", headers=headers(stranger)).status_code == 404

    response = client.get(f"/v1/releases/{release['id']}", headers=headers(member))
    assert response.status_code == 200
    assert "moderation" in response.json()

    assert client.get(f"/v1/releases/{release['id']}", headers=headers(moderator)).status_code == 200


def test_list_only_approved(client: TestClient, member, contributor, game, headers):
    _create_release(client, game, member, headers, "Pending release")
    _create_release(client, game, contributor, headers, "Approved release")

    response = client.get("/v1/releases")
    assert [r["name"] for r in response.json()] == ["Approved release"]


def test_list_moderation_filter(client: TestClient, member, moderator, contributor, game, headers):
    _create_release(client, game, member, headers, "Pending release")
    _create_release(client, game, contributor, headers, "Approved release")

    assert client.get("/v1/releases?moderation=pending").status_code == 401
    assert client.get("/v1/releases?moderation=pending", headers=headers(member)).status_code == 403
    assert client.get("/v1/releases?moderation=bogus", headers=headers(moderator)).status_code == 403

    response = client.get("/v1/releases?moderation=pending", headers=headers(moderator))
    assert [r["name"] for r in response.json()] == ["Pending release"]

    response = client.get("/v1/releases?moderation=auto_approved", headers=headers(moderator))
    assert [r["name"] for r in response.json()] == ["Approved release"]

    response = client.get("/v1/releases?moderation=all", headers=headers(moderator))
    assert len(response.json()) == 2


def test_approve_then_refuse(client: TestClient, db, member, moderator, game, headers):
    release = _create_release(client, game, member, headers)
    path = f"/v1/releases/{release['id']}/moderate"

    response = client.post(path, json={"action": "approve"}, headers=headers(moderator))
    assert response.status_code == 200
    assert response.json()["is_approved"] is True
    db.refresh(game)
    assert game.counter_releases == 1

    response = client.post(path, json={"action": "refuse", "message": "Broken table."}, headers=headers(moderator))
    assert response.status_code == 200

    data = response.json()
    assert data["is_approved"] is False
    assert data["is_refused"] is True
    assert [item["event"] for item in data["history"]] == ["refused", "approved"]
    assert data["history"][0]["message"] == "Broken table."

    db.expire_all()
    assert db.query(Game).filter(Game.pk == game.pk).one().counter_releases == 0


def test_moderate_validation(client: TestClient, member, moderator, game, headers):
    release = _create_release(client, game, member, headers)
    path = f"/v1/releases/{release['id']}/moderate"

    assert client.post(path, json={"action": "approve"}, headers=headers(member)).status_code == 403

    response = client.post(path, json={"action": "delete"}, headers=headers(moderator))
    assert response.status_code == 422
    assert response.json()["errors"][0]["path"] == "action"

    response = client.post(path, json={"action": "refuse"}, headers=headers(moderator))
    assert response.status_code == 422
    assert response.json()["errors"][0]["path"] == "message"


def test_update_release(client: TestClient, create_user, member, game, headers):
    release = _create_release(client, game, member, headers)
    stranger = create_user("stranger")
    path = f"/v1/releases/{release['id']}"

    assert client.patch(path, json={"name": "Renamed"}, headers=headers(stranger)).status_code == 403
    assert client.patch(path, json={"game_id": "other"}, headers=headers(member)).status_code == 400

    response = client.patch(path, json={"name": "Renamed"}, headers=headers(member))
    assert response.status_code == 200
    assert response.json()["name"] == "Renamed"


def test_delete_release(client: TestClient, db, contributor, game, headers):
    release = _create_release(client, game, contributor, headers)

    response = client.delete(f"/v1/releases/{release['id']}", headers=headers(contributor))
    assert response.status_code == 204

    db.expire_all()
    assert db.query(Game).filter(Game.pk == game.pk).one().counter_releases == 0
    assert client.get(f"/v1/releases/{release['id']}").status_code == 404


def test_game_lists_approved_releases(client: TestClient, member, contributor, game, headers):
    _create_release(client, game, member, headers, "Pending release")
    _create_release(client, game, contributor, headers, "Approved release")

    response = client.get(f"/v1/games/{game.id}")
    assert [r["name"] for r in response.json()["releases"]] == ["Approved release"]
