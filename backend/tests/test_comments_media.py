"""Tests for comments and media"""
import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def release(client: TestClient, contributor, game, headers) -> dict:
    response = client.post("/v1/releases", json={"game_id": game.id, "name": "Test release"}, headers=headers(contributor))
    return response.json()


def test_create_comment(client: TestClient, member, release, headers):
    path = f"/v1/releases/{release['id']}/comments"
    assert client.get(path).json() == []

    response = client.post(path, json={"message": "Great table!"}, headers=headers(member))
    assert response.status_code == 201
    assert response.json()["created_by"]["id"] == member.id

    response = client.get(path)
    assert response.headers["X-Cache-Api"] == "MISS"
    assert [c["message"] for c in response.json()] == ["Great table!"]
    assert client.get(f"/v1/releases/{release['id']}").json()["counter"]["comments"] == 1


def test_create_comment_validation(client: TestClient, member, release, headers):
    path = f"/v1/releases/{release['id']}/comments"
    assert client.post(path, json={"message": ""}, headers=headers(member)).status_code == 422
    assert client.post(path, json={"message": "Hi"}).status_code == 401
    assert client.post("/v1/releases/nope/comments", json={"message": "Hi"}, headers=headers(member)).status_code == 404


def test_comment_on_pending_release(client: TestClient, member, create_user, game, headers):
    pending = client.post("/v1/releases", json={"game_id": game.id, "name": "Pending"}, headers=headers(member)).json()
    stranger = create_user("stranger")
    path = f"/v1/releases/{pending['id']}/comments"

    assert client.post(path, json={"message": "Hi"}, headers=headers(stranger)).status_code == 404
    assert client.post(path, json={"message": "Hi"}, headers=headers(member)).status_code == 201


def test_update_comment(client: TestClient, member, moderator, create_user, release, headers):
    comment = client.post(f"/v1/releases/{release['id']}/comments", json={"message": "Typo"},
                          headers=headers(member)).json()
    stranger = create_user("stranger")
    path = f"/v1/comments/{comment['id']}"

    assert client.patch(path, json={"message": "Mine now"}, headers=headers(stranger)).status_code == 403
    assert client.patch(path, json={"release_id": "x"}, headers=headers(member)).status_code == 400

    response = client.patch(path, json={"message": "Fixed"}, headers=headers(member))
    assert response.status_code == 200
    assert response.json()["message"] == "Fixed"

    assert client.patch(path, json={"message": "Moderated"}, headers=headers(moderator)).status_code == 200


def test_create_medium(client: TestClient, member, game, headers):
    body = {"category": "playfield_image", "game_id": game.id, "description": "Full playfield"}
    response = client.post("/v1/media", json=body, headers=headers(member))
    assert response.status_code == 201

    medium = response.json()
    assert medium["game"]["id"] == game.id
    assert client.get(f"/v1/media/{medium['id']}").status_code == 200

    response = client.get(f"/v1/games/{game.id}/media?category=playfield_image")
    assert [m["id"] for m in response.json()] == [medium["id"]]
    assert client.get(f"/v1/games/{game.id}/media?category=wheel_image").json() == []


def test_create_medium_for_release(client: TestClient, member, release, headers):
    body = {"category": "gameplay_video", "release_id": release["id"]}
    response = client.post("/v1/media", json=body, headers=headers(member))
    assert response.status_code == 201
    assert response.json()["release"]["id"] == release["id"]


def test_create_medium_reference(client: TestClient, member, game, release, headers):
    body = {"category": "wheel_image"}
    assert client.post("/v1/media", json=body, headers=headers(member)).status_code == 422

    body = {"category": "wheel_image", "game_id": game.id, "release_id": release["id"]}
    assert client.post("/v1/media", json=body, headers=headers(member)).status_code == 422

    body = {"category": "wheel_image", "game_id": "nope"}
    assert client.post("/v1/media", json=body, headers=headers(member)).status_code == 422

    body = {"category": "backglass_image", "game_id": game.id}
    assert client.post("/v1/media", json=body, headers=headers(member)).status_code == 422


def test_delete_medium(client: TestClient, member, moderator, create_user, game, headers):
    medium = client.post("/v1/media", json={"category": "wheel_image", "game_id": game.id},
                         headers=headers(member)).json()
    client.get(f"/v1/games/{game.id}/media")
    stranger = create_user("stranger")

    assert client.delete(f"/v1/media/{medium['id']}", headers=headers(stranger)).status_code == 403
    assert client.delete(f"/v1/media/{medium['id']}", headers=headers(moderator)).status_code == 204
    assert client.get(f"/v1/media/{medium['id']}").status_code == 404
    assert client.get(f"/v1/games/{game.id}/media").json() == []
