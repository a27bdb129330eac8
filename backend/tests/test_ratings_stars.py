"""Tests for ratings and stars"""
from fastapi.testclient import TestClient


def test_rate_game(client: TestClient, db, create_user, member, game, headers):
    response = client.post(f"/v1/games/{game.id}/rating", json={"value": 8}, headers=headers(member))
    assert response.status_code == 201
    assert response.json()["game"] == {"average": 8.0, "votes": 1}

    other = create_user("other")
    response = client.post(f"/v1/games/{game.id}/rating", json={"value": 6}, headers=headers(other))
    assert response.json()["game"] == {"average": 7.0, "votes": 2}

    db.refresh(game)
    assert game.rating_votes == 2


def test_rate_twice(client: TestClient, member, game, headers):
    client.post(f"/v1/games/{game.id}/rating", json={"value": 8}, headers=headers(member))
    response = client.post(f"/v1/games/{game.id}/rating", json={"value": 9}, headers=headers(member))
    assert response.status_code == 400
    assert "PUT" in response.json()["error"]


def test_rate_invalid_value(client: TestClient, member, game, headers):
    response = client.post(f"/v1/games/{game.id}/rating", json={"value": 11}, headers=headers(member))
    assert response.status_code == 422


def test_update_view_and_delete_rating(client: TestClient, member, game, headers):
    path = f"/v1/games/{game.id}/rating"
    assert client.put(path, json={"value": 3}, headers=headers(member)).status_code == 404
    assert client.get(path, headers=headers(member)).status_code == 404

    client.post(path, json={"value": 8}, headers=headers(member))
    response = client.put(path, json={"value": 3}, headers=headers(member))
    assert response.status_code == 200
    assert response.json()["game"] == {"average": 3.0, "votes": 1}

    assert client.get(path, headers=headers(member)).json()["value"] == 3
    assert client.delete(path, headers=headers(member)).status_code == 204
    assert client.get(f"/v1/games/{game.id}").json()["rating"] == {"average": 0.0, "votes": 0}


def test_rate_release(client: TestClient, member, contributor, game, headers):
    release = client.post("/v1/releases", json={"game_id": game.id, "name": "Test release"},
                          headers=headers(contributor)).json()

    response = client.post(f"/v1/releases/{release['id']}/rating", json={"value": 10}, headers=headers(member))
    assert response.status_code == 201
    assert response.json()["release"] == {"average": 10.0, "votes": 1}


def test_rate_needs_community_scope(client: TestClient, member, game, headers):
    response = client.post(f"/v1/games/{game.id}/rating", json={"value": 8}, headers=headers(member, ["login"]))
    assert response.status_code == 401

    response = client.post(f"/v1/games/{game.id}/rating", json={"value": 8}, headers=headers(member, ["community"]))
    assert response.status_code == 201


def test_star_game(client: TestClient, member, game, headers):
    path = f"/v1/games/{game.id}/star"
    assert client.get(path, headers=headers(member)).status_code == 404

    response = client.post(path, headers=headers(member))
    assert response.status_code == 201
    assert response.json()["total_stars"] == 1

    assert client.post(path, headers=headers(member)).status_code == 400
    assert client.get(path, headers=headers(member)).status_code == 200

    assert client.delete(path, headers=headers(member)).status_code == 204
    assert client.delete(path, headers=headers(member)).status_code == 400
    assert client.get(f"/v1/games/{game.id}").json()["counter"]["stars"] == 0


def test_star_pending_release(client: TestClient, create_user, member, game, headers):
    """Releases only visible to their author can't be starred by others"""
    release = client.post("/v1/releases", json={"game_id": game.id, "name": "Test release"},
                          headers=headers(member)).json()
    stranger = create_user("stranger")

    assert client.post(f"/v1/releases/{release['id']}/star", headers=headers(stranger)).status_code == 404


def test_starred_flag(client: TestClient, member, contributor, game, headers):
    release = client.post("/v1/releases", json={"game_id": game.id, "name": "Test release"},
                          headers=headers(contributor)).json()
    client.post(f"/v1/releases/{release['id']}/star", headers=headers(member))

    assert client.get(f"/v1/releases/{release['id']}", headers=headers(member)).json()["starred"] is True
    assert client.get(f"/v1/releases/{release['id']}", headers=headers(contributor)).json()["starred"] is False
    assert client.get(f"/v1/releases/{release['id']}").json()["starred"] is None


def test_star_user(client: TestClient, member, contributor, headers):
    response = client.post(f"/v1/users/{contributor.id}/star", headers=headers(member))
    assert response.status_code == 201
    assert response.json()["total_stars"] == 1


def test_star_unknown_entity(client: TestClient, member, headers):
    assert client.post("/v1/games/nope/star", headers=headers(member)).status_code == 404
