"""Tests for game endpoints"""
from fastapi.testclient import TestClient

from vpdb.models.game import Game

GAME = {"id": "afm", "title": "Attack from Mars", "year": 1995, "manufacturer": "Bally", "game_type": "ss"}


def test_create_game(client: TestClient, contributor, headers):
    response = client.post("/v1/games", json=GAME, headers=headers(contributor))
    assert response.status_code == 201

    data = response.json()
    assert data["id"] == "afm"
    assert data["counter"] == {"releases": 0, "stars": 0, "views": 0}
    assert data["releases"] == []


def test_create_game_requires_permission(client: TestClient, member, headers):
    assert client.post("/v1/games", json=GAME).status_code == 401
    assert client.post("/v1/games", json=GAME, headers=headers(member)).status_code == 403


def test_create_game_duplicate_id(client: TestClient, contributor, game, headers):
    response = client.post("/v1/games", json={**GAME, "id": game.id}, headers=headers(contributor))
    assert response.status_code == 422
    assert response.json()["errors"][0]["path"] == "id"


def test_create_game_invalid_body(client: TestClient, contributor, headers):
    response = client.post("/v1/games", json={**GAME, "year": 1700}, headers=headers(contributor))
    assert response.status_code == 422
    assert response.json()["errors"][0]["path"] == "year"


def test_list_games(client: TestClient, db, game):
    db.add(Game(id="afm", title="Attack from Mars", year=1995, manufacturer="Bally"))
    db.add(Game(id="mm", title="Medieval Madness", year=1997, manufacturer="Williams"))
    db.commit()

    response = client.get("/v1/games")
    assert response.status_code == 200
    assert [g["id"] for g in response.json()] == ["afm", "mm", "tz"]
    assert response.headers["X-List-Count"] == "3"

    response = client.get("/v1/games?q=mars")
    assert [g["id"] for g in response.json()] == ["afm"]

    response = client.get("/v1/games?mfg=Williams,Midway&sort=-year")
    assert [g["id"] for g in response.json()] == ["mm", "tz"]


def test_list_games_short_query(client: TestClient):
    response = client.get("/v1/games?q=a")
    assert response.status_code == 400


def test_list_games_pagination(client: TestClient, db):
    for i in range(5):
        db.add(Game(id=f"game-{i}", title=f"Game {i}"))
    db.commit()

    response = client.get("/v1/games?per_page=2&page=2")
    assert [g["id"] for g in response.json()] == ["game-2", "game-3"]
    assert response.headers["X-List-Page"] == "2"
    assert response.headers["X-List-Size"] == "2"
    assert 'rel="next"' in response.headers["Link"]
    assert 'rel="prev"' in response.headers["Link"]


def test_view_game(client: TestClient, game):
    response = client.get(f"/v1/games/{game.id}")
    assert response.status_code == 200
    assert response.json()["title"] == "The Twilight Zone"
    assert response.json()["counter"]["views"] == 1


def test_view_game_counts_cached_views(client: TestClient, db, game):
    views = [client.get(f"/v1/games/{game.id}") for _ in range(3)]
    assert [r.headers["X-Cache-Api"] for r in views] == ["MISS", "HIT", "HIT"]
    assert [r.json()["counter"]["views"] for r in views] == [1, 2, 3]

    db.refresh(game)
    assert game.counter_views == 3


def test_head_game_is_not_a_view(client: TestClient, db, game):
    client.get(f"/v1/games/{game.id}")
    assert client.head(f"/v1/games/{game.id}").status_code == 200

    db.refresh(game)
    assert game.counter_views == 1


def test_view_game_not_found(client: TestClient):
    response = client.get("/v1/games/nope")
    assert response.status_code == 404
    assert response.json()["error"] == 'No game with ID "nope" found.'


def test_head_game(client: TestClient, game):
    assert client.head(f"/v1/games/{game.id}").status_code == 200
    assert client.head("/v1/games/nope").status_code == 404


def test_update_game(client: TestClient, contributor, game, headers):
    response = client.patch(f"/v1/games/{game.id}", json={"title": "Twilight Zone", "year": 1993},
                            headers=headers(contributor))
    assert response.status_code == 200
    assert response.json()["title"] == "Twilight Zone"


def test_update_game_read_only_field(client: TestClient, contributor, game, headers):
    response = client.patch(f"/v1/games/{game.id}", json={"id": "other"}, headers=headers(contributor))
    assert response.status_code == 422
    assert response.json()["errors"][0]["path"] == "id"

    # unchanged read-only fields are fine
    response = client.patch(f"/v1/games/{game.id}", json={"id": game.id, "title": "TZ"}, headers=headers(contributor))
    assert response.status_code == 200


def test_delete_game(client: TestClient, db, moderator, contributor, game, headers):
    assert client.delete(f"/v1/games/{game.id}", headers=headers(contributor)).status_code == 403
    assert client.delete(f"/v1/games/{game.id}", headers=headers(moderator)).status_code == 204
    assert client.get(f"/v1/games/{game.id}").status_code == 404


def test_delete_game_with_releases(client: TestClient, moderator, contributor, game, headers):
    client.post("/v1/releases", json={"game_id": game.id, "name": "First release"}, headers=headers(contributor))
    response = client.delete(f"/v1/games/{game.id}", headers=headers(moderator))
    assert response.status_code == 400
    assert response.json()["error"] == "Cannot delete game with 1 release attached."
