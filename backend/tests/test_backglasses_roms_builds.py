"""Tests for backglasses, ROMs and builds"""
from fastapi.testclient import TestClient


def test_create_backglass(client: TestClient, member, game, headers):
    response = client.post("/v1/backglasses", json={"game_id": game.id, "description": "Original"},
                           headers=headers(member))
    assert response.status_code == 201
    assert response.json()["moderation"]["is_approved"] is False

    response = client.post(f"/v1/games/{game.id}/backglasses", json={}, headers=headers(member))
    assert response.status_code == 201
    assert response.json()["game"]["id"] == game.id


def test_create_backglass_needs_game(client: TestClient, member, headers):
    response = client.post("/v1/backglasses", json={}, headers=headers(member))
    assert response.status_code == 422
    assert response.json()["errors"][0]["path"] == "game_id"

    response = client.post("/v1/backglasses", json={"game_id": "nope"}, headers=headers(member))
    assert response.status_code == 422


def test_backglass_moderation(client: TestClient, member, moderator, contributor, game, headers):
    pending = client.post(f"/v1/games/{game.id}/backglasses", json={}, headers=headers(member)).json()
    approved = client.post(f"/v1/games/{game.id}/backglasses", json={}, headers=headers(contributor)).json()
    assert approved["moderation"]["auto_approved"] is True

    response = client.get(f"/v1/games/{game.id}/backglasses")
    assert [b["id"] for b in response.json()] == [approved["id"]]
    assert client.get(f"/v1/backglasses/{pending['id']}").status_code == 404

    response = client.post(f"/v1/backglasses/{pending['id']}/moderate", json={"action": "approve"},
                           headers=headers(moderator))
    assert response.status_code == 200

    response = client.get(f"/v1/games/{game.id}/backglasses")
    assert response.headers["X-Cache-Api"] == "MISS"
    assert len(response.json()) == 2


def test_update_and_delete_backglass(client: TestClient, member, moderator, create_user, game, headers):
    backglass = client.post(f"/v1/games/{game.id}/backglasses", json={}, headers=headers(member)).json()
    stranger = create_user("stranger")
    path = f"/v1/backglasses/{backglass['id']}"

    assert client.patch(path, json={"description": "Mine"}, headers=headers(stranger)).status_code == 403
    response = client.patch(path, json={"description": "Updated"}, headers=headers(member))
    assert response.status_code == 200
    assert response.json()["description"] == "Updated"

    assert client.delete(path, headers=headers(stranger)).status_code == 403
    assert client.delete(path, headers=headers(moderator)).status_code == 204
    assert client.get(path, headers=headers(moderator)).status_code == 404


def test_create_rom(client: TestClient, member, contributor, game, headers):
    body = {"id": "tz_94h", "version": "9.4H", "language": "English"}
    assert client.post(f"/v1/games/{game.id}/roms", json=body, headers=headers(member)).status_code == 403

    response = client.post(f"/v1/games/{game.id}/roms", json=body, headers=headers(contributor))
    assert response.status_code == 201
    assert response.json()["game"]["id"] == game.id
    assert response.json()["moderation"]["is_approved"] is False

    response = client.post(f"/v1/games/{game.id}/roms", json=body, headers=headers(contributor))
    assert response.status_code == 422

    assert client.get("/v1/roms/tz_94h").status_code == 404
    assert client.get("/v1/roms/tz_94h", headers=headers(contributor)).status_code == 200


def test_rom_moderation(client: TestClient, contributor, moderator, game, headers):
    client.post(f"/v1/games/{game.id}/roms", json={"id": "tz_92"}, headers=headers(contributor))
    assert client.get(f"/v1/games/{game.id}/roms").json() == []

    response = client.post("/v1/roms/tz_92/moderate", json={"action": "approve"}, headers=headers(moderator))
    assert response.status_code == 200
    assert [r["id"] for r in client.get(f"/v1/games/{game.id}/roms").json()] == ["tz_92"]

    response = client.post("/v1/roms/tz_92/moderate", json={"action": "moderate", "message": "Check the dump."},
                           headers=headers(moderator))
    assert response.status_code == 200
    assert response.json()["is_approved"] is False
    assert [item["event"] for item in response.json()["history"]] == ["pending", "approved"]
    assert client.get("/v1/roms").json() == []

    response = client.get("/v1/roms?moderation=pending", headers=headers(moderator))
    assert [r["id"] for r in response.json()] == ["tz_92"]


def test_delete_rom(client: TestClient, contributor, create_user, game, headers):
    client.post(f"/v1/games/{game.id}/roms", json={"id": "tz_94h"}, headers=headers(contributor))
    other = create_user("other", roles=["contributor"])

    assert client.delete("/v1/roms/tz_94h", headers=headers(other)).status_code == 403
    assert client.delete("/v1/roms/tz_94h", headers=headers(contributor)).status_code == 204
    assert client.get("/v1/roms/tz_94h").status_code == 404


BUILD = {"label": "v10.7.0 Beta", "major_version": "10", "type": "nightly", "built_at": "2021-05-01T00:00:00"}


def test_create_build(client: TestClient, member, headers):
    response = client.post("/v1/builds", json=BUILD, headers=headers(member))
    assert response.status_code == 201
    assert response.json()["id"] == "v10-7-0-beta"

    response = client.post("/v1/builds", json=BUILD, headers=headers(member))
    assert response.status_code == 422
    assert response.json()["errors"][0]["path"] == "label"

    assert client.post("/v1/builds", json={**BUILD, "label": "Other", "type": "stable"},
                       headers=headers(member)).status_code == 422


def test_list_builds(client: TestClient, member, moderator, headers):
    client.post("/v1/builds", json=BUILD, headers=headers(member))
    client.post("/v1/builds", json={**BUILD, "label": "v10.6.0", "built_at": "2020-01-01T00:00:00"},
                headers=headers(member))

    assert [b["id"] for b in client.get("/v1/builds").json()] == ["v10-7-0-beta", "v10-6-0"]

    response = client.patch("/v1/builds/v10-6-0", json={"is_active": False}, headers=headers(moderator))
    assert response.status_code == 200

    assert [b["id"] for b in client.get("/v1/builds").json()] == ["v10-7-0-beta"]
    assert len(client.get("/v1/builds?include_inactive=true").json()) == 2


def test_update_build(client: TestClient, member, moderator, headers):
    client.post("/v1/builds", json=BUILD, headers=headers(member))

    assert client.patch("/v1/builds/v10-7-0-beta", json={"label": "Mine"}, headers=headers(member)).status_code == 403
    assert client.patch("/v1/builds/v10-7-0-beta", json={"platform": "fp"}, headers=headers(moderator)).status_code == 400


def test_delete_build(client: TestClient, member, create_user, moderator, headers):
    client.post("/v1/builds", json=BUILD, headers=headers(member))
    other = create_user("other")

    assert client.delete("/v1/builds/v10-7-0-beta", headers=headers(other)).status_code == 403
    assert client.delete("/v1/builds/v10-7-0-beta", headers=headers(member)).status_code == 204
    assert client.get("/v1/builds/v10-7-0-beta").status_code == 404
