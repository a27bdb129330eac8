"""Tests for activity log events"""
from fastapi.testclient import TestClient

from vpdb.models.log_event import LogEvent


def test_events_are_logged(client: TestClient, db, contributor, headers):
    client.post("/v1/games", json={"id": "afm", "title": "Attack from Mars"}, headers=headers(contributor))

    event = db.query(LogEvent).one()
    assert event.event == "create_game"
    assert event.payload["game"]["id"] == "afm"
    assert event.actor_pk == contributor.pk
    assert event.ip


def test_list_public_events(client: TestClient, member, contributor, game, headers):
    client.post("/v1/releases", json={"game_id": game.id, "name": "Approved"}, headers=headers(contributor))
    client.post("/v1/releases", json={"game_id": game.id, "name": "Pending"}, headers=headers(member))

    response = client.get("/v1/events")
    assert response.status_code == 200
    events = response.json()
    assert [e["payload"]["release"]["name"] for e in events] == ["Approved"]
    assert events[0]["ip"] is None
    assert events[0]["actor"]["id"] == contributor.id


def test_filter_events(client: TestClient, member, contributor, game, headers):
    client.post("/v1/releases", json={"game_id": game.id, "name": "Approved"}, headers=headers(contributor))
    client.post(f"/v1/games/{game.id}/star", headers=headers(member))

    response = client.get("/v1/events?events=star_game")
    assert [e["event"] for e in response.json()] == ["star_game"]

    response = client.get(f"/v1/games/{game.id}/events")
    assert [e["event"] for e in response.json()] == ["star_game", "create_release"]


def test_release_events_of_pending_release(client: TestClient, member, game, headers):
    release = client.post("/v1/releases", json={"game_id": game.id, "name": "Pending"}, headers=headers(member)).json()

    assert client.get(f"/v1/releases/{release['id']}/events").status_code == 404
    assert client.get(f"/v1/releases/{release['id']}/events", headers=headers(member)).status_code == 200


def test_user_events(client: TestClient, member, admin, headers):
    client.patch("/v1/profile", json={"name": "Renamed"}, headers=headers(member))

    assert client.get(f"/v1/users/{member.id}/events", headers=headers(member)).status_code == 403

    response = client.get(f"/v1/users/{member.id}/events", headers=headers(admin))
    assert response.status_code == 200
    events = response.json()
    assert [e["event"] for e in events] == ["update_user"]
    assert events[0]["is_public"] is False
    assert events[0]["ip"] is not None


def test_profile_events(client: TestClient, member, headers):
    client.patch("/v1/profile", json={"name": "Renamed"}, headers=headers(member))

    response = client.get("/v1/profile/events", headers=headers(member))
    assert [e["event"] for e in response.json()] == ["update_user"]
    assert response.json()[0]["ip"] is None
