"""Tests for info, roles, plans and the kill switch"""
import os
import signal
import threading

from fastapi.testclient import TestClient

from vpdb.api.response import api_router
from vpdb.config import settings
from vpdb.main import app
from vpdb.utils.jobs import job_tracker


def test_index(client: TestClient):
    response = client.get("/v1")
    assert response.status_code == 200
    assert response.json() == {"app_name": settings.API_NAME, "app_version": settings.API_VERSION}


def test_ping(client: TestClient):
    response = client.get("/v1/ping")
    assert response.status_code == 200
    assert response.json() == {"result": "pong"}


def test_roles(client: TestClient):
    response = client.get("/v1/roles")
    assert response.status_code == 200
    roles = {role["id"]: role for role in response.json()}
    assert roles["root"]["parents"] == ["admin", "moderator"]
    assert roles["member"]["parents"] == []


def test_plans(client: TestClient):
    response = client.get("/v1/plans")
    assert response.status_code == 200
    plans = {plan["id"]: plan for plan in response.json()}
    assert plans["free"]["is_default"] is True
    assert plans["subscribed"]["is_default"] is False
    assert plans["vip"]["enable_app_tokens"] is True


def test_unknown_route(client: TestClient):
    response = client.get("/v1/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_kill_switch_disabled(client: TestClient):
    assert client.post("/v1/kill").status_code == 404


def test_kill_switch(client: TestClient, monkeypatch):
    signals = []
    monkeypatch.setattr(settings, "ENABLE_KILL_SWITCH", True)
    monkeypatch.setattr(os, "kill", lambda pid, sig: signals.append((pid, sig)))

    response = client.post("/v1/kill")
    assert response.status_code == 200
    assert response.json() == {"result": "shutting down."}
    assert signals and signals[0][0] == os.getpid()


def test_legacy_prefix_disabled(client: TestClient):
    assert client.get("/api/ping").status_code == 404


def test_kill_switch_gives_up_on_stuck_jobs(client: TestClient, monkeypatch):
    signals = []
    monkeypatch.setattr(settings, "ENABLE_KILL_SWITCH", True)
    monkeypatch.setattr(settings, "KILL_JOB_TIMEOUT", 0)
    monkeypatch.setattr(os, "kill", lambda pid, sig: signals.append(sig))

    started, stuck = threading.Event(), threading.Event()

    def job():
        started.set()
        stuck.wait(5)

    worker = threading.Thread(target=job_tracker._run, args=(job,))
    worker.start()
    started.wait(5)
    try:
        assert job_tracker.pending == 1
        response = client.post("/v1/kill")
        assert response.status_code == 200
        assert signals == [signal.SIGTERM]
    finally:
        stuck.set()
        worker.join()


def test_handler_must_return_success(client: TestClient):
    router = api_router()

    @router.get("/bare-dict")
    def bare_dict():
        return {}

    app.include_router(router, prefix="/test")
    response = client.get("/test/bare-dict")
    assert response.status_code == 500
    assert response.json() == {"error": "Handler of /test/bare-dict must return success()."}
