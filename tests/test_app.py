from fastapi.testclient import TestClient

from pizzeria.api.deps import get_permission_policy
from pizzeria.main import app, settings
from pizzeria.models import Role


def test_root(client):
    body = client.get("/").json()
    assert body["version"] == "1.0.0"
    assert body["health"] == "/health"


def test_health_reports_each_dependency(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "operational"
    assert body["database"] == "healthy"
    assert body["broadcaster"] == "recording: healthy"


def test_unknown_route(client):
    response = client.get("/menu")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Route not found"}


def test_validation_errors_use_the_failure_envelope(client, seed):
    headers = seed.headers(seed.account(Role.COUNTER_STAFF))

    response = client.post("/orders", json={"customer": {"name": "Ana"}}, headers=headers)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"].startswith("items")


def test_unexpected_errors_are_hidden(client, seed):
    headers = seed.headers(seed.account(Role.ADMIN))

    def broken_policy():
        raise RuntimeError("policy store offline")

    app.dependency_overrides[get_permission_policy] = broken_policy
    response = TestClient(app, raise_server_exceptions=False).get("/auth/users", headers=headers)

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error"}


def test_debug_mode_adds_error_detail(client, seed, monkeypatch):
    headers = seed.headers(seed.account(Role.ADMIN))
    monkeypatch.setattr(settings, "debug", True)

    def broken_policy():
        raise RuntimeError("policy store offline")

    app.dependency_overrides[get_permission_policy] = broken_policy
    response = TestClient(app, raise_server_exceptions=False).get("/auth/users", headers=headers)

    assert response.status_code == 500
    assert response.json()["message"] == "Internal server error: policy store offline"
