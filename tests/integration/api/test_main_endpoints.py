import pytest


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_guest_writes_are_rejected(client):
    r = client.post("/servers/", json={"name": "Alpha"})
    assert r.status_code == 401
    assert "read-only" in r.json()["detail"]
    assert client.patch("/users/me", json={"display_name": "x"}).status_code == 401


def test_guest_reads_need_identity(client):
    assert client.get("/servers/").status_code == 401


def test_dev_mode_impersonates_local_user(client, monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.setenv("APP_BASE_URL", "http://localhost:3000")
    r = client.post("/servers/", json={"name": "Dev Desk"})
    assert r.status_code == 201
    assert client.get("/users/me").json()["email"] == "dev@localhost"


def test_dev_mode_refused_on_public_host(client, monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.setenv("APP_BASE_URL", "https://trading.example.com")
    with pytest.raises(RuntimeError):
        client.get("/users/me")
