"""Health endpoints."""

API = "/api/v1"


def test_health(client):
    resp = client.get(f"{API}/health/")

    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
    assert resp.headers["Cache-Control"].startswith("no-store")


def test_ready_reports_memory_backend(client):
    body = client.get(f"{API}/health/ready").json()

    assert body["status"] == "ready"
    assert body["backend"] == "memory"
    assert body["database"] == "connected"
