from fastapi.testclient import TestClient

from single_invites.api.main import app


def test_health():
    # No lifespan: the health check must not need rules or a database
    response = TestClient(app).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "single-invites"}
