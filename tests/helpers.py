"""Shared helpers for the API tests."""

from fastapi.testclient import TestClient

ADMIN_EMAIL = "admin@example.com"


def register_and_login(app, email: str, password: str = "longenough") -> TestClient:
    """Return a client carrying a session cookie for a fresh account."""
    client = TestClient(app)
    resp = client.post("/auth/register", json={"email": email, "password": password})
    assert resp.status_code == 201, resp.text
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return client
