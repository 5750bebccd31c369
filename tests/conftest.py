from __future__ import annotations

from typing import Any, Callable, Dict

import pytest
from fastapi.testclient import TestClient

from content_guardian.api.server import create_app
from content_guardian.config import Config


DEFAULT_PASSWORD = "password123"


@pytest.fixture
def cfg(tmp_path) -> Config:
    return Config(
        DB_DSN=str(tmp_path / "content_guardian_test.sqlite"),
        AUTH_JWT_SECRET="test-secret",
        CORS_ALLOW_ORIGINS="",
    )


@pytest.fixture
def client(cfg: Config):
    # Context manager so the startup hook creates the schema.
    with TestClient(create_app(cfg)) as c:
        yield c


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client: TestClient) -> Callable[..., Dict[str, Any]]:
    """Register a user and return `{"user": ..., "token": ..., "headers": ...}`."""

    def _register(name: str, email: str | None = None, password: str = DEFAULT_PASSWORD) -> Dict[str, Any]:
        resp = client.post(
            "/api/auth/register",
            json={"name": name, "email": email or f"{name.lower()}@example.com", "password": password},
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return {"user": body["user"], "token": body["access_token"], "headers": bearer(body["access_token"])}

    return _register


@pytest.fixture
def login(client: TestClient) -> Callable[..., Dict[str, Any]]:
    def _login(email: str, password: str = DEFAULT_PASSWORD) -> Dict[str, Any]:
        resp = client.post("/api/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        body = resp.json()
        return {"user": body["user"], "token": body["access_token"], "headers": bearer(body["access_token"])}

    return _login


@pytest.fixture
def set_role(client: TestClient) -> Callable[[Dict[str, Any], Dict[str, Any], str], Any]:
    """`set_role(admin, target, "author")` via the API; returns the response."""

    def _set_role(admin: Dict[str, Any], target: Dict[str, Any], role: str):
        return client.put(
            f"/api/auth/update-role/{target['user']['user_id']}",
            json={"role": role},
            headers=admin["headers"],
        )

    return _set_role
