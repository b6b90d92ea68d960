"""Pytest fixtures: an app wired to a throwaway SQLite file."""

from typing import Callable, Dict, Tuple

import pytest
from fastapi.testclient import TestClient

from site_progress.api.server import create_app
from site_progress.auth.crud import create_user
from site_progress.auth.security import TokenService
from site_progress.config import Config
from site_progress.db import connect
from site_progress.models import Role

TEST_JWT_SECRET = "test-jwt-secret-for-testing-only"
TEST_PASSWORD = "pw123456"


@pytest.fixture
def cfg(tmp_path) -> Config:
    return Config(
        DB_DSN=str(tmp_path / "site_progress_test.sqlite"),
        AUTH_JWT_SECRET=TEST_JWT_SECRET,
        AUTH_TOKEN_EXPIRE_MINUTES=10080,
        AUTH_MIN_PASSWORD_LENGTH=8,
        AUTH_BOOTSTRAP_ADMIN_EMAIL=None,
        AUTH_BOOTSTRAP_ADMIN_PASSWORD=None,
        CORS_ALLOW_ORIGINS="",
    )


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(secret=TEST_JWT_SECRET)


@pytest.fixture
def client(cfg):
    # Entering the context runs the startup hook (schema creation).
    with TestClient(create_app(cfg)) as c:
        yield c


@pytest.fixture
def db(cfg, client):
    """Open a connection to the test DB (schema already created by `client`)."""

    def _open():
        return connect(cfg.DB_DSN)

    return _open


@pytest.fixture
def register(client, db) -> Callable[..., Tuple[Dict, Dict[str, str]]]:
    """Create a user with the given role and log in; returns (user, auth headers).

    Privileged roles cannot self-register, so users are written through the
    persistence layer and the token comes from the real login route.
    """

    def _register(email: str, role: str = "WORKER", name: str = "Test User") -> Tuple[Dict, Dict[str, str]]:
        with db() as conn:
            create_user(conn, name=name, email=email, password=TEST_PASSWORD, role=Role(role))
        resp = client.post("/api/auth/login", json={"email": email, "password": TEST_PASSWORD})
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _register


@pytest.fixture
def admin(register):
    return register("admin@site.test", role="ADMIN", name="Admin")


@pytest.fixture
def manager(register):
    return register("manager@site.test", role="MANAGER", name="Manager")


@pytest.fixture
def worker(register):
    return register("worker@site.test", role="WORKER", name="Worker")


@pytest.fixture
def make_project(client):
    def _make(headers: Dict[str, str], name: str = "Bridge Repair", **fields) -> Dict:
        body = {"name": name, "start_date": "2024-01-01", **fields}
        resp = client.post("/api/projects", json=body, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _make
