"""API tests for registration, login and the access guard middleware."""

from datetime import timedelta

import jwt

from site_progress.auth import crud as auth_crud
from site_progress.auth.security import TokenService
from site_progress.models import Role

TEST_PASSWORD = "pw123456"


class TestRegisterAndLogin:
    def test_register_login_scenario(self, client):
        resp = client.post(
            "/api/auth/register",
            json={"name": "A", "email": "a@x.com", "password": "pw123456"},
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["token"]
        assert body["data"]["user"]["email"] == "a@x.com"
        assert "password_hash" not in body["data"]["user"]
        assert "password" not in body["data"]["user"]

        resp = client.post("/api/auth/login", json={"email": "a@x.com", "password": "pw123456"})
        assert resp.status_code == 200
        token = resp.json()["data"]["token"]
        claims = jwt.decode(token, options={"verify_signature": False})
        assert claims["role"] == "WORKER"
        assert claims["email"] == "a@x.com"

        resp = client.post("/api/auth/login", json={"email": "a@x.com", "password": "wrong-password"})
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "Invalid email or password"}

    def test_login_unknown_email_same_message(self, client):
        resp = client.post("/api/auth/login", json={"email": "nobody@x.com", "password": "pw123456"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid email or password"

    def test_login_missing_fields(self, client):
        resp = client.post("/api/auth/login", json={"email": "a@x.com"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Email and password are required"

    def test_register_missing_fields(self, client):
        resp = client.post("/api/auth/register", json={"email": "a@x.com", "password": "pw123456"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Name, email, and password are required"

    def test_register_short_password(self, client):
        resp = client.post("/api/auth/register", json={"name": "A", "email": "a@x.com", "password": "short"})
        assert resp.status_code == 400

    def test_register_duplicate_email(self, client, register):
        register("dup@x.com")
        resp = client.post(
            "/api/auth/register",
            json={"name": "B", "email": "DUP@x.com", "password": TEST_PASSWORD},
        )
        assert resp.status_code == 409
        assert resp.json()["error"] == "User with this email already exists"

    def test_register_invalid_role(self, client):
        resp = client.post(
            "/api/auth/register",
            json={"name": "A", "email": "a@x.com", "password": TEST_PASSWORD, "role": "OWNER"},
        )
        assert resp.status_code == 400

    def test_register_cannot_self_assign_privileged_role(self, client):
        for role in ("ADMIN", "MANAGER"):
            resp = client.post(
                "/api/auth/register",
                json={"name": "A", "email": "a@x.com", "password": TEST_PASSWORD, "role": role},
            )
            assert resp.status_code == 403
            assert resp.json()["error"] == "Self-registration cannot assign the ADMIN or MANAGER role"
        resp = client.post("/api/auth/login", json={"email": "a@x.com", "password": TEST_PASSWORD})
        assert resp.status_code == 401

    def test_register_worker_role_explicitly(self, client):
        resp = client.post(
            "/api/auth/register",
            json={"name": "A", "email": "a@x.com", "password": TEST_PASSWORD, "role": "WORKER"},
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["user"]["role"] == "WORKER"

    def test_register_concurrent_duplicate_is_conflict(self, client, monkeypatch):
        """A registration that slips in between the uniqueness check and the INSERT."""
        real_insert = auth_crud.insert_returning_id

        def insert_after_concurrent_signup(conn, sql, params, *, id_column):
            real_insert(conn, sql, params, id_column=id_column)
            return real_insert(conn, sql, params, id_column=id_column)

        monkeypatch.setattr(auth_crud, "insert_returning_id", insert_after_concurrent_signup)
        resp = client.post(
            "/api/auth/register",
            json={"name": "A", "email": "race@x.com", "password": TEST_PASSWORD},
        )
        assert resp.status_code == 409
        assert resp.json() == {"success": False, "error": "User with this email already exists"}

    def test_me_returns_current_user(self, client, manager):
        user, headers = manager
        resp = client.get("/api/auth/me", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["user_id"] == user["user_id"]
        assert resp.json()["data"]["role"] == "MANAGER"


class TestGuardMiddleware:
    def test_health_is_public(self, client):
        assert client.get("/health").status_code == 200

    def test_missing_token(self, client):
        resp = client.get("/api/projects")
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "No token provided"}
        assert resp.headers["www-authenticate"] == "Bearer"

    def test_wrong_scheme(self, client):
        resp = client.get("/api/projects", headers={"Authorization": "Basic xyz"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "No token provided"

    def test_invalid_token(self, client):
        resp = client.get("/api/projects", headers={"Authorization": "Bearer not.a.jwt"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid or expired token"

    def test_token_signed_with_other_secret(self, client):
        token = TokenService(secret="someone-else").issue(user_id=1, email="a@x.com", role=Role.ADMIN)
        resp = client.get("/api/projects", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_expired_token(self, client, worker, token_service):
        user, _ = worker
        token = token_service.issue(
            user_id=user["user_id"],
            email=user["email"],
            role=Role.WORKER,
            expires_delta=timedelta(seconds=-1),
        )
        resp = client.get("/api/projects", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "Invalid or expired token"}
        assert resp.headers["www-authenticate"] == "Bearer"

    def test_valid_token_passes(self, client, worker):
        _, headers = worker
        assert client.get("/api/projects", headers=headers).status_code == 200
