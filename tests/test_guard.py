"""Unit tests for token extraction, authentication and the basic predicates."""

import pytest

from site_progress.auth.guard import (
    NO_TOKEN_MESSAGE,
    AccessGuard,
    authorize_ownership,
    authorize_role,
    extract_token,
)
from site_progress.errors import AuthError
from site_progress.models import Principal, Role


class TestExtractToken:
    def test_valid_header(self):
        assert extract_token("Bearer abc.def.ghi") == "abc.def.ghi"

    @pytest.mark.parametrize(
        "header",
        [
            None,  # missing header
            "",
            "Basic xyz",
            "Bearer",  # no token
            "Bearer ",  # empty token
            "Bearer  ",  # double space
            "Bearer  abc",  # double space before token
            "bearer abc",  # scheme is case-sensitive
            "BEARER abc",
            "Bearerabc",
            "Bearer abc def",
            "Token abc",
        ],
    )
    def test_rejected_headers(self, header):
        with pytest.raises(AuthError) as exc:
            extract_token(header)
        assert exc.value.message == NO_TOKEN_MESSAGE


class TestAccessGuard:
    def setup_method(self):
        from site_progress.auth.security import TokenService

        self.tokens = TokenService(secret="guard-secret")
        self.guard = AccessGuard(self.tokens)

    @pytest.mark.parametrize(
        "path,exempt",
        [
            ("/api/auth/login", True),
            ("/api/auth/register", True),
            ("/health", True),
            ("/api/auth/me", False),
            ("/api/projects", False),
            ("/api/projects/1/dpr", False),
        ],
    )
    def test_route_exemption(self, path, exempt):
        assert self.guard.is_exempt(path) is exempt

    def test_authenticate_valid_header(self):
        token = self.tokens.issue(user_id=3, email="w@x.com", role=Role.WORKER)

        principal = self.guard.authenticate(f"Bearer {token}")

        assert principal == Principal(user_id=3, email="w@x.com", role=Role.WORKER)

    def test_authenticate_missing_header(self):
        with pytest.raises(AuthError, match=NO_TOKEN_MESSAGE):
            self.guard.authenticate(None)

    def test_authenticate_bad_token(self):
        with pytest.raises(AuthError, match="Invalid or expired token"):
            self.guard.authenticate("Bearer not.a.token")

    def test_principal_is_immutable(self):
        token = self.tokens.issue(user_id=3, email="w@x.com", role=Role.WORKER)
        principal = self.guard.authenticate(f"Bearer {token}")

        with pytest.raises(AttributeError):
            principal.role = Role.ADMIN


class TestPredicates:
    def test_authorize_role(self):
        p = Principal(user_id=1, email="m@x.com", role=Role.MANAGER)

        assert authorize_role(p, {Role.ADMIN, Role.MANAGER}) is True
        assert authorize_role(p, {Role.ADMIN}) is False
        assert authorize_role(p, set()) is False

    def test_authorize_ownership(self):
        p = Principal(user_id=5, email="w@x.com", role=Role.WORKER)

        assert authorize_ownership(p, 5) is True
        assert authorize_ownership(p, 6) is False
        assert authorize_ownership(p, None) is False
