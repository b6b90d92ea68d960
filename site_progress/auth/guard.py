from __future__ import annotations

from typing import AbstractSet, Optional, Sequence

from site_progress.errors import AuthError
from site_progress.models import Principal, Role

from .security import TokenService


BEARER_PREFIX = "Bearer "
NO_TOKEN_MESSAGE = "No token provided"

# Everything under PROTECTED_PREFIX needs a token, except these.
PROTECTED_PREFIX = "/api/"
PUBLIC_ROUTES: tuple[str, ...] = ("/api/auth/login", "/api/auth/register")


def extract_token(authorization: Optional[str]) -> str:
    """Pull the token out of an `Authorization: Bearer <token>` header value.

    The scheme is case-sensitive and followed by exactly one space.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthError(NO_TOKEN_MESSAGE)
    token = authorization[len(BEARER_PREFIX) :]
    if not token or any(ch.isspace() for ch in token):
        raise AuthError(NO_TOKEN_MESSAGE)
    return token


class AccessGuard:
    """Authenticates requests. Holds no per-request state."""

    def __init__(
        self,
        tokens: TokenService,
        *,
        public_routes: Sequence[str] = PUBLIC_ROUTES,
        protected_prefix: str = PROTECTED_PREFIX,
    ) -> None:
        self.tokens = tokens
        self.public_routes = tuple(public_routes)
        self.protected_prefix = protected_prefix

    def is_exempt(self, path: str) -> bool:
        if not path.startswith(self.protected_prefix):
            return True
        return any(path.startswith(route) for route in self.public_routes)

    def authenticate(self, authorization: Optional[str]) -> Principal:
        return self.tokens.verify(extract_token(authorization))


def authorize_role(principal: Principal, allowed_roles: AbstractSet[Role]) -> bool:
    return principal.role in allowed_roles


def authorize_ownership(principal: Principal, resource_owner_id: Optional[int]) -> bool:
    if resource_owner_id is None:
        return False
    return principal.user_id == int(resource_owner_id)
