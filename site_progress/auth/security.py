from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext

from site_progress.errors import AuthError
from site_progress.models import Principal, Role


# pbkdf2_sha256 salts every hash and compares digests in constant time.
_pwd = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
_JWT_ALG = "HS256"

INVALID_TOKEN_MESSAGE = "Invalid or expired token"


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("password_blank")
    return _pwd.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Return True iff `password` hashes to `password_hash`.

    A corrupt or unknown stored hash yields False instead of raising.
    """
    if not password or not password_hash:
        return False
    try:
        return _pwd.verify(password, password_hash)
    except (ValueError, TypeError):
        return False


class TokenService:
    """Issues and verifies signed, time-limited identity tokens (HS256 JWT).

    The signing secret is fixed at construction; nothing here reads the environment.
    """

    def __init__(self, *, secret: str, expires_minutes: int = 10080) -> None:
        if not secret:
            raise ValueError("jwt_secret_blank")
        self._secret = secret
        self._expires = timedelta(minutes=max(1, int(expires_minutes)))

    @property
    def expires_in_seconds(self) -> int:
        return int(self._expires.total_seconds())

    def issue(
        self,
        *,
        user_id: int,
        email: str,
        role: Role,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        now = datetime.now(timezone.utc)
        exp = now + (self._expires if expires_delta is None else expires_delta)

        payload: Dict[str, Any] = {
            "sub": str(int(user_id)),
            "email": email,
            "role": Role(role).value,
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=_JWT_ALG)

    def verify(self, token: str) -> Principal:
        """Decode `token` into a Principal.

        Every failure (signature, structure, expiry, claims) surfaces as the same AuthError.
        """
        if not token:
            raise AuthError(INVALID_TOKEN_MESSAGE)
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[_JWT_ALG],
                options={"require": ["sub", "exp", "iat"]},
            )
            return Principal(
                user_id=int(payload["sub"]),
                email=str(payload["email"]),
                role=Role(payload["role"]),
            )
        except (jwt.InvalidTokenError, KeyError, ValueError, TypeError):
            raise AuthError(INVALID_TOKEN_MESSAGE) from None
