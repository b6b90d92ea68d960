"""Authentication / authorization core.

Auth is intentionally lightweight:

- Users table (email/password hash + role)
- Stateless JWT access tokens, 7 days by default, no server-side revocation

Clients send `Authorization: Bearer <token>` on every request under /api/, except
the login and register routes.
"""

from .deps import get_current_principal
from .guard import AccessGuard, authorize_ownership, authorize_role, extract_token
from .security import TokenService, hash_password, verify_password

__all__ = [
    "AccessGuard",
    "TokenService",
    "authorize_ownership",
    "authorize_role",
    "extract_token",
    "get_current_principal",
    "hash_password",
    "verify_password",
]
