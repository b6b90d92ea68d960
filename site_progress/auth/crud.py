from __future__ import annotations

from typing import Any, Dict, Optional

from site_progress.config import Config
from site_progress.db import connect, insert_returning_id, integrity_errors
from site_progress.errors import ConflictError, ValidationError
from site_progress.models import DEFAULT_ROLE, Role
from site_progress.util.time import utcnow_iso

from .security import hash_password, verify_password


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def public_user(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    d = dict(row)
    d.pop("password_hash", None)
    return d


def get_user_by_email(conn: Any, email: str) -> Optional[Any]:
    e = normalize_email(email)
    if not e:
        return None
    return conn.execute(
        "SELECT * FROM users WHERE email=?",
        (e,),
    ).fetchone()


def get_user_by_id(conn: Any, user_id: int) -> Optional[Any]:
    return conn.execute(
        "SELECT * FROM users WHERE user_id=?",
        (int(user_id),),
    ).fetchone()


def verify_user_credentials(conn: Any, email: str, password: str) -> Optional[Any]:
    row = get_user_by_email(conn, email)
    if row is None:
        return None
    if not verify_password(password, str(row["password_hash"])):
        return None
    return row


def create_user(
    conn: Any,
    *,
    name: str,
    email: str,
    password: str,
    role: Role = DEFAULT_ROLE,
    phone: str | None = None,
) -> Dict[str, Any]:
    e = normalize_email(email)
    n = (name or "").strip()
    if not e or not n:
        raise ValidationError("Name, email, and password are required")
    if not password:
        raise ValidationError("Name, email, and password are required")

    existing = conn.execute("SELECT 1 FROM users WHERE email=?", (e,)).fetchone()
    if existing is not None:
        raise ConflictError("User with this email already exists")

    now = utcnow_iso()
    try:
        user_id = insert_returning_id(
            conn,
            """
            INSERT INTO users (name, email, password_hash, role, phone, created_at, updated_at)
            VALUES (?,?,?,?,?,?,?)
            """,
            (n, e, hash_password(password), Role(role).value, (phone or "").strip() or None, now, now),
            id_column="user_id",
        )
    except integrity_errors():
        # Lost a race with a concurrent registration for the same email.
        raise ConflictError("User with this email already exists") from None
    row = get_user_by_id(conn, user_id)
    assert row is not None
    return public_user(row)


def bootstrap_admin_if_needed(cfg: Config) -> Optional[Dict[str, Any]]:
    """Create the first admin user if the users table is empty.

    Controlled via AUTH_BOOTSTRAP_ADMIN_EMAIL / AUTH_BOOTSTRAP_ADMIN_PASSWORD; nothing
    is created unless both are set.
    """

    email = normalize_email(cfg.AUTH_BOOTSTRAP_ADMIN_EMAIL or "")
    password = cfg.AUTH_BOOTSTRAP_ADMIN_PASSWORD or ""
    if not email or not password:
        return None

    with connect(cfg.DB_DSN) as conn:
        n = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()["n"]
        if int(n) > 0:
            return None
        return create_user(conn, name="Administrator", email=email, password=password, role=Role.ADMIN)
