import os
from dataclasses import dataclass
from typing import Optional

# Optional: load a local .env file if present.
try:
    from dotenv import load_dotenv

    load_dotenv()
except ImportError:
    # If python-dotenv isn't installed, plain environment variables still work.
    pass


DEV_JWT_SECRET = "dev_change_me"


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_str(name: str) -> Optional[str]:
    return (os.environ.get(name) or "").strip() or None


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    Read once at startup and passed around explicitly (app.state.cfg, TokenService).
    Provide secrets via environment variables or a .env file, never in source code.
    """

    # -----------------
    # Core
    # -----------------
    # Preferred: set SITE_PROGRESS_DATABASE_URL (or DATABASE_URL) to use Postgres.
    # Fallback: SITE_PROGRESS_DB_PATH for SQLite.
    DB_DSN: str = (
        os.environ.get("SITE_PROGRESS_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or os.environ.get("SITE_PROGRESS_DB_PATH", "./site_progress.sqlite")
    )

    # -----------------
    # Auth (JWT)
    # -----------------
    # NOTE: In dev, this defaults to a fixed string so you can get started.
    # In production, you MUST set AUTH_JWT_SECRET to a strong random value.
    AUTH_JWT_SECRET: str = os.environ.get("AUTH_JWT_SECRET", DEV_JWT_SECRET)
    AUTH_TOKEN_EXPIRE_MINUTES: int = _env_int("AUTH_TOKEN_EXPIRE_MINUTES", 10080)  # 7 days

    # Self-registration password policy
    AUTH_MIN_PASSWORD_LENGTH: int = _env_int("AUTH_MIN_PASSWORD_LENGTH", 8)

    # Bootstrap first admin user if users table is empty (both must be set)
    AUTH_BOOTSTRAP_ADMIN_EMAIL: Optional[str] = _env_str("AUTH_BOOTSTRAP_ADMIN_EMAIL")
    AUTH_BOOTSTRAP_ADMIN_PASSWORD: Optional[str] = _env_str("AUTH_BOOTSTRAP_ADMIN_PASSWORD")

    # -----------------
    # CORS
    # -----------------
    # Only needed when a browser frontend is served from a different origin.
    CORS_ALLOW_ORIGINS: str = os.environ.get("CORS_ALLOW_ORIGINS", "http://localhost:3000")

    @property
    def uses_dev_secret(self) -> bool:
        return self.AUTH_JWT_SECRET == DEV_JWT_SECRET


def load_config() -> Config:
    return Config()
