from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    WORKER = "WORKER"


class ProjectStatus(str, Enum):
    PLANNED = "PLANNED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    ON_HOLD = "ON_HOLD"
    CANCELLED = "CANCELLED"


DEFAULT_ROLE = Role.WORKER


@dataclass(frozen=True)
class Principal:
    """The authenticated identity behind a single request.

    Built only from a verified token and never persisted.
    """

    user_id: int
    email: str
    role: Role
