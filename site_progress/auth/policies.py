"""Role and ownership rules for projects and daily progress reports.

Each rule is a pure predicate over the principal and the ownership facts the caller
looked up; `require()` turns a False into a ForbiddenError for route handlers.
"""

from __future__ import annotations

from typing import NoReturn

from site_progress.errors import ForbiddenError
from site_progress.models import Principal, Role

from .guard import authorize_ownership, authorize_role


PROJECT_EDITORS = frozenset({Role.ADMIN, Role.MANAGER})


def _unknown_role(role: object) -> NoReturn:
    raise ValueError(f"unhandled role: {role!r}")


def require(allowed: bool, message: str) -> None:
    if not allowed:
        raise ForbiddenError(message)


def can_create_project(principal: Principal) -> bool:
    return authorize_role(principal, PROJECT_EDITORS)


def can_update_project(principal: Principal, created_by_id: int) -> bool:
    if not authorize_role(principal, PROJECT_EDITORS):
        return False
    if principal.role is Role.ADMIN:
        return True
    return authorize_ownership(principal, created_by_id)


def can_delete_project(principal: Principal) -> bool:
    return authorize_role(principal, {Role.ADMIN})


def can_read_project(principal: Principal, created_by_id: int, has_reported: bool) -> bool:
    """Workers only see projects they created or have reported on."""
    role = principal.role
    if role is Role.ADMIN or role is Role.MANAGER:
        return True
    if role is Role.WORKER:
        return authorize_ownership(principal, created_by_id) or has_reported
    _unknown_role(role)


def can_create_report(principal: Principal, created_by_id: int) -> bool:
    role = principal.role
    if role is Role.ADMIN or role is Role.MANAGER:
        return True
    if role is Role.WORKER:
        return authorize_ownership(principal, created_by_id)
    _unknown_role(role)


def restricts_project_list(principal: Principal) -> bool:
    """Whether the project list is limited to projects the principal reported on.

    NOTE: unlike can_read_project, projects a worker created but never reported on
    are not included.
    """
    role = principal.role
    if role is Role.ADMIN or role is Role.MANAGER:
        return False
    if role is Role.WORKER:
        return True
    _unknown_role(role)
