from __future__ import annotations

from fastapi import Request

from site_progress.models import Principal

from .guard import AccessGuard


def get_access_guard(request: Request) -> AccessGuard:
    guard = getattr(request.app.state, "guard", None)
    if guard is None:
        raise RuntimeError("access_guard_missing")
    return guard


def get_current_principal(request: Request) -> Principal:
    """Return the principal for this request.

    The guard middleware normally authenticates first and leaves the result on
    request.state; routes mounted outside the protected prefix authenticate here.
    """

    principal = getattr(request.state, "principal", None)
    if principal is not None:
        return principal

    principal = get_access_guard(request).authenticate(request.headers.get("authorization"))
    request.state.principal = principal
    return principal
