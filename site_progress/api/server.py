from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from site_progress.auth import AccessGuard, TokenService, get_current_principal
from site_progress.auth.crud import (
    bootstrap_admin_if_needed,
    create_user,
    get_user_by_id,
    public_user,
    verify_user_credentials,
)
from site_progress.auth.guard import authorize_role
from site_progress.auth.policies import (
    PROJECT_EDITORS,
    can_create_project,
    can_create_report,
    can_delete_project,
    can_read_project,
    can_update_project,
    require,
    restricts_project_list,
)
from site_progress.config import Config, load_config
from site_progress.db import MAX_SQL_INT, connect, init_db
from site_progress.errors import (
    AppError,
    AuthError,
    ErrorKind,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from site_progress.models import DEFAULT_ROLE, Principal, Role
from site_progress.projects import crud as projects_crud


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


# The one place error kinds become HTTP statuses.
STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTH: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
}


def error_response(exc: AppError) -> JSONResponse:
    status = STATUS_BY_KIND[exc.kind]
    headers = {"WWW-Authenticate": "Bearer"} if exc.kind is ErrorKind.AUTH else None
    return JSONResponse(
        status_code=status,
        content={"success": False, "error": exc.message},
        headers=headers,
    )


def _ok(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    out: Dict[str, Any] = {"success": True, "data": data}
    if message:
        out["message"] = message
    return out


def _pagination(total: int, limit: int, offset: int) -> Dict[str, Any]:
    return {"total": total, "limit": limit, "offset": offset, "has_more": offset + limit < total}


def _cfg(request: Request) -> Config:
    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise RuntimeError("server_config_missing")
    return cfg


def _tokens(request: Request) -> TokenService:
    return request.app.state.tokens


def _positive_id(project_id: int) -> int:
    if project_id <= 0 or project_id > MAX_SQL_INT:
        raise ValidationError("Invalid project ID. Must be a positive number.")
    return project_id


router = APIRouter()


# -----------------------------
# Health
# -----------------------------


@router.get("/health")
def health() -> Dict[str, Any]:
    return {"status": "ok"}


# -----------------------------
# Auth
# -----------------------------


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None  # only WORKER may be self-assigned


def _auth_payload(request: Request, user: Dict[str, Any]) -> Dict[str, Any]:
    token = _tokens(request).issue(
        user_id=int(user["user_id"]),
        email=str(user["email"]),
        role=Role(user["role"]),
    )
    return {"token": token, "user": user}


@router.post("/api/auth/login")
def auth_login(payload: LoginRequest, request: Request) -> Dict[str, Any]:
    if not payload.email or not payload.password:
        raise ValidationError("Email and password are required")

    with connect(_cfg(request).DB_DSN) as conn:
        row = verify_user_credentials(conn, payload.email, payload.password)
    if row is None:
        raise AuthError("Invalid email or password")

    return _ok(_auth_payload(request, public_user(row)), "Login successful")


@router.post("/api/auth/register", status_code=201)
def auth_register(payload: RegisterRequest, request: Request) -> Dict[str, Any]:
    cfg = _cfg(request)
    if not (payload.name or "").strip() or not (payload.email or "").strip() or not payload.password:
        raise ValidationError("Name, email, and password are required")
    if len(payload.password) < cfg.AUTH_MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {cfg.AUTH_MIN_PASSWORD_LENGTH} characters")

    try:
        role = Role(payload.role) if payload.role else DEFAULT_ROLE
    except ValueError:
        raise ValidationError("Invalid role. Must be one of: ADMIN, MANAGER, WORKER") from None
    if role is not DEFAULT_ROLE:
        # Admins and managers are created with scripts/create_user.py.
        raise ForbiddenError("Self-registration cannot assign the ADMIN or MANAGER role")

    with connect(cfg.DB_DSN) as conn:
        user = create_user(
            conn,
            name=payload.name or "",
            email=payload.email or "",
            password=payload.password,
            role=role,
            phone=payload.phone,
        )

    return _ok(_auth_payload(request, user), "User registered successfully")


@router.get("/api/auth/me")
def auth_me(request: Request, principal: Principal = Depends(get_current_principal)) -> Dict[str, Any]:
    with connect(_cfg(request).DB_DSN) as conn:
        row = get_user_by_id(conn, principal.user_id)
    if row is None:
        raise NotFoundError("User not found")
    return _ok(public_user(row))


# -----------------------------
# Projects
# -----------------------------


class ProjectRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    budget: Optional[float] = None
    location: Optional[str] = None
    status: Optional[str] = None


@router.get("/api/projects")
def list_projects(
    request: Request,
    status: Optional[str] = Query(default=None),
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0, le=MAX_SQL_INT),
    principal: Principal = Depends(get_current_principal),
) -> Dict[str, Any]:
    with connect(_cfg(request).DB_DSN) as conn:
        ids = None
        if restricts_project_list(principal):
            ids = projects_crud.reported_project_ids(conn, principal.user_id)
        projects = projects_crud.list_projects(
            conn, status=status, project_ids=ids, limit=limit, offset=offset
        )
        total = projects_crud.count_projects(conn, status=status, project_ids=ids)

    return _ok({"projects": projects, "pagination": _pagination(total, limit, offset)})


@router.post("/api/projects", status_code=201)
def create_project(
    payload: ProjectRequest,
    request: Request,
    principal: Principal = Depends(get_current_principal),
) -> Dict[str, Any]:
    require(can_create_project(principal), "Only admins and managers can create projects")

    with connect(_cfg(request).DB_DSN) as conn:
        project = projects_crud.create_project(
            conn,
            created_by_id=principal.user_id,
            **payload.model_dump(),
        )
    return _ok(project, "Project created successfully")


@router.get("/api/projects/{project_id}")
def get_project(
    project_id: int,
    request: Request,
    principal: Principal = Depends(get_current_principal),
) -> Dict[str, Any]:
    _positive_id(project_id)

    with connect(_cfg(request).DB_DSN) as conn:
        project = projects_crud.get_project_detail(conn, project_id)
        if project is None:
            raise NotFoundError(f"Project with ID {project_id} not found")
        reported = projects_crud.has_report(conn, project_id=project_id, user_id=principal.user_id)

    require(can_read_project(principal, project["created_by_id"], reported), "Access denied")
    return _ok(project)


@router.put("/api/projects/{project_id}")
def update_project(
    project_id: int,
    payload: ProjectRequest,
    request: Request,
    principal: Principal = Depends(get_current_principal),
) -> Dict[str, Any]:
    require(authorize_role(principal, PROJECT_EDITORS), "Only admins and managers can update projects")
    _positive_id(project_id)

    with connect(_cfg(request).DB_DSN) as conn:
        existing = projects_crud.get_project(conn, project_id)
        if existing is None:
            raise NotFoundError("Project not found")
        require(
            can_update_project(principal, int(existing["created_by_id"])),
            "You can only update projects you created",
        )
        project = projects_crud.update_project(conn, project_id, payload.model_dump(exclude_unset=True))

    return _ok(project, "Project updated successfully")


@router.delete("/api/projects/{project_id}")
def delete_project(
    project_id: int,
    request: Request,
    principal: Principal = Depends(get_current_principal),
) -> Dict[str, Any]:
    require(can_delete_project(principal), "Only admins can delete projects")
    _positive_id(project_id)

    with connect(_cfg(request).DB_DSN) as conn:
        if projects_crud.get_project(conn, project_id) is None:
            raise NotFoundError("Project not found")
        projects_crud.delete_project(conn, project_id)

    _debug(f"Project {project_id} deleted by user_id={principal.user_id}")
    return _ok(None, "Project deleted successfully")


# -----------------------------
# Daily Progress Reports
# -----------------------------


class ReportRequest(BaseModel):
    date: Optional[str] = None
    work_description: Optional[str] = None
    worker_count: Optional[int] = None
    weather: Optional[str] = None
    challenges: Optional[str] = None
    materials_used: Optional[str] = None
    equipment_used: Optional[str] = None
    safety_incidents: Optional[str] = None
    next_day_plan: Optional[str] = None


@router.get("/api/projects/{project_id}/dpr")
def list_reports(
    project_id: int,
    request: Request,
    date: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0, le=MAX_SQL_INT),
    principal: Principal = Depends(get_current_principal),
) -> Dict[str, Any]:
    _positive_id(project_id)

    with connect(_cfg(request).DB_DSN) as conn:
        project = projects_crud.get_project(conn, project_id)
        if project is None:
            raise NotFoundError("Project not found")
        reported = projects_crud.has_report(conn, project_id=project_id, user_id=principal.user_id)
        require(can_read_project(principal, int(project["created_by_id"]), reported), "Access denied")

        dprs = projects_crud.list_reports(
            conn, project_id=project_id, report_date=date, limit=limit, offset=offset
        )
        total = projects_crud.count_reports(conn, project_id=project_id, report_date=date)

    return _ok({"dprs": dprs, "pagination": _pagination(total, limit, offset)})


@router.post("/api/projects/{project_id}/dpr", status_code=201)
def create_report(
    project_id: int,
    payload: ReportRequest,
    request: Request,
    principal: Principal = Depends(get_current_principal),
) -> Dict[str, Any]:
    _positive_id(project_id)

    with connect(_cfg(request).DB_DSN) as conn:
        project = projects_crud.get_project(conn, project_id)
        if project is None:
            raise NotFoundError("Project not found")
        require(
            can_create_report(principal, int(project["created_by_id"])),
            "You can only add DPRs to projects you created",
        )
        report = projects_crud.create_report(
            conn,
            project_id=project_id,
            user_id=principal.user_id,
            report_date=payload.date,
            work_description=payload.work_description,
            worker_count=payload.worker_count,
            **payload.model_dump(include=set(projects_crud.REPORT_FIELDS)),
        )

    return _ok(report, "Daily Progress Report created successfully")


# -----------------------------
# App factory
# -----------------------------


def create_app(cfg: Optional[Config] = None) -> FastAPI:
    cfg = cfg or load_config()
    app = FastAPI(title="Site Progress API", version="0.1.0")

    tokens = TokenService(secret=cfg.AUTH_JWT_SECRET, expires_minutes=cfg.AUTH_TOKEN_EXPIRE_MINUTES)
    app.state.cfg = cfg
    app.state.tokens = tokens
    app.state.guard = AccessGuard(tokens)

    @app.on_event("startup")
    def _on_startup() -> None:
        if cfg.uses_dev_secret:
            _debug("WARNING: AUTH_JWT_SECRET is not set; using the development fallback secret")

        init_db(cfg.DB_DSN)

        boot = bootstrap_admin_if_needed(cfg)
        if boot:
            _debug(f"Bootstrapped initial admin user: email={boot.get('email')} role={boot.get('role')}")

    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError) -> JSONResponse:
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = "Invalid request"
        if errors:
            first = errors[0]
            field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
            message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
        return error_response(ValidationError(message))

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        _debug(f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}: {exc}")
        return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})

    @app.middleware("http")
    async def _access_guard(request: Request, call_next: Any) -> Any:
        guard: AccessGuard = request.app.state.guard
        if request.method != "OPTIONS" and not guard.is_exempt(request.url.path):
            try:
                request.state.principal = guard.authenticate(request.headers.get("authorization"))
            except AuthError as e:
                return error_response(e)
        return await call_next(request)

    # CORS is added last so it wraps the guard and answers preflights itself.
    origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(router)
    return app


app = create_app()
