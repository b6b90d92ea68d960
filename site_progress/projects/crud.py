"""Persistence for projects and daily progress reports (DPRs).

Plain SQL over the `connect()` connection (SQLite or Postgres). Authorization is
not decided here; callers pass in already-authorized ids.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from site_progress.db import insert_returning_id
from site_progress.errors import ValidationError
from site_progress.models import ProjectStatus
from site_progress.util.time import parse_iso_date, utcnow_iso


PROJECT_FIELDS = ("name", "description", "start_date", "end_date", "budget", "location", "status")
# worker_count is a plain INTEGER column; keep it in signed 32-bit range.
MAX_WORKER_COUNT = 2**31 - 1

REPORT_FIELDS = (
    "weather",
    "challenges",
    "materials_used",
    "equipment_used",
    "safety_incidents",
    "next_day_plan",
)

_PROJECT_SELECT = """
    SELECT p.*,
           u.name AS creator_name,
           u.email AS creator_email,
           u.role AS creator_role,
           (SELECT COUNT(*) FROM daily_reports r WHERE r.project_id = p.project_id) AS report_count
    FROM projects p
    JOIN users u ON u.user_id = p.created_by_id
"""

_REPORT_SELECT = """
    SELECT r.*,
           u.name AS user_name,
           u.email AS user_email,
           u.role AS user_role,
           p.name AS project_name,
           p.status AS project_status
    FROM daily_reports r
    JOIN users u ON u.user_id = r.user_id
    JOIN projects p ON p.project_id = r.project_id
"""


def _date_or_error(value: Optional[str], message: str) -> Optional[str]:
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(message) from None


def _status_or_error(value: Any) -> str:
    try:
        return ProjectStatus(value).value
    except ValueError:
        allowed = ", ".join(s.value for s in ProjectStatus)
        raise ValidationError(f"Invalid project status. Must be one of: {allowed}") from None


def _clean_text(value: Any) -> Optional[str]:
    s = str(value).strip() if value is not None else ""
    return s or None


def _project_dict(row: Any) -> Dict[str, Any]:
    d = dict(row)
    d["creator"] = {
        "user_id": d["created_by_id"],
        "name": d.pop("creator_name", None),
        "email": d.pop("creator_email", None),
        "role": d.pop("creator_role", None),
    }
    if "report_count" in d:
        d["report_count"] = int(d["report_count"] or 0)
    return d


def _report_dict(row: Any) -> Dict[str, Any]:
    d = dict(row)
    d["user"] = {
        "user_id": d["user_id"],
        "name": d.pop("user_name", None),
        "email": d.pop("user_email", None),
        "role": d.pop("user_role", None),
    }
    d["project"] = {
        "project_id": d["project_id"],
        "name": d.pop("project_name", None),
        "status": d.pop("project_status", None),
    }
    return d


# -----------------------------
# Projects
# -----------------------------


def get_project(conn: Any, project_id: int) -> Optional[Any]:
    return conn.execute(
        "SELECT * FROM projects WHERE project_id=?",
        (int(project_id),),
    ).fetchone()


def get_project_detail(conn: Any, project_id: int) -> Optional[Dict[str, Any]]:
    """Project with its creator and all daily reports (newest first)."""
    row = conn.execute(
        f"{_PROJECT_SELECT} WHERE p.project_id=?",
        (int(project_id),),
    ).fetchone()
    if row is None:
        return None
    project = _project_dict(row)
    rows = conn.execute(
        f"{_REPORT_SELECT} WHERE r.project_id=? ORDER BY r.report_date DESC, r.report_id DESC",
        (int(project_id),),
    ).fetchall()
    project["daily_reports"] = [_report_dict(r) for r in rows]
    return project


def _project_filters(
    status: Optional[str], project_ids: Optional[Sequence[int]]
) -> Tuple[str, List[Any]]:
    clauses: List[str] = []
    params: List[Any] = []
    if status:
        clauses.append("p.status=?")
        params.append(_status_or_error(status))
    if project_ids is not None:
        clauses.append(f"p.project_id IN ({','.join('?' for _ in project_ids)})")
        params.extend(int(x) for x in project_ids)
    where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


def list_projects(
    conn: Any,
    *,
    status: Optional[str] = None,
    project_ids: Optional[Sequence[int]] = None,
    limit: int = 10,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    """List projects, newest first.

    `project_ids=None` means unrestricted; an empty sequence matches nothing.
    """
    if project_ids is not None and len(project_ids) == 0:
        return []
    where, params = _project_filters(status, project_ids)
    rows = conn.execute(
        f"{_PROJECT_SELECT}{where} ORDER BY p.created_at DESC, p.project_id DESC LIMIT ? OFFSET ?",
        (*params, int(limit), int(offset)),
    ).fetchall()
    return [_project_dict(r) for r in rows]


def count_projects(
    conn: Any,
    *,
    status: Optional[str] = None,
    project_ids: Optional[Sequence[int]] = None,
) -> int:
    if project_ids is not None and len(project_ids) == 0:
        return 0
    where, params = _project_filters(status, project_ids)
    row = conn.execute(f"SELECT COUNT(*) AS n FROM projects p{where}", params).fetchone()
    return int(row["n"])


def create_project(
    conn: Any,
    *,
    created_by_id: int,
    name: Optional[str],
    start_date: Optional[str],
    description: Optional[str] = None,
    end_date: Optional[str] = None,
    budget: Optional[float] = None,
    location: Optional[str] = None,
    status: Optional[str] = None,
) -> Dict[str, Any]:
    n = _clean_text(name)
    start = _date_or_error(start_date, "Invalid start date")
    if not n or not start:
        raise ValidationError("Project name and start date are required")

    now = utcnow_iso()
    project_id = insert_returning_id(
        conn,
        """
        INSERT INTO projects
            (name, description, start_date, end_date, budget, location, status,
             created_by_id, created_at, updated_at)
        VALUES (?,?,?,?,?,?,?,?,?,?)
        """,
        (
            n,
            _clean_text(description),
            start,
            _date_or_error(end_date, "Invalid end date"),
            budget,
            _clean_text(location),
            _status_or_error(status or ProjectStatus.PLANNED),
            int(created_by_id),
            now,
            now,
        ),
        id_column="project_id",
    )
    row = conn.execute(f"{_PROJECT_SELECT} WHERE p.project_id=?", (project_id,)).fetchone()
    return _project_dict(row)


def update_project(conn: Any, project_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
    """Apply a partial update. Only keys present in `changes` are touched."""
    fields: list[tuple[str, Any]] = []
    for key in PROJECT_FIELDS:
        if key not in changes:
            continue
        value = changes[key]
        if key == "name":
            value = _clean_text(value)
            if not value:
                raise ValidationError("Project name cannot be blank")
        elif key == "start_date":
            value = _date_or_error(value, "Invalid start date")
            if not value:
                raise ValidationError("Project start date cannot be blank")
        elif key == "end_date":
            value = _date_or_error(value, "Invalid end date")
        elif key == "status":
            value = _status_or_error(value)
        elif key in ("description", "location"):
            value = _clean_text(value)
        fields.append((key, value))

    if fields:
        fields.append(("updated_at", utcnow_iso()))
        sets = ", ".join([f"{k}=?" for k, _ in fields])
        params = [v for _, v in fields] + [int(project_id)]
        conn.execute(f"UPDATE projects SET {sets} WHERE project_id=?", params)

    row = conn.execute(f"{_PROJECT_SELECT} WHERE p.project_id=?", (int(project_id),)).fetchone()
    return _project_dict(row)


def delete_project(conn: Any, project_id: int) -> bool:
    # Reports go first so this also works where FK cascades are off.
    conn.execute("DELETE FROM daily_reports WHERE project_id=?", (int(project_id),))
    cur = conn.execute("DELETE FROM projects WHERE project_id=?", (int(project_id),))
    return cur.rowcount > 0


# -----------------------------
# Daily reports
# -----------------------------


def reported_project_ids(conn: Any, user_id: int) -> List[int]:
    rows = conn.execute(
        "SELECT DISTINCT project_id FROM daily_reports WHERE user_id=?",
        (int(user_id),),
    ).fetchall()
    return [int(r["project_id"]) for r in rows]


def has_report(conn: Any, *, project_id: int, user_id: int) -> bool:
    row = conn.execute(
        "SELECT 1 FROM daily_reports WHERE project_id=? AND user_id=? LIMIT 1",
        (int(project_id), int(user_id)),
    ).fetchone()
    return row is not None


def create_report(
    conn: Any,
    *,
    project_id: int,
    user_id: int,
    report_date: Optional[str],
    work_description: Optional[str],
    worker_count: Optional[int],
    **extra: Any,
) -> Dict[str, Any]:
    d = _date_or_error(report_date, "Invalid report date")
    desc = _clean_text(work_description)
    if not d or not desc or worker_count is None:
        raise ValidationError("Date, work description, and worker count are required")
    if int(worker_count) < 0:
        raise ValidationError("Worker count cannot be negative")
    if int(worker_count) > MAX_WORKER_COUNT:
        raise ValidationError(f"Worker count cannot exceed {MAX_WORKER_COUNT}")

    unknown = set(extra) - set(REPORT_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown report fields: {', '.join(sorted(unknown))}")

    now = utcnow_iso()
    report_id = insert_returning_id(
        conn,
        f"""
        INSERT INTO daily_reports
            (project_id, user_id, report_date, work_description, worker_count,
             {', '.join(REPORT_FIELDS)}, created_at, updated_at)
        VALUES ({','.join('?' for _ in range(7 + len(REPORT_FIELDS)))})
        """,
        (
            int(project_id),
            int(user_id),
            d,
            desc,
            int(worker_count),
            *[_clean_text(extra.get(k)) for k in REPORT_FIELDS],
            now,
            now,
        ),
        id_column="report_id",
    )
    row = conn.execute(f"{_REPORT_SELECT} WHERE r.report_id=?", (report_id,)).fetchone()
    return _report_dict(row)


def list_reports(
    conn: Any,
    *,
    project_id: int,
    report_date: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    sql = f"{_REPORT_SELECT} WHERE r.project_id=?"
    params: List[Any] = [int(project_id)]
    d = _date_or_error(report_date, "Invalid date filter")
    if d:
        sql += " AND r.report_date=?"
        params.append(d)
    sql += " ORDER BY r.report_date DESC, r.report_id DESC LIMIT ? OFFSET ?"
    params.extend([int(limit), int(offset)])
    return [_report_dict(r) for r in conn.execute(sql, params).fetchall()]


def count_reports(conn: Any, *, project_id: int, report_date: Optional[str] = None) -> int:
    sql = "SELECT COUNT(*) AS n FROM daily_reports WHERE project_id=?"
    params: List[Any] = [int(project_id)]
    d = _date_or_error(report_date, "Invalid date filter")
    if d:
        sql += " AND report_date=?"
        params.append(d)
    return int(conn.execute(sql, params).fetchone()["n"])
