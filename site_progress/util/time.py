from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow_iso() -> str:
    """Current UTC time as ISO-8601 string with Z."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def parse_iso_date(value: Optional[str]) -> Optional[str]:
    """Normalize a client-supplied date or datetime to YYYY-MM-DD.

    Accepts '2024-01-15' as well as full timestamps like '2024-01-15T08:00:00Z'.
    Returns None for blank input; raises ValueError for anything unparseable.
    """

    s = (value or "").strip()
    if not s:
        return None
    return date.fromisoformat(s[:10]).isoformat()
