from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, returning None for empty or malformed input."""
    if not value:
        return None
    try:
        if not isinstance(value, str):
            value = str(value)
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        dt = datetime.fromisoformat(value)
        # Naive timestamps are stored as UTC.
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    except ValueError:
        return None


def is_timestamp(value: object) -> bool:
    return isinstance(value, str) and parse_timestamp(value) is not None


def start_of_local_day(now: Optional[datetime] = None) -> datetime:
    """Midnight of *now*'s calendar day in the local timezone (tz-aware)."""
    current = (now or datetime.now(timezone.utc)).astimezone()
    return current.replace(hour=0, minute=0, second=0, microsecond=0)
