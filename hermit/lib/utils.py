"""Shared utility functions."""
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

# SQLite datetime format (space separator, not T)
_SQLITE_DATETIME_FMT = "%Y-%m-%d %H:%M:%S"


def utcnow() -> datetime:
    """Return current UTC time as an aware datetime."""
    return datetime.now(UTC)


def to_sqlite(dt: datetime) -> str:
    """Format a datetime the way the SQLite tables store it (UTC)."""
    return dt.astimezone(UTC).strftime(_SQLITE_DATETIME_FMT)


def civil_components(dt: datetime, timezone: str) -> tuple[str, str]:
    """Split ``dt`` into (date, time) strings in the given civil time zone.

    Returns:
        ``("YYYY-MM-DD", "HH:MM:SS")`` as seen on a wall clock in ``timezone``.
    """
    local = dt.astimezone(ZoneInfo(timezone))
    return local.strftime("%Y-%m-%d"), local.strftime("%H:%M:%S")
