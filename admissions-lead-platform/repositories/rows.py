"""
Row conversion helpers shared by the repositories.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional


def to_iso_utc(dt: Optional[datetime]) -> Optional[str]:
    """
    Convert a timezone-aware datetime to an ISO-8601 string in UTC.

    Notes:
    - Domain objects require UTC timestamps (offset 0). We still normalize via
      `astimezone(timezone.utc)` for safety.
    """

    if dt is None:
        return None
    if dt.tzinfo is None or dt.utcoffset() is None:
        raise ValueError("timestamps must be timezone-aware (UTC)")
    return dt.astimezone(timezone.utc).isoformat()


def parse_utc_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a stored timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    Empty values map to None.
    """

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        # Python's fromisoformat doesn't consistently accept 'Z' across versions.
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    # A naive timestamp is interpreted as UTC so the domain's UTC invariant holds.
    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def optional_str(row: Any, key: str) -> Optional[str]:
    value = row.get(key)
    return str(value) if value not in (None, "") else None
