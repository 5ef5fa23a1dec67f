from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_day_range(now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """
    Return the [start, end) bounds of the UTC calendar day containing `now`.

    Both bounds are UTC-naive, matching how timestamps are stored.
    """
    now = now or utcnow()
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def time_ago(dt: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Human-readable relative age, e.g. "3 hours ago".

    Picks the largest unit with a value strictly greater than one, falling
    back to seconds.
    """
    if dt is None:
        return ""
    now = now or utcnow()
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    seconds = max((now - dt).total_seconds(), 0)

    for unit, size in (
        ("year", 31536000),
        ("month", 2592000),
        ("day", 86400),
        ("hour", 3600),
        ("minute", 60),
    ):
        interval = seconds / size
        if interval > 1:
            count = int(interval)
            return f"{count} {unit}{'' if count == 1 else 's'} ago"

    count = int(seconds)
    return f"{count} second{'' if count == 1 else 's'} ago"
