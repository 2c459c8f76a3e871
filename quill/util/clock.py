"""UTC time helpers."""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def advance(previous: Optional[datetime]) -> datetime:
    """Current UTC time, strictly later than ``previous``.

    Stored timestamps have microsecond resolution, so two writes within the
    same microsecond are pushed one microsecond apart.
    """
    now = utcnow()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now
