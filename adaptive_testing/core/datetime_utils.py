"""
Datetime utility functions for handling timezone-aware datetimes.
"""
from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Return the current datetime in UTC timezone.

    Session start times and response timestamps default to this value so
    tests can patch a single function.
    """
    return datetime.now(timezone.utc)


def ensure_timezone_aware(dt: datetime) -> datetime:
    """
    Treat naive datetimes as UTC.

    Persisted session snapshots may round-trip through stores that drop
    tzinfo.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt
