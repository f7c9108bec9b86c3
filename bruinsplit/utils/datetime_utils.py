"""
Centralized datetime utilities for the BruinSplit server.

All timestamps are kept as timezone-aware UTC and transmitted either as
ISO 8601 strings with a 'Z' suffix or as epoch milliseconds (the format the
browser's Date.now() produces).
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Use this instead of datetime.utcnow() to ensure timezone awareness.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Ensure datetime is UTC timezone-aware.

    Converts naive datetime (assumed to be UTC) to timezone-aware UTC.
    If datetime is already timezone-aware, converts to UTC.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def to_iso_utc(dt: datetime | None) -> str | None:
    """
    Convert datetime to ISO format with 'Z' suffix (UTC indicator).

    Example:
        >>> dt = datetime(2025, 12, 16, 11, 30, 0, 123456, tzinfo=timezone.utc)
        >>> to_iso_utc(dt)
        "2025-12-16T11:30:00.123456Z"
    """
    if dt is None:
        return None

    utc_dt = ensure_utc(dt)
    return utc_dt.isoformat().replace('+00:00', 'Z')


def epoch_ms(dt: datetime | None = None) -> int:
    """
    Milliseconds since the Unix epoch for dt (defaults to now).

    Example:
        >>> epoch_ms(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc))
        1000
    """
    if dt is None:
        dt = utc_now()
    return int(ensure_utc(dt).timestamp() * 1000)
