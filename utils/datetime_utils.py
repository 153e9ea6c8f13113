"""
Datetime utilities for consistent timezone handling across the service.
Task due dates, windows and suppression records all use timezone-aware UTC.
"""

from datetime import datetime, timezone

from pydantic import TypeAdapter, ValidationError

_DATETIME_ADAPTER = TypeAdapter(datetime)


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    This is the default clock of the reminder scanner.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso_datetime(iso_string: str) -> datetime:
    """
    Parse ISO format datetime string to timezone-aware datetime.
    Handles 'Z' and '+00:00' suffixes and fractions of any precision
    (PostgREST trims trailing zeros, e.g. '10:03:00.12345+00:00').

    Args:
        iso_string: ISO format datetime string

    Returns:
        Timezone-aware datetime object

    Raises:
        ValueError: If datetime string cannot be parsed
    """
    if not isinstance(iso_string, str):
        raise ValueError(f"Invalid datetime string: {iso_string!r}")

    try:
        return ensure_utc(_DATETIME_ADAPTER.validate_python(iso_string))
    except ValidationError as e:
        raise ValueError(f"Invalid datetime string: {iso_string}") from e


def to_iso_string(dt: datetime) -> str:
    """Convert datetime to an ISO string, assuming UTC for naive values."""
    return ensure_utc(dt).isoformat()
