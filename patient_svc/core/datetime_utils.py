"""
UTC-first datetime utilities for the Patient Service API.

- Creation timestamps are stored as ISO 8601 UTC strings with microseconds,
  so that lexical order in SQLite matches creation order
- Birth dates are plain calendar dates stored as YYYY-MM-DD
- Query instants (created-after) are ISO dates or datetimes; naive values
  are taken as UTC

Usage:
    from core.datetime_utils import utc_now, parse_datetime, to_db_string

    now = utc_now()
    after = parse_datetime("2025-01-01")   # midnight UTC
    stored = to_db_string(now)            # "2025-01-01T10:30:00.123456Z"
"""
from datetime import date, datetime, timezone
from typing import Union

DB_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.

    - If datetime is naive (no timezone), assumes it's already UTC
    - If datetime has timezone, converts to UTC

    Example:
        >>> from datetime import timedelta
        >>> bogota = timezone(timedelta(hours=-5))
        >>> to_utc(datetime(2024, 1, 15, 5, 0, tzinfo=bogota)).hour
        10
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_datetime(value: Union[str, datetime, date]) -> datetime:
    """
    Parse an instant to a UTC datetime.

    Accepts a datetime, a date (midnight UTC), or an ISO 8601 string with or
    without a time part and with or without an offset ("Z" included).

    Raises:
        ValueError: If the value cannot be parsed.

    Examples:
        >>> parse_datetime("2024-01-15T10:30:00Z")
        datetime.datetime(2024, 1, 15, 10, 30, tzinfo=datetime.timezone.utc)

        >>> parse_datetime("2024-01-15")
        datetime.datetime(2024, 1, 15, 0, 0, tzinfo=datetime.timezone.utc)
    """
    if isinstance(value, datetime):
        return to_utc(value)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if not isinstance(value, str):
        raise ValueError(f"Expected datetime or string, got {type(value).__name__}")

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return to_utc(datetime.fromisoformat(text))
    except ValueError:
        raise ValueError(f"Cannot parse datetime: '{value}'") from None


# =============================================================================
# DATABASE HELPERS
# =============================================================================

def to_db_string(dt: datetime) -> str:
    """
    Convert datetime to string format for SQLite storage.

    Microseconds are kept so that ordering by the stored string follows
    creation order even for rows written within the same second.
    """
    return to_utc(dt).strftime(DB_TIMESTAMP_FORMAT)


def from_db_string(value: str) -> datetime:
    """Read a timestamp written by to_db_string()."""
    return datetime.strptime(value, DB_TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def date_to_db_string(value: date) -> str:
    """Store a calendar date as YYYY-MM-DD."""
    return value.isoformat()


def date_from_db_string(value: str) -> date:
    """Read a calendar date stored by date_to_db_string()."""
    return date.fromisoformat(value)
