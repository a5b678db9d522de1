"""Datetime utility functions."""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from ordertrack.config import settings

# Timezone for API responses (from config)
API_TIMEZONE = ZoneInfo(settings.timezone)


def to_api_timezone(dt: datetime | None) -> datetime | None:
    """Convert a datetime to API timezone (from config).

    SQLite returns naive datetimes; those are treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(API_TIMEZONE)


def serialize_api_datetime(dt: datetime | None) -> str | None:
    """ISO 8601 string in API timezone, or None."""
    localized_dt = to_api_timezone(dt)
    return localized_dt.isoformat() if localized_dt else None
