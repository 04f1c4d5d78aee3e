"""Date parsing utilities."""

from datetime import date, datetime, UTC
from typing import Optional, Union

from dateutil import parser as date_parser


def ensure_utc(value: datetime) -> datetime:
    """Return an aware datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def parse_datetime(value: Union[str, date, datetime, None]) -> Optional[datetime]:
    """Parse a timestamp into an aware datetime.

    Accepts ISO-8601 strings (as written by scrapers and the last-run
    marker), ``date`` and ``datetime`` objects. Dates become midnight UTC.

    Args:
        value: Timestamp in one of the supported forms, or None

    Returns:
        Aware datetime, or None when value is None or blank

    Raises:
        ValueError: If the string cannot be parsed
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)

    value = value.strip()
    if not value:
        return None
    try:
        return ensure_utc(date_parser.isoparse(value))
    except (ValueError, TypeError):
        pass
    try:
        return ensure_utc(date_parser.parse(value))
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{value}': {e}")


def parse_date(value: Union[str, date, datetime]) -> date:
    """Parse a transaction date.

    Scrapers report dates as ISO timestamps (often with a time component);
    only the calendar date in UTC is kept.

    Raises:
        ValueError: If the value is empty or cannot be parsed
    """
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    parsed = parse_datetime(value)
    if parsed is None:
        raise ValueError("Empty date string")
    return parsed.astimezone(UTC).date()
