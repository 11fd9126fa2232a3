"""Datetime utilities for common operations."""

from datetime import datetime, date, timedelta, timezone
from typing import Optional


def now() -> datetime:
    """Get current datetime in UTC."""
    return datetime.now(timezone.utc)


def today() -> date:
    """Get current date in UTC."""
    return datetime.now(timezone.utc).date()


def ensure_utc(dt: datetime) -> datetime:
    """
    Attach UTC to naive datetimes.

    SQLite hands timezone-aware columns back without tzinfo, so anything
    read from the database goes through here before being compared.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso_date(date_str: str) -> Optional[date]:
    """
    Parse a strict ``YYYY-MM-DD`` date.

    Args:
        date_str: Date string to parse

    Returns:
        Parsed date or None if invalid
    """
    try:
        return datetime.strptime(date_str.strip(), "%Y-%m-%d").date()
    except (ValueError, AttributeError):
        return None


def add_minutes(dt: datetime, minutes: int) -> datetime:
    """
    Add minutes to datetime.

    Args:
        dt: Datetime to add to
        minutes: Number of minutes to add (can be negative)

    Returns:
        New datetime
    """
    return dt + timedelta(minutes=minutes)


def is_past(dt: datetime | date) -> bool:
    """
    Check if date/datetime is in the past.

    Args:
        dt: Date or datetime to check

    Returns:
        True if in the past
    """
    if isinstance(dt, date) and not isinstance(dt, datetime):
        return dt < today()

    return ensure_utc(dt) < now()
