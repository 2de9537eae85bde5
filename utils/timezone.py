"""UTC-everywhere time handling. Local time only at document boundaries."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere.
    """
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.

    Raises ValueError if datetime is naive (no timezone).
    """
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot convert naive datetime to UTC. Datetime must be timezone-aware."
        )
    return dt.astimezone(timezone.utc)


def local_date(dt: datetime, tz_name: str) -> date:
    """
    Calendar date of a UTC instant in the given timezone.

    Invoices print the date the customer would see on their own calendar:
    an order placed at 2026-03-31T20:00Z is dated 1 April in Asia/Kolkata.

    Raises:
        ValueError: If datetime is naive or timezone name is invalid
    """
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot convert naive datetime. Datetime must be timezone-aware."
        )

    try:
        local_tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {tz_name}")

    return dt.astimezone(local_tz).date()


def format_display_date(value: date) -> str:
    """Indian day-first format used on printed invoices: 05/03/2026."""
    return value.strftime("%d/%m/%Y")


def parse_iso(iso_string: str) -> datetime:
    """
    Parse ISO 8601 datetime string to UTC datetime.

    A trailing 'Z' is accepted. Raises ValueError if string has no timezone info.
    """
    if iso_string.endswith("Z"):
        iso_string = iso_string[:-1] + "+00:00"
    dt = datetime.fromisoformat(iso_string)
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot parse naive datetime string. "
            "Include timezone offset (e.g., 'Z' or '+00:00')."
        )
    return to_utc(dt)
