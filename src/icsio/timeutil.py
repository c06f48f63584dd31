from __future__ import annotations

from datetime import datetime, timezone
import re

from icsio.errors import DateTimeParseError

ICAL_DATETIME_FORMAT = "%Y%m%dT%H%M%S"

_DATETIME_PATTERN = re.compile(r"[0-9]{8}T[0-9]{6}Z?")
_DATE_PATTERN = re.compile(r"[0-9]{8}")


def parse_ical_datetime(value: str) -> datetime:
    """Parse strict YYYYMMDDTHHMMSS[Z] into an aware UTC datetime. Raises DateTimeParseError."""
    if not _DATETIME_PATTERN.fullmatch(value):
        raise DateTimeParseError(f"Date-time must match YYYYMMDDTHHMMSS[Z]: '{value}'")

    try:
        naive = datetime.strptime(value.rstrip("Z"), ICAL_DATETIME_FORMAT)
    except ValueError as exc:
        raise DateTimeParseError(f"Date-time out of range: '{value}'") from exc
    return naive.replace(tzinfo=timezone.utc)


def parse_ical_date(value: str) -> datetime:
    """Parse strict YYYYMMDD as midnight UTC. Raises DateTimeParseError."""
    if not _DATE_PATTERN.fullmatch(value):
        raise DateTimeParseError(f"Date must match YYYYMMDD: '{value}'")
    return parse_ical_datetime(f"{value}T000000Z")


def to_ical_precision(dt: datetime) -> datetime:
    """Return `dt` as an aware UTC datetime truncated to whole seconds; naive values are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    return dt.replace(microsecond=0)


def format_ical_datetime(dt: datetime) -> str:
    """Format a datetime as YYYYMMDDTHHMMSSZ; naive values are taken as UTC."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    # strftime does not zero-pad years below 1000 on every platform
    return f"{dt.year:04d}{dt.month:02d}{dt.day:02d}T{dt.hour:02d}{dt.minute:02d}{dt.second:02d}Z"
