from __future__ import annotations

from datetime import datetime
import logging
from pathlib import Path
from typing import BinaryIO

from icsio.errors import SerializationPreconditionError
from icsio.models import MAX_SEQUENCE, Calendar, Event
from icsio.timeutil import format_ical_datetime

logger = logging.getLogger(__name__)

CRLF = "\r\n"

# (property name, Event attribute) in emission order
EVENT_EMISSION_ORDER: tuple[tuple[str, str], ...] = (
    ("DTSTART", "dtstart"),
    ("DTEND", "dtend"),
    ("DTSTAMP", "dtstamp"),
    ("UID", "uid"),
    ("CREATED", "created"),
    ("DESCRIPTION", "description"),
    ("LAST-MODIFIED", "last_modified"),
    ("LOCATION", "location"),
    ("SEQUENCE", "sequence"),
    ("STATUS", "status"),
    ("SUMMARY", "summary"),
    ("TRANSP", "transp"),
)


def check_serializable(calendar: Calendar) -> None:
    """Raise SerializationPreconditionError for the first event the parser could not read back."""
    for index, event in enumerate(calendar.events):
        for property_name, attr in EVENT_EMISSION_ORDER:
            if getattr(event, attr) is None:
                raise SerializationPreconditionError(
                    event_index=index,
                    uid=event.uid,
                    field_name=property_name,
                )
        if not 0 <= event.sequence <= MAX_SEQUENCE:
            raise SerializationPreconditionError(
                event_index=index,
                uid=event.uid,
                field_name="SEQUENCE",
                reason=f"{event.sequence} is outside 0..{MAX_SEQUENCE}",
            )


def _format_value(value: object) -> str:
    if isinstance(value, datetime):
        return format_ical_datetime(value)
    return str(value)


def _header_lines(calendar: Calendar) -> list[str]:
    lines = ["BEGIN:VCALENDAR", f"PRODID:{calendar.prodid}"]
    if calendar.calscale is not None:
        lines.append(f"CALSCALE:{calendar.calscale}")
    lines.append(f"VERSION:{calendar.version}")
    if calendar.method is not None:
        lines.append(f"METHOD:{calendar.method}")
    if calendar.x_wr_calname is not None:
        lines.append(f"X-WR-CALNAME:{calendar.x_wr_calname}")
    if calendar.x_wr_timezone is not None:
        lines.append(f"X-WR-TIMEZONE:{calendar.x_wr_timezone}")
    return lines


def _event_lines(event: Event) -> list[str]:
    lines = ["BEGIN:VEVENT"]
    for property_name, attr in EVENT_EMISSION_ORDER:
        lines.append(f"{property_name}:{_format_value(getattr(event, attr))}")
    lines.append("END:VEVENT")
    return lines


def to_ics(calendar: Calendar) -> str:
    check_serializable(calendar)
    lines = _header_lines(calendar)
    for event in calendar.events:
        lines.extend(_event_lines(event))
    lines.append("END:VCALENDAR")
    return CRLF.join(lines) + CRLF


def serialize(calendar: Calendar, sink: BinaryIO) -> int:
    """Write the calendar as UTF-8 to a binary sink; nothing is written if a precondition fails."""
    payload = to_ics(calendar).encode("utf-8")
    sink.write(payload)
    logger.debug("ics_serialized events=%s bytes=%s", len(calendar.events), len(payload))
    return len(payload)


def serialize_to_file(calendar: Calendar, path: str | Path) -> Path:
    target = Path(path).expanduser()
    payload = to_ics(calendar).encode("utf-8")
    target.write_bytes(payload)
    logger.info("ics_exported path=%s events=%s", target, len(calendar.events))
    return target
