from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from icsio.timeutil import to_ical_precision

MAX_SEQUENCE = 2**32 - 1

EVENT_DATETIME_ATTRS = ("dtstamp", "dtstart", "dtend", "created", "last_modified")


@dataclass(frozen=True)
class Recurrence:
    """Raw RRULE frequency with an optional UNTIL bound; never expanded."""

    freq: str
    until: datetime | None = None


@dataclass
class Event:
    """One VEVENT. Every field is optional; timestamps are aware UTC datetimes."""

    dtstamp: datetime | None = None
    uid: str | None = None
    dtstart: datetime | None = None
    dtend: datetime | None = None
    created: datetime | None = None
    last_modified: datetime | None = None
    description: str | None = None
    location: str | None = None
    organizer: str | None = None
    sequence: int | None = None
    status: str | None = None
    summary: str | None = None
    transp: str | None = None
    repeat: Recurrence | None = None
    class_: str | None = None
    geo: str | None = None
    priority: str | None = None
    recur_id: str | None = None
    url: str | None = None

    def __post_init__(self) -> None:
        self.normalize_timestamps()

    def normalize_timestamps(self) -> None:
        """Bring every timestamp to whole-second UTC, the precision the wire format carries."""
        for attr in EVENT_DATETIME_ATTRS:
            value = getattr(self, attr)
            if value is not None:
                setattr(self, attr, to_ical_precision(value))

    def is_all_day(self) -> bool | None:
        if self.dtstart is None or self.dtend is None:
            return None
        return self.dtend - self.dtstart >= timedelta(hours=24)

    def is_consistent(self, calendar_has_method: bool) -> bool:
        """uid and dtstamp are required; dtstart too unless the calendar declares a METHOD."""
        return (
            self.dtstamp is not None
            and self.uid is not None
            and (calendar_has_method or self.dtstart is not None)
        )


@dataclass
class Calendar:
    prodid: str
    version: str
    calscale: str | None = None
    method: str | None = None
    x_wr_calname: str | None = None
    x_wr_timezone: str | None = None
    name: str | None = None
    events: list[Event] = field(default_factory=list)

    @property
    def has_method(self) -> bool:
        return self.method is not None

    def add_event(self, event: Event) -> None:
        event.normalize_timestamps()
        self.events.append(event)


def create(
    prodid: str,
    version: str,
    calscale: str | None = None,
    method: str | None = None,
    calname: str | None = None,
    timezone: str | None = None,
    name: str | None = None,
) -> Calendar:
    """Build an empty calendar from user-supplied header metadata."""
    if not prodid:
        raise ValueError("prodid must not be empty.")
    if not version:
        raise ValueError("version must not be empty.")
    return Calendar(
        prodid=prodid,
        version=version,
        calscale=calscale,
        method=method,
        x_wr_calname=calname,
        x_wr_timezone=timezone,
        name=name,
    )


def add_event(calendar: Calendar, event: Event) -> None:
    calendar.add_event(event)
