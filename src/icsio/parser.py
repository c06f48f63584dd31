from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
import logging
import re

from dateutil.rrule import FREQNAMES

from icsio.diagnostics import Diagnostic, DiagnosticKind, Diagnostics
from icsio.errors import (
    DateTimeParseError,
    DuplicateFieldError,
    InvalidValueError,
    MissingPropertyError,
    StructuralError,
)
from icsio.models import MAX_SEQUENCE, Calendar, Event, Recurrence
from icsio.timeutil import parse_ical_date, parse_ical_datetime
from icsio.tokenizer import Property, read_property, split_records

logger = logging.getLogger(__name__)

_CALENDAR_TEXT_FIELDS: dict[str, str] = {
    "CALSCALE": "calscale",
    "METHOD": "method",
    "NAME": "name",
    "X-WR-CALNAME": "x_wr_calname",
    "X-WR-TIMEZONE": "x_wr_timezone",
}
_EVENT_TEXT_FIELDS: dict[str, str] = {
    "UID": "uid",
    "DESCRIPTION": "description",
    "LOCATION": "location",
    "ORGANIZER": "organizer",
    "STATUS": "status",
    "SUMMARY": "summary",
    "TRANSP": "transp",
    "CLASS": "class_",
    "GEO": "geo",
    "PRIORITY": "priority",
    "RECURRENCE-ID": "recur_id",
    "RECUR-ID": "recur_id",
    "URL": "url",
}
_EVENT_DATETIME_FIELDS: dict[str, str] = {
    "DTSTAMP": "dtstamp",
    "DTSTART": "dtstart",
    "DTEND": "dtend",
    "CREATED": "created",
    "LAST-MODIFIED": "last_modified",
}
_ONCE_PER_CALENDAR: set[str] = {"PRODID", "VERSION"}
_ONCE_PER_EVENT: set[str] = {"DTSTART"}
_SEQUENCE_PATTERN = re.compile(r"[0-9]+")


class ParseState(Enum):
    START = "start"
    IN_CALENDAR = "in_calendar"
    IN_EVENT = "in_event"
    DONE = "done"


@dataclass(frozen=True)
class ParseResult:
    calendar: Calendar
    diagnostics: list[Diagnostic]


class _CalendarParser:
    """Consumes properties one at a time and builds a Calendar.

    Line-level problems go to `diagnostics`; structural problems and values
    that cannot be partially valid raise an IcsError subclass.
    """

    def __init__(self, diagnostics: Diagnostics):
        self.diagnostics = diagnostics
        self.state = ParseState.START
        self._header: dict[str, str] = {}
        self._events: list[Event] = []
        self._event: Event | None = None
        self._skipping: list[str] = []

    def feed(self, prop: Property) -> None:
        if self._skipping:
            self._skip_component_line(prop)
            return

        if self.state is ParseState.START:
            if prop.name != "BEGIN" or prop.value.strip().upper() != "VCALENDAR":
                raise StructuralError("input must start with BEGIN:VCALENDAR", line_no=prop.line_no)
            self.state = ParseState.IN_CALENDAR
        elif self.state is ParseState.IN_CALENDAR:
            self._feed_calendar(prop)
        elif self.state is ParseState.IN_EVENT:
            self._feed_event(prop)

    def finish(self, *, last_line_no: int | None) -> Calendar:
        if self.state is ParseState.DONE:
            return self._build_calendar()
        if self._skipping:
            expected = f"END:{self._skipping[-1]}"
        elif self.state is ParseState.IN_EVENT:
            expected = "END:VEVENT"
        elif self.state is ParseState.IN_CALENDAR:
            expected = "END:VCALENDAR"
        else:
            raise StructuralError("input is empty; expected BEGIN:VCALENDAR")
        raise StructuralError(f"unexpected end of input; expected {expected}", line_no=last_line_no)

    def _feed_calendar(self, prop: Property) -> None:
        name = prop.name
        if name == "BEGIN":
            component = prop.value.strip().upper()
            if component == "VEVENT":
                self._event = Event()
                self.state = ParseState.IN_EVENT
            elif component == "VCALENDAR":
                raise StructuralError("nested BEGIN:VCALENDAR", line_no=prop.line_no)
            else:
                self._start_skipping(component, prop.line_no)
            return

        if name == "END":
            component = prop.value.strip().upper()
            if component != "VCALENDAR":
                raise StructuralError(f"END:{component} without matching BEGIN", line_no=prop.line_no)
            self.state = ParseState.DONE
            return

        if name in _ONCE_PER_CALENDAR:
            if name in self._header:
                raise DuplicateFieldError(name, line_no=prop.line_no)
            self._header[name] = prop.value
        elif name in _CALENDAR_TEXT_FIELDS:
            self._header[name] = prop.value
        else:
            self._warn_unknown(prop)

    def _feed_event(self, prop: Property) -> None:
        assert self._event is not None
        event = self._event
        name = prop.name

        if name == "BEGIN":
            component = prop.value.strip().upper()
            if component in {"VEVENT", "VCALENDAR"}:
                raise StructuralError(f"BEGIN:{component} inside VEVENT", line_no=prop.line_no)
            self._start_skipping(component, prop.line_no)
            return

        if name == "END":
            component = prop.value.strip().upper()
            if component != "VEVENT":
                raise StructuralError(f"END:{component} inside VEVENT", line_no=prop.line_no)
            self._close_event(event, prop.line_no)
            return

        # a DTSTART left unset by a recovered decode failure may still be supplied
        if name in _ONCE_PER_EVENT and getattr(event, _EVENT_DATETIME_FIELDS[name]) is not None:
            raise DuplicateFieldError(name, line_no=prop.line_no)

        if name in _EVENT_TEXT_FIELDS:
            setattr(event, _EVENT_TEXT_FIELDS[name], prop.value)
        elif name in _EVENT_DATETIME_FIELDS:
            self._assign_datetime(event, prop)
        elif name == "SEQUENCE":
            event.sequence = _parse_sequence(prop)
        elif name == "RRULE":
            self._assign_rrule(event, prop)
        else:
            self._warn_unknown(prop)

    def _close_event(self, event: Event, line_no: int) -> None:
        if not event.is_consistent("METHOD" in self._header):
            self.diagnostics.warn(
                DiagnosticKind.INCONSISTENT_EVENT,
                f"event uid={event.uid or '-'} lacks UID, DTSTAMP or a required DTSTART",
                line_no=line_no,
            )
        self._events.append(event)
        self._event = None
        self.state = ParseState.IN_CALENDAR

    def _assign_datetime(self, event: Event, prop: Property) -> None:
        try:
            value = _decode_instant(prop)
        except DateTimeParseError as exc:
            if self._is_mandatory(prop.name):
                raise InvalidValueError(prop.name, prop.value, str(exc), line_no=prop.line_no) from exc
            self.diagnostics.warn(
                DiagnosticKind.INVALID_VALUE,
                f"{prop.name} left unset: {exc}",
                line_no=prop.line_no,
            )
            return
        setattr(event, _EVENT_DATETIME_FIELDS[prop.name], value)

    def _is_mandatory(self, name: str) -> bool:
        if name == "DTSTAMP":
            return True
        return name == "DTSTART" and "METHOD" not in self._header

    def _assign_rrule(self, event: Event, prop: Property) -> None:
        parts = prop.value.split(";")
        head = parts[0]
        if not head.startswith("FREQ="):
            self.diagnostics.warn(
                DiagnosticKind.INVALID_RRULE,
                f"RRULE discarded, first component must be FREQ=: '{prop.value}'",
                line_no=prop.line_no,
            )
            return

        freq = head[len("FREQ="):]
        if freq not in FREQNAMES:
            self.diagnostics.warn(
                DiagnosticKind.UNKNOWN_FREQUENCY,
                f"RRULE frequency '{freq}' kept as-is",
                line_no=prop.line_no,
            )

        until: datetime | None = None
        for position, tail in enumerate(parts[1:], start=1):
            if position == 1 and tail.startswith("UNTIL="):
                raw_until = tail[len("UNTIL="):].strip()
                try:
                    until = parse_ical_datetime(raw_until) if "T" in raw_until else parse_ical_date(raw_until)
                except DateTimeParseError as exc:
                    self.diagnostics.warn(
                        DiagnosticKind.INVALID_VALUE,
                        f"RRULE UNTIL left unset: {exc}",
                        line_no=prop.line_no,
                    )
            else:
                self.diagnostics.warn(
                    DiagnosticKind.INVALID_RRULE,
                    f"RRULE component '{tail}' ignored; only FREQ= and a following UNTIL= are read",
                    line_no=prop.line_no,
                )

        event.repeat = Recurrence(freq=freq, until=until)

    def _start_skipping(self, component: str, line_no: int) -> None:
        self.diagnostics.warn(
            DiagnosticKind.UNSUPPORTED_COMPONENT,
            f"{component} block skipped",
            line_no=line_no,
        )
        self._skipping.append(component)

    def _skip_component_line(self, prop: Property) -> None:
        component = prop.value.strip().upper()
        if prop.name == "BEGIN":
            self._skipping.append(component)
        elif prop.name == "END":
            if component != self._skipping[-1]:
                raise StructuralError(
                    f"END:{component} while END:{self._skipping[-1]} was expected",
                    line_no=prop.line_no,
                )
            self._skipping.pop()

    def _warn_unknown(self, prop: Property) -> None:
        self.diagnostics.warn(
            DiagnosticKind.UNKNOWN_PROPERTY,
            f"unknown {self.state.value} property '{prop.raw_key}' ignored",
            line_no=prop.line_no,
        )

    def _build_calendar(self) -> Calendar:
        for required in ("PRODID", "VERSION"):
            if required not in self._header:
                raise MissingPropertyError(required)
        fields = {
            attr: self._header[key]
            for key, attr in _CALENDAR_TEXT_FIELDS.items()
            if key in self._header
        }
        return Calendar(
            prodid=self._header["PRODID"],
            version=self._header["VERSION"],
            events=self._events,
            **fields,
        )


def _decode_instant(prop: Property) -> datetime:
    raw = prop.value.strip()
    if prop.is_date_only:
        return parse_ical_date(raw)
    return parse_ical_datetime(raw)


def _parse_sequence(prop: Property) -> int:
    raw = prop.value.strip()
    if not _SEQUENCE_PATTERN.fullmatch(raw):
        raise InvalidValueError("SEQUENCE", prop.value, "must be a non-negative integer", line_no=prop.line_no)
    value = int(raw)
    if value > MAX_SEQUENCE:
        raise InvalidValueError("SEQUENCE", prop.value, "exceeds 32-bit range", line_no=prop.line_no)
    return value


def parse_with_diagnostics(text: str) -> ParseResult:
    """Parse calendar text, returning the calendar with every recovered problem."""
    diagnostics = Diagnostics()
    parser = _CalendarParser(diagnostics)
    records = split_records(text)
    last_line_no: int | None = None

    for position, (line_no, record) in enumerate(records):
        if parser.state is ParseState.DONE:
            diagnostics.warn(
                DiagnosticKind.TRAILING_CONTENT,
                f"{len(records) - position} record(s) after END:VCALENDAR ignored",
                line_no=line_no,
            )
            break
        last_line_no = line_no
        prop = read_property(line_no, record, diagnostics)
        if prop is None:
            if parser.state is ParseState.START:
                raise StructuralError("input must start with BEGIN:VCALENDAR", line_no=line_no)
            continue
        parser.feed(prop)

    calendar = parser.finish(last_line_no=last_line_no)
    logger.debug(
        "ics_parsed events=%s diagnostics=%s",
        len(calendar.events),
        len(diagnostics),
    )
    return ParseResult(calendar=calendar, diagnostics=list(diagnostics.records))


def parse(text: str) -> Calendar:
    return parse_with_diagnostics(text).calendar
