from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
import io

import pytest

from icsio.errors import SerializationPreconditionError
from icsio.models import MAX_SEQUENCE, Event, Recurrence, create
from icsio.parser import parse
from icsio.serializer import EVENT_EMISSION_ORDER, check_serializable, serialize, serialize_to_file, to_ics


def _full_event(uid: str, day: int = 2) -> Event:
    stamp = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
    return Event(
        dtstart=datetime(2024, 1, day, 10, 0, tzinfo=timezone.utc),
        dtend=datetime(2024, 1, day, 11, 30, tzinfo=timezone.utc),
        dtstamp=stamp,
        uid=uid,
        created=stamp,
        description="Planning session",
        last_modified=datetime(2024, 1, 1, 9, 15, 5, tzinfo=timezone.utc),
        location="Homestead FL",
        sequence=0,
        status="CONFIRMED",
        summary="My business (Not available)",
        transp="OPAQUE",
    )


def test_to_ics_emits_fixed_order_with_crlf() -> None:
    calendar = create("-//Acme//EN", "2.0", "GREGORIAN", "PUBLISH", "Team", "Europe/Moscow")
    calendar.add_event(_full_event("786566jhjh5546@google.com"))

    assert to_ics(calendar) == (
        "BEGIN:VCALENDAR\r\n"
        "PRODID:-//Acme//EN\r\n"
        "CALSCALE:GREGORIAN\r\n"
        "VERSION:2.0\r\n"
        "METHOD:PUBLISH\r\n"
        "X-WR-CALNAME:Team\r\n"
        "X-WR-TIMEZONE:Europe/Moscow\r\n"
        "BEGIN:VEVENT\r\n"
        "DTSTART:20240102T100000Z\r\n"
        "DTEND:20240102T113000Z\r\n"
        "DTSTAMP:20240101T080000Z\r\n"
        "UID:786566jhjh5546@google.com\r\n"
        "CREATED:20240101T080000Z\r\n"
        "DESCRIPTION:Planning session\r\n"
        "LAST-MODIFIED:20240101T091505Z\r\n"
        "LOCATION:Homestead FL\r\n"
        "SEQUENCE:0\r\n"
        "STATUS:CONFIRMED\r\n"
        "SUMMARY:My business (Not available)\r\n"
        "TRANSP:OPAQUE\r\n"
        "END:VEVENT\r\n"
        "END:VCALENDAR\r\n"
    )


def test_to_ics_omits_absent_optional_header_fields() -> None:
    assert to_ics(create("-//x//", "2.0")) == "BEGIN:VCALENDAR\r\nPRODID:-//x//\r\nVERSION:2.0\r\nEND:VCALENDAR\r\n"


def test_every_line_ends_with_crlf() -> None:
    calendar = create("-//x//", "2.0")
    calendar.add_event(_full_event("a"))

    text = to_ics(calendar)

    assert text.endswith("\r\n")
    assert "\n" not in text.replace("\r\n", "")


def test_round_trip_preserves_emitted_fields() -> None:
    calendar = create("-//x//", "2.0", method="PUBLISH")
    for index, uid in enumerate(("a", "b", "c"), start=2):
        calendar.add_event(_full_event(uid, day=index))

    restored = parse(to_ics(calendar))

    assert [event.uid for event in restored.events] == ["a", "b", "c"]
    for original, parsed in zip(calendar.events, restored.events):
        for _, attr in EVENT_EMISSION_ORDER:
            assert getattr(parsed, attr) == getattr(original, attr), attr
    assert restored.method == "PUBLISH"


def test_fields_outside_emission_list_are_not_written() -> None:
    calendar = create("-//x//", "2.0")
    calendar.add_event(replace(_full_event("a"), organizer="mailto:x@example.com", repeat=Recurrence("DAILY")))

    text = to_ics(calendar)

    assert "ORGANIZER" not in text
    assert "RRULE" not in text


def test_missing_field_is_a_structured_precondition_error() -> None:
    calendar = create("-//x//", "2.0")
    calendar.add_event(_full_event("ok"))
    calendar.add_event(replace(_full_event("broken"), location=None))

    with pytest.raises(SerializationPreconditionError) as exc_info:
        check_serializable(calendar)

    assert exc_info.value.event_index == 1
    assert exc_info.value.uid == "broken"
    assert exc_info.value.field_name == "LOCATION"


def test_precondition_reports_first_field_in_emission_order() -> None:
    calendar = create("-//x//", "2.0")
    calendar.add_event(Event(uid="bare"))

    with pytest.raises(SerializationPreconditionError, match="DTSTART"):
        to_ics(calendar)


def test_serialize_writes_utf8_bytes_to_sink() -> None:
    calendar = create("-//x//", "2.0")
    calendar.add_event(replace(_full_event("a"), summary="Встреча"))
    sink = io.BytesIO()

    written = serialize(calendar, sink)

    assert sink.getvalue() == to_ics(calendar).encode("utf-8")
    assert written == len(sink.getvalue())


def test_serialize_writes_nothing_when_precondition_fails() -> None:
    calendar = create("-//x//", "2.0")
    calendar.add_event(Event(uid="bare"))
    sink = io.BytesIO()

    with pytest.raises(SerializationPreconditionError):
        serialize(calendar, sink)

    assert sink.getvalue() == b""


def test_serialize_to_file(tmp_path) -> None:
    calendar = create("-//x//", "2.0")
    calendar.add_event(_full_event("a"))
    target = tmp_path / "out.ics"

    result = serialize_to_file(calendar, target)

    assert result == target
    assert target.read_bytes() == to_ics(calendar).encode("utf-8")


def test_serialize_to_file_leaves_no_file_on_precondition_error(tmp_path) -> None:
    calendar = create("-//x//", "2.0")
    calendar.add_event(Event(uid="bare"))
    target = tmp_path / "out.ics"

    with pytest.raises(SerializationPreconditionError):
        serialize_to_file(calendar, target)

    assert not target.exists()


def test_round_trip_with_current_timestamps() -> None:
    now = datetime.now(timezone.utc)
    calendar = create("-//x//", "2.0")
    calendar.add_event(
        replace(
            _full_event("live"),
            dtstamp=now,
            created=now,
            last_modified=now,
            dtstart=datetime(2024, 1, 1, 8, 0),
        )
    )

    restored = parse(to_ics(calendar)).events[0]

    for _, attr in EVENT_EMISSION_ORDER:
        assert getattr(restored, attr) == getattr(calendar.events[0], attr), attr
    assert restored.dtstamp == now.replace(microsecond=0)


@pytest.mark.parametrize("sequence", [-1, MAX_SEQUENCE + 1])
def test_sequence_outside_32_bit_range_is_a_precondition_error(sequence: int) -> None:
    calendar = create("-//x//", "2.0")
    calendar.add_event(replace(_full_event("seq"), sequence=sequence))
    sink = io.BytesIO()

    with pytest.raises(SerializationPreconditionError, match="invalid SEQUENCE") as exc_info:
        serialize(calendar, sink)

    assert exc_info.value.field_name == "SEQUENCE"
    assert exc_info.value.event_index == 0
    assert sink.getvalue() == b""


def test_largest_sequence_is_written_and_read_back() -> None:
    calendar = create("-//x//", "2.0")
    calendar.add_event(replace(_full_event("seq"), sequence=MAX_SEQUENCE))

    assert parse(to_ics(calendar)).events[0].sequence == MAX_SEQUENCE
