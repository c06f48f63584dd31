from datetime import datetime, timedelta, timezone

import pytest

from icsio.models import Calendar, Event, add_event, create


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_create_builds_empty_calendar_with_header_metadata() -> None:
    calendar = create(
        "-//My Business Inc//My Calendar 70.9054//EN",
        "2.0",
        "GREGORIAN",
        "PUBLISH",
        "example@gmail.com",
        "America/New_York",
    )

    assert calendar == Calendar(
        prodid="-//My Business Inc//My Calendar 70.9054//EN",
        version="2.0",
        calscale="GREGORIAN",
        method="PUBLISH",
        x_wr_calname="example@gmail.com",
        x_wr_timezone="America/New_York",
    )
    assert calendar.events == []
    assert calendar.has_method is True


@pytest.mark.parametrize("prodid,version", [("", "2.0"), ("-//x//", "")])
def test_create_rejects_empty_identity(prodid: str, version: str) -> None:
    with pytest.raises(ValueError, match="must not be empty"):
        create(prodid, version)


def test_add_event_appends_to_the_end() -> None:
    calendar = create("-//x//", "2.0")

    add_event(calendar, Event(uid="a"))
    calendar.add_event(Event(uid="b"))

    assert [event.uid for event in calendar.events] == ["a", "b"]


def test_calendars_do_not_share_event_lists() -> None:
    first = create("-//x//", "2.0")
    second = create("-//x//", "2.0")

    first.add_event(Event(uid="only-first"))

    assert second.events == []


def test_is_all_day_needs_both_bounds() -> None:
    assert Event(dtstart=_utc(2024, 1, 1)).is_all_day() is None


def test_is_all_day_compares_span_with_a_day() -> None:
    assert Event(dtstart=_utc(2024, 1, 1), dtend=_utc(2024, 1, 2)).is_all_day() is True
    assert Event(dtstart=_utc(2024, 1, 1, 9), dtend=_utc(2024, 1, 1, 17)).is_all_day() is False


def test_is_consistent_requires_uid_and_dtstamp() -> None:
    assert Event(uid="a", dtstart=_utc(2024, 1, 1)).is_consistent(False) is False
    assert Event(dtstamp=_utc(2024, 1, 1), dtstart=_utc(2024, 1, 1)).is_consistent(False) is False


def test_is_consistent_waives_dtstart_when_calendar_has_method() -> None:
    event = Event(uid="a", dtstamp=_utc(2024, 1, 1))

    assert event.is_consistent(False) is False
    assert event.is_consistent(True) is True


def test_event_timestamps_are_stored_as_whole_second_utc() -> None:
    plus_three = timezone(timedelta(hours=3))

    event = Event(
        dtstamp=datetime(2024, 1, 1, 11, 0, 0, 123456, tzinfo=plus_three),
        dtstart=datetime(2024, 1, 1, 8, 0),
    )

    assert event.dtstamp == _utc(2024, 1, 1, 8, 0)
    assert event.dtstamp.tzinfo is timezone.utc
    assert event.dtstart.tzinfo is timezone.utc


def test_add_event_normalises_timestamps_set_after_construction() -> None:
    calendar = create("-//x//", "2.0")
    event = Event(uid="a")
    event.created = datetime(2024, 1, 1, 8, 0, 0, 999999)

    add_event(calendar, event)

    assert calendar.events[0].created == _utc(2024, 1, 1, 8, 0)
