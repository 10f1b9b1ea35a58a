from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from app.services.calendar.events import (
    MalformedCalendarEventError,
    deduplicate_commitments,
    infer_energy_level,
    infer_focus_types,
    parse_calendar_event,
    parse_calendar_events,
)
from app.services.planning.types import EnergyLevel, FocusType, TimeSlot


def _google_event(**overrides):
    event = {
        "id": "evt-1",
        "summary": "Architecture review",
        "start": {"dateTime": "2025-01-15T10:00:00Z"},
        "end": {"dateTime": "2025-01-15T11:00:00Z"},
        "attendees": [{"email": "a@example.com"}, {"email": "b@example.com"}],
    }
    event.update(overrides)
    return event


def test_parses_google_timed_event() -> None:
    slot = parse_calendar_event(_google_event(), "google")

    assert slot.start_time == datetime(2025, 1, 15, 10, tzinfo=timezone.utc)
    assert slot.end_time == datetime(2025, 1, 15, 11, tzinfo=timezone.utc)
    assert slot.is_available is False
    assert slot.source == "google"
    assert slot.event_id == "evt-1"
    assert slot.title == "Architecture review"
    assert slot.preferred_focus_types == (FocusType.TECHNICAL, FocusType.SOCIAL)


def test_all_day_event_blocks_through_end_date() -> None:
    zone = ZoneInfo("America/New_York")
    event = _google_event(start={"date": "2025-01-15"}, end={"date": "2025-01-16"})

    slot = parse_calendar_event(event, "google", zone)

    assert slot.is_all_day is True
    assert slot.start_time == datetime(2025, 1, 15, 0, 0, tzinfo=zone)
    assert slot.end_time == datetime.combine(datetime(2025, 1, 16).date(), time.max, tzinfo=zone)


def test_outlook_event_with_seven_fraction_digits() -> None:
    event = {
        "id": "AAMk",
        "subject": "Budget planning",
        "start": {"dateTime": "2025-01-15T14:00:00.0000000", "timeZone": "UTC"},
        "end": {"dateTime": "2025-01-15T14:30:00.0000000", "timeZone": "UTC"},
        "attendees": [],
        "importance": "normal",
    }

    slot = parse_calendar_event(event, "outlook")

    assert slot.start_time == datetime(2025, 1, 15, 14, tzinfo=timezone.utc)
    assert slot.end_time - slot.start_time == timedelta(minutes=30)
    assert slot.preferred_focus_types == (FocusType.ADMINISTRATIVE,)


def test_outlook_all_day_flag() -> None:
    event = {
        "subject": "Offsite",
        "isAllDay": True,
        "start": {"dateTime": "2025-01-15T00:00:00.0000000", "timeZone": "UTC"},
        "end": {"dateTime": "2025-01-16T00:00:00.0000000", "timeZone": "UTC"},
    }

    slot = parse_calendar_event(event, "outlook")

    assert slot.is_all_day is True
    assert slot.start_time == datetime(2025, 1, 15, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "event",
    [
        {"summary": "No end", "start": {"dateTime": "2025-01-15T10:00:00Z"}},
        {"summary": "Bad", "start": {"dateTime": "not a date"}, "end": {"dateTime": "2025-01-15T11:00:00Z"}},
        {"summary": "Backwards", "start": {"dateTime": "2025-01-15T11:00:00Z"}, "end": {"dateTime": "2025-01-15T10:00:00Z"}},
        None,
        "2025-01-15T10:00:00Z",
        _google_event(attendees=3),
        _google_event(categories="work"),
        _google_event(start={"dateTime": "2025-01-15T10:00:00", "timeZone": 5}),
    ],
)
def test_malformed_events_raise(event) -> None:
    with pytest.raises(MalformedCalendarEventError):
        parse_calendar_event(event, "google")


def test_batch_skips_malformed_events() -> None:
    events = [_google_event(), {"id": "broken", "start": {"dateTime": "2025-01-15T10:00:00Z"}}]

    slots, skipped = parse_calendar_events(events, "google")

    assert len(slots) == 1
    assert skipped == 1


def test_batch_skips_events_with_unexpected_shapes() -> None:
    events = [None, _google_event(id="odd", attendees={"count": 3}), _google_event()]

    slots, skipped = parse_calendar_events(events, "google")

    assert [slot.event_id for slot in slots] == ["evt-1"]
    assert skipped == 2


def test_energy_inference() -> None:
    assert infer_energy_level({"summary": "Team sync", "attendees": []}) == EnergyLevel.HIGH
    assert infer_energy_level({"summary": "Deep work block", "attendees": [{}] * 3}) == EnergyLevel.HIGH
    assert infer_energy_level({"summary": "Team sync", "attendees": [{}] * 3}) == EnergyLevel.MEDIUM
    assert infer_energy_level({"summary": "Quarterly update", "attendees": [{}] * 12}) == EnergyLevel.LOW
    assert infer_energy_level({"summary": "Town hall", "attendees": [{}] * 3}) == EnergyLevel.LOW
    assert infer_energy_level({"subject": "FYI", "attendees": [{}] * 2, "showAs": "tentative"}) == EnergyLevel.LOW


def test_focus_inference_defaults_to_technical() -> None:
    assert infer_focus_types({"summary": "Lunch"}) == (FocusType.TECHNICAL,)
    assert infer_focus_types({"summary": "Design brainstorm"}) == (FocusType.CREATIVE,)


def _commitment(source: str, start_minute: int, end_minute: int) -> TimeSlot:
    base = datetime(2025, 1, 15, 10, tzinfo=timezone.utc)
    return TimeSlot(
        start_time=base + timedelta(minutes=start_minute),
        end_time=base + timedelta(minutes=end_minute),
        energy_level=EnergyLevel.MEDIUM,
        preferred_focus_types=(FocusType.SOCIAL,),
        is_available=False,
        source=source,
    )


def test_cross_source_duplicates_are_removed() -> None:
    google = _commitment("google", 0, 60)
    mirrored = _commitment("outlook", 3, 62)

    assert deduplicate_commitments([google, mirrored]) == [google]


def test_same_source_events_are_kept() -> None:
    first = _commitment("google", 0, 60)
    second = _commitment("google", 2, 60)

    assert deduplicate_commitments([first, second]) == [first, second]


def test_far_apart_events_are_kept() -> None:
    google = _commitment("google", 0, 60)
    other = _commitment("outlook", 10, 60)

    assert len(deduplicate_commitments([google, other])) == 2
