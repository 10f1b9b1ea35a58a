"""Conversion of raw provider events into busy time slots."""
from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, List, Mapping, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.services.calendar.base import RawCalendarEvent
from app.services.planning.types import EnergyLevel, FocusType, TimeSlot

logger = logging.getLogger(__name__)

DUPLICATE_TOLERANCE = timedelta(minutes=5)

_HIGH_ENERGY_KEYWORDS = ("focus", "deep work", "coding", "development")
_LOW_ENERGY_KEYWORDS = ("all hands", "town hall", "large meeting", "presentation")
_LARGE_MEETING_ATTENDEES = 8

_FOCUS_PATTERNS: Tuple[Tuple[FocusType, "re.Pattern[str]"], ...] = (
    (
        FocusType.TECHNICAL,
        re.compile(r"\b(code|tech|technical|review|development|engineering|system|architecture|debug|api)\b"),
    ),
    (
        FocusType.CREATIVE,
        re.compile(r"\b(design|creative|brainstorm|ideation|workshop|innovation|strategy)\b"),
    ),
    (
        FocusType.ADMINISTRATIVE,
        re.compile(r"\b(admin|expense|report|compliance|hr|legal|budget|planning)\b"),
    ),
)
_SOCIAL_PATTERN = re.compile(r"\b(meeting|standup|sync|1:1|one-on-one|team)\b")


class MalformedCalendarEventError(ValueError):
    """A single provider event could not be turned into a busy interval."""


def parse_calendar_event(event: Mapping[str, Any], source: str, tz: Optional[tzinfo] = None) -> TimeSlot:
    """Parse a Google or Outlook event dict into an unavailable TimeSlot."""
    if not isinstance(event, Mapping):
        raise MalformedCalendarEventError(f"Event is {type(event).__name__}, expected an object")
    start = event.get("start")
    end = event.get("end")
    if not isinstance(start, Mapping) or not isinstance(end, Mapping):
        raise MalformedCalendarEventError("Event missing start or end time")
    for field in ("attendees", "categories"):
        if event.get(field) is not None and not isinstance(event[field], list):
            raise MalformedCalendarEventError(f"Event {field} must be a list")

    zone = tz or timezone.utc
    all_day = bool(event.get("isAllDay")) or ("date" in start and "date" in end and "dateTime" not in start)
    try:
        if all_day:
            start_day = _parse_day(start.get("date") or start.get("dateTime"))
            end_day = _parse_day(end.get("date") or end.get("dateTime"))
            start_time = datetime.combine(start_day, time.min, tzinfo=zone)
            end_time = datetime.combine(end_day, time.max, tzinfo=zone)
        elif start.get("dateTime") and end.get("dateTime"):
            start_time = _parse_instant(start["dateTime"], start.get("timeZone"), zone)
            end_time = _parse_instant(end["dateTime"], end.get("timeZone"), zone)
        else:
            raise MalformedCalendarEventError("Event has invalid date/time format")
    except MalformedCalendarEventError:
        raise
    except (TypeError, ValueError, AttributeError) as exc:
        raise MalformedCalendarEventError(f"Event has invalid date/time format: {exc}") from exc

    if start_time >= end_time:
        raise MalformedCalendarEventError("Event end time must be after start time")

    try:
        energy = infer_energy_level(event)
        focus_types = infer_focus_types(event)
    except (TypeError, AttributeError) as exc:
        raise MalformedCalendarEventError(f"Event has unreadable details: {exc}") from exc

    return TimeSlot(
        start_time=start_time,
        end_time=end_time,
        energy_level=energy,
        preferred_focus_types=focus_types,
        is_available=False,
        source=source,
        event_id=event.get("id"),
        title=_title(event) or "Untitled Event",
        description=_description(event),
        is_all_day=all_day,
    )


def parse_calendar_events(
    events: Sequence[RawCalendarEvent],
    source: str,
    tz: Optional[tzinfo] = None,
    log: Optional[logging.Logger] = None,
) -> Tuple[List[TimeSlot], int]:
    """Parse a batch, skipping malformed events. Returns (slots, skipped_count)."""
    log = log or logger
    slots: List[TimeSlot] = []
    skipped = 0
    for event in events:
        try:
            slots.append(parse_calendar_event(event, source, tz))
        except MalformedCalendarEventError as exc:
            skipped += 1
            event_id = event.get("id", "unknown") if isinstance(event, Mapping) else "unknown"
            log.warning("Skipping malformed %s calendar event %s: %s", source, event_id, exc)
    log.debug("Parsed %d %s calendar events, %d skipped", len(slots), source, skipped)
    return slots, skipped


def infer_energy_level(event: Mapping[str, Any]) -> EnergyLevel:
    """Guess how draining a commitment is from its title, size and Outlook hints."""
    summary = _title(event).lower()
    attendee_count = len(event.get("attendees") or [])
    importance = event.get("importance")
    show_as = event.get("showAs")

    if (
        any(keyword in summary for keyword in _HIGH_ENERGY_KEYWORDS)
        or attendee_count == 0
        or importance == "high"
        or show_as == "workingElsewhere"
    ):
        return EnergyLevel.HIGH
    if (
        attendee_count > _LARGE_MEETING_ATTENDEES
        or any(keyword in summary for keyword in _LOW_ENERGY_KEYWORDS)
        or importance == "low"
        or show_as == "tentative"
    ):
        return EnergyLevel.LOW
    return EnergyLevel.MEDIUM


def infer_focus_types(event: Mapping[str, Any]) -> Tuple[FocusType, ...]:
    categories = [str(category).lower() for category in event.get("categories") or []]
    content = " ".join([_title(event), _description(event), *categories]).lower()
    has_attendees = bool(event.get("attendees"))

    focus_types: List[FocusType] = [focus for focus, pattern in _FOCUS_PATTERNS if pattern.search(content)]
    if has_attendees or _SOCIAL_PATTERN.search(content):
        focus_types.append(FocusType.SOCIAL)
    if not focus_types:
        focus_types.append(FocusType.TECHNICAL)
    return tuple(focus_types)


def deduplicate_commitments(
    commitments: Sequence[TimeSlot],
    tolerance: timedelta = DUPLICATE_TOLERANCE,
) -> List[TimeSlot]:
    """Drop events mirrored across providers (same times within tolerance, different source)."""
    kept: List[TimeSlot] = []
    for candidate in commitments:
        duplicate = any(
            existing.source != candidate.source
            and abs(existing.start_time - candidate.start_time) <= tolerance
            and abs(existing.end_time - candidate.end_time) <= tolerance
            for existing in kept
        )
        if duplicate:
            logger.debug(
                "Duplicate calendar event from %s at %s removed",
                candidate.source,
                candidate.start_time.isoformat(),
            )
            continue
        kept.append(candidate)
    return kept


def _title(event: Mapping[str, Any]) -> str:
    return str(event.get("summary") or event.get("subject") or "")


def _description(event: Mapping[str, Any]) -> str:
    body = event.get("body")
    body_content = body.get("content") if isinstance(body, Mapping) else None
    return str(event.get("description") or event.get("bodyPreview") or body_content or "")


def _parse_day(value: Any) -> date:
    if not isinstance(value, str):
        raise MalformedCalendarEventError("Event has invalid date/time format")
    return date.fromisoformat(value[:10])


def _parse_instant(value: Any, zone_name: Optional[str], default_zone: tzinfo) -> datetime:
    if not isinstance(value, str):
        raise MalformedCalendarEventError("Event has invalid date/time format")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # Graph emits seven fractional digits, which fromisoformat rejects before 3.11.
    text = re.sub(r"(\.\d{6})\d+", r"\1", text)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        return parsed
    return parsed.replace(tzinfo=_zone(zone_name) or default_zone)


def _zone(name: Optional[str]) -> Optional[tzinfo]:
    if not name:
        return None
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None
