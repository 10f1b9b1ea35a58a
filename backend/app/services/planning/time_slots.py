"""Circadian time-slot generation for a single planning day."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Dict, List, Optional, Sequence, Tuple

from app.services.planning.types import EnergyLevel, FocusType, PlanDiagnostic, SchedulingPreferences, TimeSlot

logger = logging.getLogger(__name__)

DEFAULT_WORK_START = time(9, 0)
DEFAULT_WORK_END = time(17, 0)
DEFAULT_SESSION_MINUTES = 90

_TIME_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")

_ONE_LEVEL_DOWN: Dict[EnergyLevel, EnergyLevel] = {
    EnergyLevel.HIGH: EnergyLevel.MEDIUM,
    EnergyLevel.MEDIUM: EnergyLevel.LOW,
    EnergyLevel.LOW: EnergyLevel.LOW,
}

# energy -> (cutoff hour, order before the cutoff, order from the cutoff on)
_FOCUS_PREFERENCES: Dict[EnergyLevel, Tuple[int, Tuple[FocusType, ...], Tuple[FocusType, ...]]] = {
    EnergyLevel.HIGH: (
        11,
        (FocusType.CREATIVE, FocusType.TECHNICAL),
        (FocusType.TECHNICAL, FocusType.CREATIVE),
    ),
    EnergyLevel.MEDIUM: (
        15,
        (FocusType.TECHNICAL, FocusType.ADMINISTRATIVE),
        (FocusType.ADMINISTRATIVE, FocusType.TECHNICAL),
    ),
    EnergyLevel.LOW: (
        16,
        (FocusType.ADMINISTRATIVE, FocusType.SOCIAL),
        (FocusType.SOCIAL, FocusType.ADMINISTRATIVE),
    ),
}


@dataclass(frozen=True)
class WorkHours:
    start: time
    end: time
    was_defaulted: bool = False


@dataclass(frozen=True)
class SlotGenerationResult:
    slots: Tuple[TimeSlot, ...]
    total_generated: int
    diagnostics: Tuple[PlanDiagnostic, ...] = ()


def parse_work_hours(start_value: Optional[str], end_value: Optional[str]) -> WorkHours:
    """Parse "HH:MM" bounds, falling back to 09:00-17:00 when either is unusable."""
    start = _parse_clock(start_value)
    end = _parse_clock(end_value)
    if start is None or end is None or end <= start:
        return WorkHours(start=DEFAULT_WORK_START, end=DEFAULT_WORK_END, was_defaulted=True)
    return WorkHours(start=start, end=end)


def break_minutes_for(session_minutes: int) -> int:
    if session_minutes <= 60:
        return 10
    if session_minutes <= 90:
        return 15
    if session_minutes <= 120:
        return 20
    return 25


def decrease_energy(level: EnergyLevel) -> EnergyLevel:
    return _ONE_LEVEL_DOWN[level]


def energy_for_time(moment: time, preferences: SchedulingPreferences) -> EnergyLevel:
    """Map a time of day onto the user's energy curve."""
    minutes = moment.hour * 60 + moment.minute
    morning = preferences.morning_energy_level
    afternoon = preferences.afternoon_energy_level

    if minutes < 8 * 60:
        return decrease_energy(morning)
    if minutes < 11 * 60:
        return morning
    if minutes < 12 * 60:
        return decrease_energy(morning)
    if minutes < 13 * 60:
        return EnergyLevel.LOW
    if minutes < 14 * 60:
        return decrease_energy(afternoon)
    if minutes < 16 * 60:
        return afternoon
    if minutes < 18 * 60:
        return decrease_energy(afternoon)
    return EnergyLevel.LOW


def focus_types_for(energy: EnergyLevel, moment: time) -> Tuple[FocusType, ...]:
    cutoff_hour, before, after = _FOCUS_PREFERENCES[energy]
    return before if moment.hour < cutoff_hour else after


def has_conflict(start: datetime, end: datetime, commitments: Sequence[TimeSlot]) -> bool:
    return any(commitment.overlaps(start, end) for commitment in commitments)


class TimeSlotGenerator:
    """Produce the day's schedulable slots from preferences and busy intervals."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logger

    def generate(
        self,
        plan_date: date,
        preferences: SchedulingPreferences,
        commitments: Sequence[TimeSlot],
        tz: Optional[tzinfo] = None,
    ) -> SlotGenerationResult:
        diagnostics: List[PlanDiagnostic] = []

        hours = parse_work_hours(preferences.work_start_time, preferences.work_end_time)
        if hours.was_defaulted:
            message = (
                f"Invalid work hours {preferences.work_start_time!r}-{preferences.work_end_time!r}; "
                "using 09:00-17:00"
            )
            self._log.warning(message)
            diagnostics.append(PlanDiagnostic(code="work_hours_defaulted", message=message))

        session = preferences.focus_session_length
        if not session or session <= 0:
            message = f"Invalid focus session length {session!r}; using {DEFAULT_SESSION_MINUTES} minutes"
            self._log.warning(message)
            diagnostics.append(PlanDiagnostic(code="focus_session_defaulted", message=message))
            session = DEFAULT_SESSION_MINUTES

        slot_length = timedelta(minutes=session)
        break_length = timedelta(minutes=break_minutes_for(session))
        current = datetime.combine(plan_date, hours.start, tzinfo=tz)
        day_end = datetime.combine(plan_date, hours.end, tzinfo=tz)

        generated: List[TimeSlot] = []
        while current < day_end:
            slot_end = current + slot_length
            if slot_end <= day_end:
                energy = energy_for_time(current.time(), preferences)
                generated.append(
                    TimeSlot(
                        start_time=current,
                        end_time=slot_end,
                        energy_level=energy,
                        preferred_focus_types=focus_types_for(energy, current.time()),
                        is_available=not has_conflict(current, slot_end, commitments),
                    )
                )
            current = slot_end + break_length

        available = tuple(slot for slot in generated if slot.is_available)
        self._log.info("Generated %d total slots, %d available", len(generated), len(available))
        return SlotGenerationResult(
            slots=available,
            total_generated=len(generated),
            diagnostics=tuple(diagnostics),
        )


def _parse_clock(value: Optional[str]) -> Optional[time]:
    if not value:
        return None
    match = _TIME_PATTERN.match(value)
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)
