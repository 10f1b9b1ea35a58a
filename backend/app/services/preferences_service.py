"""Scheduling preference persistence."""
from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.models.scheduling_preferences import UserSchedulingPreferences
from app.db.models.user import User
from app.services.planning.types import EnergyLevel, FocusType, SchedulingPreferences
from app.services.user_service import get_or_create_user

DEFAULT_CALENDAR_IDS = ["primary"]


def get_or_create_preferences(db: Session, user_id: UUID) -> UserSchedulingPreferences:
    """Return the user's preference row, inserting defaults (and the user) on first use."""
    get_or_create_user(db, user_id)
    prefs = db.get(UserSchedulingPreferences, user_id)
    if prefs:
        return prefs

    prefs = UserSchedulingPreferences(
        user_id=user_id,
        morning_energy_level=EnergyLevel.HIGH.value,
        afternoon_energy_level=EnergyLevel.MEDIUM.value,
        work_start_time="09:00",
        work_end_time="17:00",
        focus_session_length=90,
        preferred_focus_types=[],
        calendar_ids=list(DEFAULT_CALENDAR_IDS),
    )
    db.add(prefs)
    try:
        db.flush()
        return prefs
    except IntegrityError:
        db.rollback()
        existing = db.get(UserSchedulingPreferences, user_id)
        if existing:
            return existing
        raise


def update_preferences(db: Session, user_id: UUID, changes: Dict[str, Any]) -> UserSchedulingPreferences:
    """Apply a partial update. ``timezone`` lives on the user row, everything else on preferences."""
    prefs = get_or_create_preferences(db, user_id)
    for field, value in changes.items():
        if field == "timezone":
            user = db.get(User, user_id)
            user.timezone = value
            db.add(user)
            continue
        if value is None and field != "calendar_ids":
            continue
        if field in ("morning_energy_level", "afternoon_energy_level"):
            value = EnergyLevel(value).value
        elif field == "preferred_focus_types":
            value = [FocusType(item).value for item in value or []]
        elif field == "calendar_ids":
            value = list(value or DEFAULT_CALENDAR_IDS)
        setattr(prefs, field, value)
    db.add(prefs)
    db.flush()
    return prefs


def to_scheduling_preferences(prefs: UserSchedulingPreferences, timezone: Optional[str] = None) -> SchedulingPreferences:
    return SchedulingPreferences(
        morning_energy_level=_energy(prefs.morning_energy_level, EnergyLevel.HIGH),
        afternoon_energy_level=_energy(prefs.afternoon_energy_level, EnergyLevel.MEDIUM),
        work_start_time=prefs.work_start_time or "09:00",
        work_end_time=prefs.work_end_time or "17:00",
        focus_session_length=prefs.focus_session_length if prefs.focus_session_length is not None else 90,
        preferred_focus_types=_focus_types(prefs.preferred_focus_types or []),
        calendar_ids=tuple(prefs.calendar_ids or DEFAULT_CALENDAR_IDS),
        timezone=timezone,
    )


class SqlPreferencesStore:
    """PreferencesStore backed by the user_scheduling_preferences table.

    Rows created here are flushed, not committed; the request owns the transaction.
    """

    def __init__(self, db: Session):
        self._db = db

    def get_or_create(self, user_id: str) -> SchedulingPreferences:
        uid = UUID(str(user_id))
        prefs = get_or_create_preferences(self._db, uid)
        user = self._db.get(User, uid)
        return to_scheduling_preferences(prefs, timezone=user.timezone if user else None)


def _energy(value: Optional[str], default: EnergyLevel) -> EnergyLevel:
    try:
        return EnergyLevel(value)
    except ValueError:
        return default


def _focus_types(values: Iterable[str]) -> Tuple[FocusType, ...]:
    parsed = []
    for value in values:
        try:
            parsed.append(FocusType(value))
        except ValueError:
            continue
    return tuple(parsed)
