"""Schemas for scheduling preferences."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from app.services.planning.types import EnergyLevel, FocusType

_CLOCK_PATTERN = r"^\d{2}:\d{2}$"


class PreferencesResponse(BaseModel):
    user_id: UUID
    morning_energy_level: EnergyLevel
    afternoon_energy_level: EnergyLevel
    work_start_time: str
    work_end_time: str
    focus_session_length: int
    preferred_focus_types: List[FocusType]
    calendar_ids: List[str]
    timezone: Optional[str]
    request_id: str


class PreferencesUpdateRequest(BaseModel):
    user_id: UUID
    morning_energy_level: Optional[EnergyLevel] = None
    afternoon_energy_level: Optional[EnergyLevel] = None
    work_start_time: Optional[str] = Field(default=None, pattern=_CLOCK_PATTERN)
    work_end_time: Optional[str] = Field(default=None, pattern=_CLOCK_PATTERN)
    focus_session_length: Optional[int] = Field(default=None, gt=0, le=480)
    preferred_focus_types: Optional[List[FocusType]] = None
    calendar_ids: Optional[List[str]] = None
    timezone: Optional[str] = Field(default=None, max_length=64)

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone {value!r}") from exc
        return value
