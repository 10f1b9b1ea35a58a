"""Calendar gateway interface."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

RawCalendarEvent = Dict[str, Any]


class CalendarGatewayError(Exception):
    """A provider call failed; ``status_code``/``code`` feed error classification."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class CalendarNotConfiguredError(CalendarGatewayError):
    """The user (or deployment) has no credentials for this provider."""


class CalendarGateway:
    """Base interface for external calendar providers."""

    source: str = "unknown"

    async def list_events(
        self,
        user_id: str,
        calendar_id: str,
        start_of_day: datetime,
        end_of_day: datetime,
    ) -> List[RawCalendarEvent]:
        raise NotImplementedError
