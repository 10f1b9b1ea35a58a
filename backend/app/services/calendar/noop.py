"""No-op calendar provider (no external commitments)."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List

from app.services.calendar.base import CalendarGateway, RawCalendarEvent


logger = logging.getLogger(__name__)


class NoopCalendarGateway(CalendarGateway):
    source = "noop"

    async def list_events(
        self,
        user_id: str,
        calendar_id: str,
        start_of_day: datetime,
        end_of_day: datetime,
    ) -> List[RawCalendarEvent]:
        logger.debug(
            "Calendar lookup (noop) user=%s calendar=%s window=%s-%s",
            user_id,
            calendar_id,
            start_of_day.isoformat(),
            end_of_day.isoformat(),
        )
        return []
