"""Outlook calendar provider backed by Microsoft Graph."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from app.services.calendar.base import CalendarGateway, CalendarNotConfiguredError, RawCalendarEvent

logger = logging.getLogger(__name__)


class OutlookCalendarGateway(CalendarGateway):
    source = "outlook"

    def __init__(
        self,
        *,
        access_token: Optional[str],
        base_url: str = "https://graph.microsoft.com/v1.0",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    async def list_events(
        self,
        user_id: str,
        calendar_id: str,
        start_of_day: datetime,
        end_of_day: datetime,
    ) -> List[RawCalendarEvent]:
        if not self._access_token:
            raise CalendarNotConfiguredError("Outlook Calendar integration not configured for user")

        if calendar_id == "primary":
            url = f"{self._base_url}/me/calendar/calendarView"
        else:
            url = f"{self._base_url}/me/calendars/{quote(calendar_id, safe='')}/calendarView"
        params: Dict[str, Any] = {
            "startDateTime": start_of_day.isoformat(),
            "endDateTime": end_of_day.isoformat(),
        }
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            # Graph returns naive dateTime strings in this zone.
            "Prefer": 'outlook.timezone="UTC"',
        }

        if self._client is not None:
            return await self._collect(self._client, url, params, headers)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._collect(client, url, params, headers)

    async def _collect(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: Optional[Dict[str, Any]],
        headers: Dict[str, str],
    ) -> List[RawCalendarEvent]:
        events: List[RawCalendarEvent] = []
        next_url: Optional[str] = url
        while next_url:
            response = await client.get(next_url, params=params, headers=headers)
            response.raise_for_status()
            payload = response.json()
            events.extend(payload.get("value") or [])
            next_url = payload.get("@odata.nextLink")
            # nextLink already carries the query string
            params = None
        logger.debug("Fetched %d Outlook Calendar events", len(events))
        return events
