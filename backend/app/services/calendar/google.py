"""Google Calendar provider backed by the Calendar v3 REST API."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from app.services.calendar.base import CalendarGateway, CalendarNotConfiguredError, RawCalendarEvent

logger = logging.getLogger(__name__)


class GoogleCalendarGateway(CalendarGateway):
    source = "google"

    def __init__(
        self,
        *,
        access_token: Optional[str],
        base_url: str = "https://www.googleapis.com/calendar/v3",
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
            raise CalendarNotConfiguredError("Google Calendar integration not configured for user")

        url = f"{self._base_url}/calendars/{quote(calendar_id, safe='')}/events"
        params: Dict[str, Any] = {
            "timeMin": start_of_day.isoformat(),
            "timeMax": end_of_day.isoformat(),
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        headers = {"Authorization": f"Bearer {self._access_token}"}

        if self._client is not None:
            return await self._collect(self._client, url, params, headers)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._collect(client, url, params, headers)

    async def _collect(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: Dict[str, Any],
        headers: Dict[str, str],
    ) -> List[RawCalendarEvent]:
        events: List[RawCalendarEvent] = []
        page_params = dict(params)
        while True:
            response = await client.get(url, params=page_params, headers=headers)
            response.raise_for_status()
            payload = response.json()
            events.extend(payload.get("items") or [])
            next_token = payload.get("nextPageToken")
            if not next_token:
                break
            page_params = {**params, "pageToken": next_token}
        logger.debug("Fetched %d Google Calendar events", len(events))
        return events
