from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from app.core.config import Settings
from app.services.calendar.base import CalendarNotConfiguredError
from app.services.calendar.factory import get_calendar_gateways
from app.services.calendar.google import GoogleCalendarGateway
from app.services.calendar.noop import NoopCalendarGateway
from app.services.calendar.outlook import OutlookCalendarGateway

START = datetime(2025, 1, 15, tzinfo=timezone.utc)
END = datetime(2025, 1, 15, 23, 59, 59, tzinfo=timezone.utc)


def _run_with_transport(gateway_cls, handler):
    async def _go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            gateway = gateway_cls(access_token="token-123", client=client)
            return await gateway.list_events("user-1", "primary", START, END)

    return asyncio.run(_go())


def test_google_gateway_follows_pages() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        assert request.url.path == "/calendar/v3/calendars/primary/events"
        assert request.headers["Authorization"] == "Bearer token-123"
        assert request.url.params["singleEvents"] == "true"
        assert request.url.params["orderBy"] == "startTime"
        if "pageToken" not in request.url.params:
            return httpx.Response(200, json={"items": [{"id": "1"}], "nextPageToken": "p2"})
        assert request.url.params["pageToken"] == "p2"
        return httpx.Response(200, json={"items": [{"id": "2"}]})

    events = _run_with_transport(GoogleCalendarGateway, handler)

    assert [event["id"] for event in events] == ["1", "2"]
    assert len(seen) == 2
    assert seen[0].url.params["timeMin"] == START.isoformat()


def test_google_gateway_raises_on_http_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": "unavailable"})

    with pytest.raises(httpx.HTTPStatusError):
        _run_with_transport(GoogleCalendarGateway, handler)


def test_google_gateway_requires_token() -> None:
    gateway = GoogleCalendarGateway(access_token=None)

    with pytest.raises(CalendarNotConfiguredError):
        asyncio.run(gateway.list_events("user-1", "primary", START, END))


def test_outlook_gateway_uses_calendar_view_and_next_link() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Prefer"] == 'outlook.timezone="UTC"'
        if request.url.path == "/v1.0/me/calendar/calendarView":
            assert request.url.params["startDateTime"] == START.isoformat()
            return httpx.Response(
                200,
                json={
                    "value": [{"id": "a"}],
                    "@odata.nextLink": "https://graph.microsoft.com/v1.0/me/calendar/calendarView/next?$skip=1",
                },
            )
        assert request.url.path == "/v1.0/me/calendar/calendarView/next"
        return httpx.Response(200, json={"value": [{"id": "b"}]})

    events = _run_with_transport(OutlookCalendarGateway, handler)

    assert [event["id"] for event in events] == ["a", "b"]


def test_outlook_gateway_addresses_named_calendar() -> None:
    paths = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(200, json={"value": []})

    async def _go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            gateway = OutlookCalendarGateway(access_token="t", client=client)
            return await gateway.list_events("user-1", "work", START, END)

    assert asyncio.run(_go()) == []
    assert paths == ["/v1.0/me/calendars/work/calendarView"]


def test_noop_gateway_returns_nothing() -> None:
    assert asyncio.run(NoopCalendarGateway().list_events("u", "primary", START, END)) == []


def test_factory_builds_configured_providers() -> None:
    config = Settings(calendar_providers="google, Outlook, carrier-pigeon", google_calendar_access_token="g")

    gateways = get_calendar_gateways(config)

    assert [gateway.source for gateway in gateways] == ["google", "outlook"]


def test_factory_defaults_to_noop() -> None:
    gateways = get_calendar_gateways(Settings(calendar_providers=""))

    assert [gateway.source for gateway in gateways] == ["noop"]
