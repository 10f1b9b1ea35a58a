from __future__ import annotations

import asyncio
import random
from datetime import datetime, timezone

import httpx
import pytest

from app.services.calendar.base import CalendarGateway, CalendarGatewayError, CalendarNotConfiguredError
from app.services.calendar.errors import (
    CalendarErrorCategory,
    CalendarIntegrationError,
    classify_calendar_error,
)
from app.services.calendar.retry import CalendarRetryClient, RetryPolicy

START = datetime(2025, 1, 15, tzinfo=timezone.utc)
END = datetime(2025, 1, 15, 23, 59, tzinfo=timezone.utc)

EVENT = {
    "id": "evt",
    "summary": "Standup",
    "start": {"dateTime": "2025-01-15T09:30:00Z"},
    "end": {"dateTime": "2025-01-15T09:45:00Z"},
    "attendees": [{}, {}],
}


class _ScriptedGateway(CalendarGateway):
    """Raise the queued errors in order, then return ``events``."""

    source = "google"

    def __init__(self, errors=(), events=None):
        self.errors = list(errors)
        self.events = events or []
        self.calls = 0

    async def list_events(self, user_id, calendar_id, start_of_day, end_of_day):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.events


class _SlowGateway(CalendarGateway):
    source = "slow"

    async def list_events(self, user_id, calendar_id, start_of_day, end_of_day):
        await asyncio.sleep(5)
        return []


class _Sleeper:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def _client(gateway, sleeper=None, clock=None, **policy):
    options = {"jitter_ms": 0}
    options.update(policy)
    kwargs = {"sleep": sleeper or _Sleeper(), "rng": random.Random(7)}
    if clock is not None:
        kwargs["clock"] = clock
    return CalendarRetryClient(gateway, RetryPolicy(**options), **kwargs)


def _http_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://calendar.example/events")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError(f"HTTP {status_code}", request=request, response=response)


def test_retries_server_errors_then_succeeds() -> None:
    sleeper = _Sleeper()
    gateway = _ScriptedGateway(errors=[_http_error(503), _http_error(502)], events=[EVENT])
    client = _client(gateway, sleeper)

    result = asyncio.run(client.fetch_commitments("user-1", "primary", START, END))

    assert result.attempts == 3
    assert len(result.commitments) == 1
    assert sleeper.delays == [1.0, 2.0]


@pytest.mark.parametrize("max_attempts", [0, 1])
def test_single_attempt_policy_reports_the_real_failure(max_attempts) -> None:
    sleeper = _Sleeper()
    gateway = _ScriptedGateway(errors=[_http_error(503)])
    client = _client(gateway, sleeper, max_attempts=max_attempts)

    with pytest.raises(CalendarIntegrationError) as excinfo:
        asyncio.run(client.fetch_events("user-1", "primary", START, END))

    assert excinfo.value.category == CalendarErrorCategory.SERVER_ERROR
    assert excinfo.value.attempts == 1
    assert isinstance(excinfo.value.__cause__, httpx.HTTPStatusError)
    assert gateway.calls == 1
    assert sleeper.delays == []


def test_network_errors_exhaust_attempts() -> None:
    sleeper = _Sleeper()
    gateway = _ScriptedGateway(errors=[httpx.ConnectError("down")] * 3)
    client = _client(gateway, sleeper)

    with pytest.raises(CalendarIntegrationError) as excinfo:
        asyncio.run(client.fetch_events("user-1", "primary", START, END))

    assert excinfo.value.category == CalendarErrorCategory.NETWORK_ERROR
    assert excinfo.value.attempts == 3
    assert gateway.calls == 3
    assert sleeper.delays == [1.0, 2.0]


def test_auth_errors_are_not_retried() -> None:
    sleeper = _Sleeper()
    gateway = _ScriptedGateway(errors=[_http_error(401)])

    with pytest.raises(CalendarIntegrationError) as excinfo:
        asyncio.run(_client(gateway, sleeper).fetch_events("user-1", "primary", START, END))

    assert excinfo.value.category == CalendarErrorCategory.AUTH_EXPIRED
    assert excinfo.value.attempts == 1
    assert sleeper.delays == []


def test_missing_credentials_are_not_retried() -> None:
    gateway = _ScriptedGateway(errors=[CalendarNotConfiguredError("no token")])

    with pytest.raises(CalendarIntegrationError) as excinfo:
        asyncio.run(_client(gateway).fetch_events("user-1", "primary", START, END))

    assert excinfo.value.category == CalendarErrorCategory.INTEGRATION_NOT_CONFIGURED
    assert gateway.calls == 1


def test_backoff_crossing_deadline_stops_early() -> None:
    sleeper = _Sleeper()
    gateway = _ScriptedGateway(errors=[httpx.ConnectError("down")] * 3)
    client = _client(gateway, sleeper, clock=lambda: 100.0)

    with pytest.raises(CalendarIntegrationError) as excinfo:
        asyncio.run(client.fetch_events("user-1", "primary", START, END, deadline=100.5))

    assert excinfo.value.category == CalendarErrorCategory.TIMEOUT
    assert excinfo.value.details.code == "DEADLINE_EXCEEDED"
    assert gateway.calls == 1
    assert sleeper.delays == []


def test_expired_deadline_skips_the_call() -> None:
    gateway = _ScriptedGateway(events=[EVENT])
    client = _client(gateway, clock=lambda: 100.0)

    with pytest.raises(CalendarIntegrationError):
        asyncio.run(client.fetch_events("user-1", "primary", START, END, deadline=99.0))

    assert gateway.calls == 0


def test_slow_attempt_times_out() -> None:
    client = _client(_SlowGateway(), max_attempts=1, attempt_timeout_seconds=0.01)

    with pytest.raises(CalendarIntegrationError) as excinfo:
        asyncio.run(client.fetch_events("user-1", "primary", START, END))

    assert excinfo.value.category == CalendarErrorCategory.TIMEOUT


def test_cancellation_is_not_swallowed() -> None:
    gateway = _ScriptedGateway(errors=[asyncio.CancelledError()])

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(_client(gateway).fetch_events("user-1", "primary", START, END))


def test_malformed_events_are_counted() -> None:
    gateway = _ScriptedGateway(events=[EVENT, {"id": "bad"}])

    result = asyncio.run(_client(gateway).fetch_commitments("user-1", "primary", START, END))

    assert len(result.commitments) == 1
    assert result.skipped_events == 1


def test_delay_is_capped_and_jittered() -> None:
    policy = RetryPolicy(base_delay_ms=1000, jitter_ms=500, max_delay_ms=10000)
    rng = random.Random(1)

    first = policy.delay_ms(1, rng)
    assert 1000 <= first <= 1500
    assert policy.delay_ms(10, rng) == 10000


@pytest.mark.parametrize(
    "error, category",
    [
        (_http_error(401), CalendarErrorCategory.AUTH_EXPIRED),
        (_http_error(403), CalendarErrorCategory.PERMISSION_DENIED),
        (_http_error(429), CalendarErrorCategory.RATE_LIMITED),
        (_http_error(500), CalendarErrorCategory.SERVER_ERROR),
        (_http_error(504), CalendarErrorCategory.SERVER_ERROR),
        (_http_error(404), CalendarErrorCategory.API_ERROR),
        (httpx.ConnectTimeout("slow"), CalendarErrorCategory.TIMEOUT),
        (httpx.ConnectError("refused"), CalendarErrorCategory.NETWORK_ERROR),
        (CalendarGatewayError("reset", code="ECONNRESET"), CalendarErrorCategory.NETWORK_ERROR),
        (CalendarGatewayError("quota", status_code=429), CalendarErrorCategory.RATE_LIMITED),
        (RuntimeError("socket timeout while reading"), CalendarErrorCategory.TIMEOUT),
        (RuntimeError("Integration not configured"), CalendarErrorCategory.INTEGRATION_NOT_CONFIGURED),
        (RuntimeError("weird"), CalendarErrorCategory.UNKNOWN_ERROR),
    ],
)
def test_error_classification(error, category) -> None:
    details = classify_calendar_error(error)

    assert details.category == category
    assert details.retryable == (
        category
        in {
            CalendarErrorCategory.RATE_LIMITED,
            CalendarErrorCategory.SERVER_ERROR,
            CalendarErrorCategory.NETWORK_ERROR,
            CalendarErrorCategory.TIMEOUT,
        }
    )
