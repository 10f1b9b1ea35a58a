"""Retrying calendar client with exponential backoff and error classification."""
from __future__ import annotations

import asyncio
import logging
import random
import time as _time
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Awaitable, Callable, List, Optional, Tuple

from app.core.config import Settings
from app.services.calendar.base import CalendarGateway, RawCalendarEvent
from app.services.calendar.errors import (
    CalendarErrorCategory,
    CalendarErrorDetails,
    CalendarIntegrationError,
    classify_calendar_error,
)
from app.services.calendar.events import parse_calendar_events
from app.services.planning.types import TimeSlot

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]
ClockFn = Callable[[], float]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay_ms: int = 1000
    jitter_ms: int = 500
    max_delay_ms: int = 10000
    attempt_timeout_seconds: Optional[float] = 10.0

    @classmethod
    def from_settings(cls, config: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=config.calendar_max_attempts,
            base_delay_ms=config.calendar_retry_base_delay_ms,
            jitter_ms=config.calendar_retry_jitter_ms,
            max_delay_ms=config.calendar_retry_max_delay_ms,
            attempt_timeout_seconds=config.calendar_attempt_timeout_seconds,
        )

    def delay_ms(self, attempt: int, rng: random.Random) -> float:
        """Backoff before the retry that follows ``attempt`` (1-based)."""
        base = (2 ** (attempt - 1)) * self.base_delay_ms
        jitter = rng.uniform(0, self.jitter_ms) if self.jitter_ms > 0 else 0.0
        return min(base + jitter, self.max_delay_ms)


@dataclass(frozen=True)
class CommitmentFetchResult:
    commitments: Tuple[TimeSlot, ...]
    skipped_events: int
    attempts: int


class CalendarRetryClient:
    """Wrap one CalendarGateway with bounded retries.

    ``deadline`` values are absolute readings of ``clock`` (monotonic seconds by
    default). No attempt runs and no backoff starts past the deadline.
    Cancellation of the awaiting task is never intercepted.
    """

    def __init__(
        self,
        gateway: CalendarGateway,
        policy: Optional[RetryPolicy] = None,
        *,
        rng: Optional[random.Random] = None,
        sleep: SleepFn = asyncio.sleep,
        clock: ClockFn = _time.monotonic,
        log: Optional[logging.Logger] = None,
    ):
        self.gateway = gateway
        self.policy = policy or RetryPolicy()
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._clock = clock
        self._log = log or logger

    @property
    def source(self) -> str:
        return self.gateway.source

    async def fetch_events(
        self,
        user_id: str,
        calendar_id: str,
        start_of_day: datetime,
        end_of_day: datetime,
        *,
        deadline: Optional[float] = None,
    ) -> Tuple[List[RawCalendarEvent], int]:
        """Return (raw events, attempts used) or raise CalendarIntegrationError."""
        max_attempts = max(1, self.policy.max_attempts)
        attempt = 0
        while True:
            attempt += 1
            timeout = self._attempt_timeout(deadline, attempt)
            self._log.debug("Calendar API attempt %d/%d for user %s (%s)", attempt, max_attempts, user_id, self.source)
            try:
                call = self.gateway.list_events(user_id, calendar_id, start_of_day, end_of_day)
                events = await (asyncio.wait_for(call, timeout=timeout) if timeout is not None else call)
            except Exception as exc:
                details = classify_calendar_error(exc)
                self._log.warning(
                    "Calendar API attempt %d/%d failed for user %s (%s): %s [%s, code=%s, retryable=%s]",
                    attempt,
                    max_attempts,
                    user_id,
                    self.source,
                    details.message,
                    details.category.value,
                    details.code,
                    details.retryable,
                )
                if not details.retryable:
                    self._log.error(
                        "Non-retryable calendar error for user %s (%s): %s",
                        user_id,
                        self.source,
                        details.category.value,
                    )
                    raise CalendarIntegrationError(details, source=self.source, attempts=attempt) from exc
                if attempt == max_attempts:
                    self._log.error(
                        "All %d calendar API attempts failed for user %s (%s)", max_attempts, user_id, self.source
                    )
                    raise CalendarIntegrationError(details, source=self.source, attempts=attempt) from exc
                delay_seconds = self.policy.delay_ms(attempt, self._rng) / 1000
                if deadline is not None and self._clock() + delay_seconds >= deadline:
                    raise CalendarIntegrationError(_deadline_details(), source=self.source, attempts=attempt) from exc
                self._log.debug("Waiting %.0fms before calendar retry %d", delay_seconds * 1000, attempt + 1)
                await self._sleep(delay_seconds)
                continue

            if attempt > 1:
                self._log.info("Calendar API succeeded on retry attempt %d for user %s", attempt, user_id)
            return list(events or []), attempt

    async def fetch_commitments(
        self,
        user_id: str,
        calendar_id: str,
        start_of_day: datetime,
        end_of_day: datetime,
        *,
        deadline: Optional[float] = None,
        tz: Optional[tzinfo] = None,
    ) -> CommitmentFetchResult:
        events, attempts = await self.fetch_events(
            user_id, calendar_id, start_of_day, end_of_day, deadline=deadline
        )
        slots, skipped = parse_calendar_events(events, self.source, tz, log=self._log)
        return CommitmentFetchResult(commitments=tuple(slots), skipped_events=skipped, attempts=attempts)

    def _attempt_timeout(self, deadline: Optional[float], attempt: int) -> Optional[float]:
        timeout = self.policy.attempt_timeout_seconds
        if deadline is None:
            return timeout
        remaining = deadline - self._clock()
        if remaining <= 0:
            raise CalendarIntegrationError(_deadline_details(), source=self.source, attempts=attempt - 1)
        return remaining if timeout is None else min(timeout, remaining)


def _deadline_details() -> CalendarErrorDetails:
    return CalendarErrorDetails(
        CalendarErrorCategory.TIMEOUT,
        "DEADLINE_EXCEEDED",
        "Planning deadline reached before the calendar responded",
    )
