"""Calendar integration error taxonomy."""
from __future__ import annotations

import asyncio
import socket
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import httpx

from app.services.calendar.base import CalendarGatewayError, CalendarNotConfiguredError


class CalendarErrorCategory(str, Enum):
    AUTH_EXPIRED = "AUTH_EXPIRED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    RATE_LIMITED = "RATE_LIMITED"
    SERVER_ERROR = "SERVER_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    INTEGRATION_NOT_CONFIGURED = "INTEGRATION_NOT_CONFIGURED"
    API_ERROR = "API_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


RETRYABLE_CATEGORIES = frozenset(
    {
        CalendarErrorCategory.RATE_LIMITED,
        CalendarErrorCategory.SERVER_ERROR,
        CalendarErrorCategory.NETWORK_ERROR,
        CalendarErrorCategory.TIMEOUT,
    }
)

_NETWORK_CODES = {"ENOTFOUND", "ECONNREFUSED", "ECONNRESET"}


@dataclass(frozen=True)
class CalendarErrorDetails:
    category: CalendarErrorCategory
    code: Union[int, str]
    message: str

    @property
    def retryable(self) -> bool:
        return self.category in RETRYABLE_CATEGORIES


class CalendarIntegrationError(Exception):
    """Raised once the retry client gives up on a calendar source."""

    def __init__(self, details: CalendarErrorDetails, *, source: str, attempts: int):
        super().__init__(f"{source} calendar unavailable after {attempts} attempt(s): {details.message}")
        self.details = details
        self.source = source
        self.attempts = attempts

    @property
    def category(self) -> CalendarErrorCategory:
        return self.details.category


def classify_calendar_error(error: BaseException) -> CalendarErrorDetails:
    """Map a provider exception onto the calendar error taxonomy."""
    if isinstance(error, CalendarNotConfiguredError):
        return CalendarErrorDetails(
            CalendarErrorCategory.INTEGRATION_NOT_CONFIGURED,
            "CONFIG_ERROR",
            str(error) or "Calendar integration not configured for user",
        )

    status_code = _status_code(error)
    if status_code is not None:
        return _classify_status(status_code, error)

    code = getattr(error, "code", None)
    if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)) or code == "ETIMEDOUT":
        return CalendarErrorDetails(CalendarErrorCategory.TIMEOUT, code or "TIMEOUT", "Request timeout")

    if isinstance(error, (httpx.NetworkError, ConnectionError, socket.gaierror)) or code in _NETWORK_CODES:
        return CalendarErrorDetails(
            CalendarErrorCategory.NETWORK_ERROR,
            code or type(error).__name__,
            "Network connectivity issue",
        )

    message = str(error)
    lowered = message.lower()
    if "timeout" in lowered:
        return CalendarErrorDetails(CalendarErrorCategory.TIMEOUT, code or "TIMEOUT", "Request timeout")
    if "integration not configured" in lowered:
        return CalendarErrorDetails(CalendarErrorCategory.INTEGRATION_NOT_CONFIGURED, "CONFIG_ERROR", message)

    return CalendarErrorDetails(
        CalendarErrorCategory.UNKNOWN_ERROR,
        code or "UNKNOWN",
        message or "Unknown calendar integration error",
    )


def _status_code(error: BaseException) -> Optional[int]:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    if isinstance(error, CalendarGatewayError):
        return error.status_code
    return None


def _classify_status(status_code: int, error: BaseException) -> CalendarErrorDetails:
    if status_code == 401:
        return CalendarErrorDetails(
            CalendarErrorCategory.AUTH_EXPIRED, status_code, "Authentication token expired or invalid"
        )
    if status_code == 403:
        return CalendarErrorDetails(
            CalendarErrorCategory.PERMISSION_DENIED, status_code, "Insufficient permissions to access calendar"
        )
    if status_code == 429:
        return CalendarErrorDetails(CalendarErrorCategory.RATE_LIMITED, status_code, "Calendar API rate limit exceeded")
    if status_code in (500, 502, 503, 504):
        return CalendarErrorDetails(CalendarErrorCategory.SERVER_ERROR, status_code, "Calendar API server error")
    return CalendarErrorDetails(
        CalendarErrorCategory.API_ERROR,
        status_code,
        str(error) or "Unknown calendar API error",
    )
