"""Calendar gateway factory."""
from __future__ import annotations

import logging
from typing import List, Optional

from app.core.config import Settings, settings
from app.services.calendar.base import CalendarGateway
from app.services.calendar.google import GoogleCalendarGateway
from app.services.calendar.noop import NoopCalendarGateway
from app.services.calendar.outlook import OutlookCalendarGateway

logger = logging.getLogger(__name__)


def get_calendar_gateways(config: Optional[Settings] = None) -> List[CalendarGateway]:
    """Build one gateway per configured provider, in configuration order."""
    config = config or settings
    gateways: List[CalendarGateway] = []
    for provider in config.calendar_provider_list:
        if provider == "google":
            gateways.append(
                GoogleCalendarGateway(
                    access_token=config.google_calendar_access_token,
                    base_url=config.google_calendar_api_base,
                    timeout=config.calendar_attempt_timeout_seconds,
                )
            )
        elif provider == "outlook":
            gateways.append(
                OutlookCalendarGateway(
                    access_token=config.outlook_calendar_access_token,
                    base_url=config.outlook_calendar_api_base,
                    timeout=config.calendar_attempt_timeout_seconds,
                )
            )
        elif provider == "noop":
            gateways.append(NoopCalendarGateway())
        else:
            logger.warning("Unknown calendar provider %r ignored", provider)
    if not gateways:
        gateways.append(NoopCalendarGateway())
    return gateways
