"""Application configuration managed via environment variables."""
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "FocusFlow Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://focusflow@localhost:5432/focusflow"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "focusflow"

    planner_timezone: str = "UTC"
    plan_request_timeout_seconds: float = 15.0

    # Comma separated list of calendar sources: "google", "outlook". Empty disables calendars.
    calendar_providers: str = ""
    google_calendar_api_base: str = "https://www.googleapis.com/calendar/v3"
    google_calendar_access_token: str | None = None
    outlook_calendar_api_base: str = "https://graph.microsoft.com/v1.0"
    outlook_calendar_access_token: str | None = None
    calendar_max_attempts: int = 3
    calendar_retry_base_delay_ms: int = 1000
    calendar_retry_jitter_ms: int = 500
    calendar_retry_max_delay_ms: int = 10000
    calendar_attempt_timeout_seconds: float = 10.0

    @property
    def calendar_provider_list(self) -> List[str]:
        return [item.strip().lower() for item in self.calendar_providers.split(",") if item.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
