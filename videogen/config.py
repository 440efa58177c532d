from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # DB (optional; in-memory store when unset)
    DATABASE_URL: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    # Service behavior
    LOG_LEVEL: str = "INFO"
    VIDEO_STUDIO_ENABLED: bool = True
    RESUME_ACTIVE_JOBS_ON_STARTUP: bool = True

    # Polling
    JOB_POLL_INTERVAL_SECONDS: float = 5.0
    JOB_POLL_MAX_ATTEMPTS: int = 60  # ~5 minutes at 5s

    # Runway
    RUNWAY_API_KEY: str = ""
    RUNWAY_BASE_URL: str = "https://api.dev.runwayml.com"
    RUNWAY_API_VERSION: str = "2024-11-06"
    RUNWAY_TIMEOUT_SECONDS: float = 30.0
    RUNWAY_QUERY_ATTEMPTS: int = 2
    RUNWAY_DEFAULT_MODEL: str = "gen4_turbo"


settings = Settings()

if not settings.RUNWAY_API_KEY:
    import logging
    logging.getLogger("config").warning(
        "RUNWAY_API_KEY is not set; job submissions will fail until it is configured."
    )
