# app/core/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global application configuration.

    Values are loaded from environment variables at runtime.

    These settings are used for:
    - Logging level
    - Internal API key protecting the booking-facing endpoints
    - Preview / look-ahead limits of the cadence engine
    - Time zones warmed up when the projector is built
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Cadence Engine"
    APP_ENV: str = Field("local", description="Environment name: local/test/dev/stage/prod")

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR).",
    )

    INTERNAL_API_KEY: str | None = Field(
        default=None,
        description="API key required for hitting /internal endpoints",
    )

    # --- Cadence engine limits ---
    PREVIEW_COUNT: int = Field(
        default=8,
        description="Number of occurrences returned by the UI preview when no count is given.",
    )
    MAX_OCCURRENCE_COUNT: int = Field(
        default=366,
        description="Largest occurrence count accepted over HTTP.",
    )
    ITERATION_CEILING_FACTOR: int = Field(
        default=50,
        description=(
            "Multiplier applied to the requested count to bound resolver "
            "iterations before generation is declared stalled."
        ),
    )

    PRELOAD_TIMEZONES: str = Field(
        default="UTC",
        description="Comma-separated IANA zones loaded when the projector is built.",
    )

    @property
    def preload_timezones(self) -> list[str]:
        return [z.strip() for z in self.PRELOAD_TIMEZONES.split(",") if z.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Using LRU cache ensures settings are read and validated only once,
    while still being easily importable across the app.
    """
    return Settings()
