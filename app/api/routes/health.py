# app/api/routes/health.py
import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel, Field

from app.core.config import get_settings
from app.services.timezone_projector import UnknownTimezoneError, get_projector

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """
    Liveness plus readiness of the time-zone tables the engine depends on.
    """

    status: str = Field(
        ...,
        description="'ok' when the projector is ready, 'degraded' when a preloaded zone failed to load.",
        examples=["ok"],
    )
    app_name: str = Field(..., examples=["Cadence Engine"])
    environment: str = Field(..., description="local/test/dev/stage/prod", examples=["local"])
    projector_ready: bool = Field(
        ...,
        description="Whether the time-zone projector was built with every PRELOAD_TIMEZONES entry.",
    )
    preloaded_timezones: list[str] = Field(
        ...,
        description="Zones configured through PRELOAD_TIMEZONES.",
        examples=[["UTC", "Europe/London"]],
    )
    loaded_timezones: list[str] = Field(
        ...,
        description="Zones currently held in memory by the projector.",
        examples=[["Europe/London", "UTC"]],
    )
    timestamp_utc: datetime = Field(..., examples=["2025-01-01T10:30:00Z"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check for the Cadence Engine service",
    description=(
        "Reports whether the service is up and whether the time-zone projector "
        "could load every zone listed in `PRELOAD_TIMEZONES`.\n\n"
        "Always answers 200 so orchestrators can tell a misconfigured zone list "
        "(`status = degraded`) from a dead process."
    ),
    responses={
        200: {
            "description": "Service is responding.",
            "content": {
                "application/json": {
                    "example": {
                        "status": "ok",
                        "app_name": "Cadence Engine",
                        "environment": "local",
                        "projector_ready": True,
                        "preloaded_timezones": ["UTC"],
                        "loaded_timezones": ["UTC"],
                        "timestamp_utc": "2025-01-01T10:30:00Z",
                    }
                }
            },
        }
    },
)
async def health_check() -> HealthResponse:
    settings = get_settings()

    try:
        loaded = get_projector().loaded_zones
        ready = True
    except UnknownTimezoneError as exc:
        logger.error("Time-zone projector unavailable: unknown preloaded zone %s", exc)
        loaded = []
        ready = False

    return HealthResponse(
        status="ok" if ready else "degraded",
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        projector_ready=ready,
        preloaded_timezones=settings.preload_timezones,
        loaded_timezones=loaded,
        timestamp_utc=datetime.now(tz=timezone.utc),
    )
