# app/main.py
from fastapi import FastAPI

from app.api.routes import cadence, health, internal
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.services.timezone_projector import get_projector


def create_app() -> FastAPI:
    """
    Application factory for the Cadence Engine service.
    """
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Computes the upcoming meetings of a team from its meeting cadence\n"
            "(daily to annual, weekday / day-of-month / nth-weekday anchors,\n"
            "local time of day and time zone) for UI previews and for the\n"
            "booking service that materializes meeting records."
        ),
        version="0.1.0",
    )

    # Routers
    app.include_router(health.router)
    app.include_router(cadence.router)
    app.include_router(internal.router)

    @app.on_event("startup")
    async def on_startup() -> None:  # pragma: no cover
        # Load the zone table once so requests never hit the disk.
        get_projector()

    return app


app = create_app()
