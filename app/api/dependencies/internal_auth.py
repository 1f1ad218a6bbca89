# app/api/dependencies/internal_auth.py
import logging
import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

from app.core.config import get_settings

logger = logging.getLogger(__name__)

_OPEN_ENVIRONMENTS = ("local", "test")


async def verify_internal_api_key(
    internal_api_key: Optional[str] = Header(
        default=None,
        alias="X-Internal-Api-Key",
        description="Shared key of the booking service calling /internal endpoints.",
    ),
) -> None:
    """
    Guard for the booking-service endpoints under /internal.

    Rules
    -----
    - local / test without INTERNAL_API_KEY: open, so the engine can be
      exercised without a booking service.
    - Any environment with INTERNAL_API_KEY: the header must match (401).
    - Other environments without INTERNAL_API_KEY: 500, a deployment
      must never expose next-occurrence lookups unauthenticated.
    """
    settings = get_settings()
    env = (settings.APP_ENV or "local").lower()
    expected = getattr(settings, "INTERNAL_API_KEY", None)

    if not expected:
        if env in _OPEN_ENVIRONMENTS:
            return
        logger.error("INTERNAL_API_KEY missing in environment %r", env)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="INTERNAL_API_KEY not configured for this environment.",
        )

    if not _key_matches(internal_api_key, expected):
        logger.warning(
            "Rejected /internal call (%s key, env=%s)",
            "wrong" if internal_api_key else "no",
            env,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing internal API key.",
        )


def _key_matches(provided: Optional[str], expected: str) -> bool:
    if not provided:
        return False
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
