# app/api/routes/cadence.py
from datetime import datetime, timezone
from http import HTTPStatus

from fastapi import APIRouter, HTTPException

from app.api.errors import stalled_500, validate_or_422
from app.core.config import get_settings
from app.schemas.preview import (
    CadencePreviewRequest,
    CadencePreviewResponse,
    CadenceValidateRequest,
    CadenceValidateResponse,
)
from app.services.cadence_errors import GenerationStalled
from app.services.lookahead_cursor import preview

router = APIRouter(prefix="/cadence", tags=["Cadence"])


@router.post(
    "/validate",
    response_model=CadenceValidateResponse,
    status_code=HTTPStatus.OK,
    summary="Validate a team meeting cadence",
    description=(
        "Checks a raw cadence spec against the cadence rules and returns its "
        "normalized form.\n\n"
        "Invalid specs answer **422** with a `detail` object carrying the error "
        "`kind` (e.g. `MissingEpochForBiWeekly`, `InvalidNth`) and a message."
    ),
    responses={
        422: {
            "description": "The spec violates a cadence rule.",
            "content": {
                "application/json": {
                    "example": {
                        "detail": {
                            "kind": "MissingEpochForBiWeekly",
                            "detail": "bi_weekly cadences need an 'epoch' date fixing which weeks are on.",
                        }
                    }
                }
            },
        },
    },
)
def validate_spec(payload: CadenceValidateRequest) -> CadenceValidateResponse:
    spec = validate_or_422(payload.spec)
    return CadenceValidateResponse(valid=True, spec=spec)


@router.post(
    "/preview",
    response_model=CadencePreviewResponse,
    status_code=HTTPStatus.OK,
    summary="Preview upcoming meetings for a cadence",
    description=(
        "Lists the next meetings a cadence would produce, as shown in the team "
        "settings form.\n\n"
        "- `count` defaults to `PREVIEW_COUNT` (8).\n"
        "- `reference_instant` defaults to the server's current time.\n"
        "- Every occurrence is strictly later than `reference_instant` and the "
        "list is strictly increasing."
    ),
    responses={
        200: {
            "description": "Preview computed.",
            "content": {
                "application/json": {
                    "example": {
                        "reference_instant": "2025-03-05T12:00:00Z",
                        "timezone": "UTC",
                        "occurrences": [
                            {
                                "sequence_index": 0,
                                "local": "2025-03-10T10:00:00+00:00",
                                "utc": "2025-03-10T10:00:00+00:00",
                            }
                        ],
                    }
                }
            },
        },
        400: {"description": "count exceeds MAX_OCCURRENCE_COUNT or reference_instant has no offset."},
        422: {"description": "The spec violates a cadence rule."},
    },
)
def preview_spec(payload: CadencePreviewRequest) -> CadencePreviewResponse:
    """
    Compute the UI preview.

    The engine itself never reads the clock: "now" is taken here, at the
    HTTP edge, only when the caller did not send a reference instant.
    """
    settings = get_settings()
    count = payload.count or settings.PREVIEW_COUNT
    if count > settings.MAX_OCCURRENCE_COUNT:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail=f"count must not exceed {settings.MAX_OCCURRENCE_COUNT}.",
        )

    reference_instant = payload.reference_instant or datetime.now(tz=timezone.utc)
    if reference_instant.tzinfo is None:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="reference_instant must include a UTC offset.",
        )

    spec = validate_or_422(payload.spec)

    try:
        rows = preview(spec, reference_instant, count)
    except GenerationStalled as exc:
        raise stalled_500(exc) from exc

    return CadencePreviewResponse(
        reference_instant=reference_instant,
        timezone=spec.timezone,
        occurrences=rows,
    )
