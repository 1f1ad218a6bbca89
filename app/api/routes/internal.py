# app/api/routes/internal.py
from datetime import timezone
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies.internal_auth import verify_internal_api_key
from app.api.errors import stalled_500, validate_or_422
from app.schemas.preview import NextOccurrenceRequest, NextOccurrenceResponse
from app.services.cadence_errors import GenerationStalled
from app.services.lookahead_cursor import generate

router = APIRouter(
    prefix="/internal",
    tags=["Internal"],
    dependencies=[Depends(verify_internal_api_key)],
)


@router.post(
    "/next-occurrence",
    response_model=NextOccurrenceResponse,
    status_code=HTTPStatus.OK,
    summary="Compute the next meeting of a team cadence",
    description=(
        "Returns the single next occurrence strictly after `reference_instant`.\n\n"
        "Intended for the booking service, which calls it when a team is saved "
        "or a meeting completes and turns the answer into a meeting record. "
        "`local_date` is the calendar day in the cadence's zone and should be "
        "used as the per-team idempotency key.\n\n"
        "Protected via the `X-Internal-Api-Key` header when configured."
    ),
    responses={
        200: {
            "description": "Next occurrence computed.",
            "content": {
                "application/json": {
                    "example": {
                        "instant": "2025-04-25T10:00:00+01:00",
                        "instant_utc": "2025-04-25T09:00:00Z",
                        "local_date": "2025-04-25",
                    }
                }
            },
        },
        400: {"description": "reference_instant has no UTC offset."},
        401: {"description": "Missing or invalid internal API key (if configured)."},
        422: {"description": "The spec violates a cadence rule."},
        500: {"description": "Generation stalled (engine defect)."},
    },
)
def next_occurrence(payload: NextOccurrenceRequest) -> NextOccurrenceResponse:
    if payload.reference_instant.tzinfo is None:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="reference_instant must include a UTC offset.",
        )

    spec = validate_or_422(payload.spec)

    try:
        (occurrence,) = generate(spec, payload.reference_instant, 1)
    except GenerationStalled as exc:
        raise stalled_500(exc) from exc

    return NextOccurrenceResponse(
        instant=occurrence.instant,
        instant_utc=occurrence.instant.astimezone(timezone.utc),
        local_date=occurrence.local_date.isoformat(),
    )
