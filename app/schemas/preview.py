# app/schemas/preview.py
from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, Field

from app.schemas.cadence import CadenceSpec, OccurrencePreview


_SPEC_EXAMPLE = {
    "frequency": "monthly",
    "time_of_day": "10:00",
    "timezone": "Europe/London",
    "anchor": {"nth": "last", "weekday": "friday"},
}


class CadenceValidateRequest(BaseModel):
    """
    Raw cadence spec as authored in the team settings form.
    """

    spec: Dict[str, Any] = Field(
        ...,
        description="Raw cadence spec (frequency, anchor, time_of_day, timezone).",
        examples=[_SPEC_EXAMPLE],
    )


class CadenceValidateResponse(BaseModel):
    valid: bool = Field(True, description="Always true; invalid specs answer 422.")
    spec: CadenceSpec = Field(..., description="Normalized cadence spec.")


class CadencePreviewRequest(BaseModel):
    """
    Request body for the UI preview.
    """

    spec: Dict[str, Any] = Field(..., examples=[_SPEC_EXAMPLE])
    reference_instant: datetime | None = Field(
        None,
        description=(
            "Instant after which occurrences are listed (ISO-8601 with offset). "
            "Defaults to the server's current time."
        ),
        examples=["2025-03-05T12:00:00Z"],
    )
    count: int | None = Field(
        None,
        ge=1,
        description="Number of occurrences to list. Defaults to PREVIEW_COUNT.",
        examples=[8],
    )


class CadencePreviewResponse(BaseModel):
    """
    Ordered upcoming occurrences for a cadence spec.
    """

    reference_instant: datetime = Field(..., description="Instant the preview was computed from.")
    timezone: str = Field(..., examples=["Europe/London"])
    occurrences: list[OccurrencePreview] = Field(
        ...,
        description="Strictly increasing occurrences, all later than reference_instant.",
    )


class NextOccurrenceRequest(BaseModel):
    """
    Request body used by the booking service to materialize the next meeting.
    """

    spec: Dict[str, Any] = Field(..., examples=[_SPEC_EXAMPLE])
    reference_instant: datetime = Field(
        ...,
        description=(
            "Instant after which the next meeting is wanted, typically the end "
            "of the meeting that just completed."
        ),
        examples=["2025-03-28T11:00:00Z"],
    )


class NextOccurrenceResponse(BaseModel):
    instant: datetime = Field(..., description="Start of the next meeting in the cadence's zone.")
    instant_utc: datetime = Field(..., description="Same instant in UTC.")
    local_date: str = Field(
        ...,
        description="Calendar day of the meeting in the cadence's zone (idempotency key).",
        examples=["2025-04-25"],
    )
