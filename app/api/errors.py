# app/api/errors.py
import logging
from http import HTTPStatus
from typing import Any, Mapping

from fastapi import HTTPException

from app.schemas.cadence import CadenceSpec
from app.services.cadence_errors import CadenceValidationError, GenerationStalled
from app.services.cadence_validator import validate_cadence

logger = logging.getLogger(__name__)


def validate_or_422(raw: Mapping[str, Any]) -> CadenceSpec:
    """
    Validate a raw spec, translating CadenceValidationError into a 422 whose
    detail carries the specific error kind.
    """
    try:
        return validate_cadence(raw)
    except CadenceValidationError as exc:
        logger.debug("Rejected cadence spec: %s", exc)
        raise HTTPException(
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
            detail=exc.as_dict(),
        ) from exc


def stalled_500(exc: GenerationStalled) -> HTTPException:
    """
    GenerationStalled is a defect: already logged by the cursor, surfaced as a
    500 without any partial result.
    """
    return HTTPException(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        detail=(
            "Occurrence generation stalled after "
            f"{exc.iterations} iterations; the cadence engine hit its iteration ceiling."
        ),
    )
