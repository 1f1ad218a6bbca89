# app/services/cadence_errors.py
from __future__ import annotations

from enum import Enum


class ValidationErrorKind(str, Enum):
    """
    Specific reason a raw cadence spec was rejected.
    """

    UNKNOWN_FREQUENCY = "UnknownFrequency"
    MISSING_OR_CONFLICTING_ANCHOR = "MissingOrConflictingAnchor"
    DAY_OF_MONTH_OUT_OF_RANGE = "DayOfMonthOutOfRange"
    INVALID_NTH = "InvalidNth"
    MISSING_EPOCH_FOR_BI_WEEKLY = "MissingEpochForBiWeekly"
    INVALID_WEEKDAY = "InvalidWeekday"
    INVALID_TIME_OF_DAY = "InvalidTimeOfDay"
    UNKNOWN_TIMEZONE = "UnknownTimezone"
    INVALID_PERIOD_ANCHOR_MONTH = "InvalidPeriodAnchorMonth"
    INVALID_EPOCH = "InvalidEpoch"


class CadenceValidationError(ValueError):
    """
    Raised when a raw cadence spec violates one of the cadence invariants.

    Always caller-fixable by correcting the spec; never retried.
    """

    def __init__(self, kind: ValidationErrorKind, detail: str) -> None:
        super().__init__(f"{kind.value}: {detail}")
        self.kind = kind
        self.detail = detail

    def as_dict(self) -> dict:
        return {"kind": self.kind.value, "detail": self.detail}


class GenerationStalled(RuntimeError):
    """
    Raised when occurrence generation fails to make progress within its
    iteration ceiling.

    This is a defect in a resolver, not a transient condition: callers must
    not retry it or fall back to a shorter result.
    """

    def __init__(
        self,
        message: str,
        *,
        iterations: int = 0,
        collected: int = 0,
        requested: int | None = None,
    ) -> None:
        super().__init__(message)
        self.iterations = iterations
        self.collected = collected
        self.requested = requested
