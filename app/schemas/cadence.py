# app/schemas/cadence.py
from __future__ import annotations

from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Frequency(str, Enum):
    """
    How often a team meets. Values match the `cadence` column of the team table.
    """

    DAILY = "daily"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi_weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    HALF_YEARLY = "half_yearly"
    ANNUAL = "annual"

    @property
    def period_months(self) -> int | None:
        """
        Length in months of the period used by period-anchored cadences,
        None for the others.
        """
        return _PERIOD_MONTHS.get(self)


_PERIOD_MONTHS = {
    Frequency.QUARTERLY: 3,
    Frequency.HALF_YEARLY: 6,
    Frequency.ANNUAL: 12,
}


class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def index(self) -> int:
        """
        Position compatible with `date.weekday()` (Monday == 0).
        """
        return list(Weekday).index(self)


LAST = "last"

# 1..5 select the nth matching weekday of a month, "last" the final one.
NthSelector = Union[Annotated[int, Field(ge=1, le=5)], Literal["last"]]


class TimeOfDay(BaseModel):
    """
    Local wall-clock time at which the meeting starts.
    """

    model_config = ConfigDict(frozen=True)

    hour: int = Field(..., ge=0, le=23, examples=[10])
    minute: int = Field(0, ge=0, le=59, examples=[30])

    def as_time(self) -> time:
        return time(self.hour, self.minute)

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


# --------------------------------------------------------------------------
# Anchor variants (one per frequency family)
# --------------------------------------------------------------------------

class WeekdayAnchor(BaseModel):
    """
    Weekly anchor: every week on `weekday`.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["weekday"] = "weekday"
    weekday: Weekday


class BiWeeklyAnchor(BaseModel):
    """
    Bi-weekly anchor: `weekday` every other week, counted from `epoch`.

    `epoch` is persisted with the team so the "on" weeks never drift with
    the moment a preview is rendered.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["bi_weekly"] = "bi_weekly"
    weekday: Weekday
    epoch: date

    @model_validator(mode="after")
    def _epoch_on_weekday(self) -> "BiWeeklyAnchor":
        if self.epoch.weekday() != self.weekday.index:
            raise ValueError(f"epoch {self.epoch.isoformat()} is not a {self.weekday.value}")
        return self


class DayOfMonthAnchor(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["day_of_month"] = "day_of_month"
    day: int = Field(..., ge=1, le=31)


class NthWeekdayAnchor(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["nth_weekday"] = "nth_weekday"
    nth: NthSelector
    weekday: Weekday


class PeriodNthWeekdayAnchor(BaseModel):
    """
    Quarterly / half-yearly / annual anchor.

    Periods start in `period_anchor_month` and repeat every 3, 6 or 12 months.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["period_nth_weekday"] = "period_nth_weekday"
    nth: NthSelector
    weekday: Weekday
    period_anchor_month: int = Field(1, ge=1, le=12)


class PeriodDayOfMonthAnchor(BaseModel):
    """
    Quarterly / half-yearly / annual anchor on a fixed day of the period's
    first month, clamped to that month's length like the monthly variant.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["period_day_of_month"] = "period_day_of_month"
    day: int = Field(..., ge=1, le=31)
    period_anchor_month: int = Field(1, ge=1, le=12)


Anchor = Annotated[
    Union[
        WeekdayAnchor,
        BiWeeklyAnchor,
        DayOfMonthAnchor,
        NthWeekdayAnchor,
        PeriodNthWeekdayAnchor,
        PeriodDayOfMonthAnchor,
    ],
    Field(discriminator="kind"),
]

_PERIOD_ANCHORS = (PeriodNthWeekdayAnchor, PeriodDayOfMonthAnchor)

# Anchor variants each frequency accepts; daily takes none.
ANCHORS_BY_FREQUENCY = {
    Frequency.DAILY: (),
    Frequency.WEEKLY: (WeekdayAnchor,),
    Frequency.BI_WEEKLY: (BiWeeklyAnchor,),
    Frequency.MONTHLY: (DayOfMonthAnchor, NthWeekdayAnchor),
    Frequency.QUARTERLY: _PERIOD_ANCHORS,
    Frequency.HALF_YEARLY: _PERIOD_ANCHORS,
    Frequency.ANNUAL: _PERIOD_ANCHORS,
}


class CadenceSpec(BaseModel):
    """
    Validated, immutable cadence configuration of a team.

    Instances are usually produced by `validate_cadence`, which reports each
    violated rule with its own error kind. Building one directly (e.g. from
    the normalized form returned by the API) still rejects an anchor that does
    not belong to the frequency.
    """

    model_config = ConfigDict(frozen=True)

    frequency: Frequency = Field(..., examples=["weekly"])
    time_of_day: TimeOfDay = Field(
        default_factory=lambda: TimeOfDay(hour=9, minute=0),
        description="Local wall-clock start time.",
    )
    timezone: str = Field("UTC", description="IANA zone identifier.", examples=["Europe/London"])
    anchor: Optional[Anchor] = Field(
        None,
        description="Frequency-specific anchor. Absent for daily cadences.",
    )

    @model_validator(mode="after")
    def _anchor_matches_frequency(self) -> "CadenceSpec":
        allowed = ANCHORS_BY_FREQUENCY[self.frequency]
        if not allowed:
            if self.anchor is not None:
                raise ValueError(f"{self.frequency.value} cadences take no anchor")
        elif not isinstance(self.anchor, allowed):
            names = ", ".join(a.__name__ for a in allowed)
            raise ValueError(f"{self.frequency.value} cadences need one of: {names}")
        return self


class Occurrence(BaseModel):
    """
    One concrete future meeting instant produced by the cadence engine.

    Never persisted here: the booking collaborator turns it into a meeting
    record, using `local_date` as its per-team idempotency key.
    """

    model_config = ConfigDict(frozen=True)

    instant: datetime = Field(..., description="Aware datetime at the cadence zone's UTC offset.")
    sequence_index: int = Field(..., ge=0)

    @property
    def local_date(self) -> date:
        return self.instant.date()

    @property
    def utc(self) -> datetime:
        return self.instant.astimezone(timezone.utc)


class OccurrencePreview(BaseModel):
    """
    Display row for previews: the same instant as local wall-clock and UTC.
    """

    sequence_index: int = Field(..., examples=[0])
    local: str = Field(..., examples=["2025-03-31T10:00:00+01:00"])
    utc: str = Field(..., examples=["2025-03-31T09:00:00+00:00"])
