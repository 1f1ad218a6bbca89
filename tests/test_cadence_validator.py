# tests/test_cadence_validator.py
from datetime import date

import pytest
from pydantic import ValidationError

from app.schemas.cadence import (
    LAST,
    BiWeeklyAnchor,
    DayOfMonthAnchor,
    Frequency,
    CadenceSpec,
    NthWeekdayAnchor,
    PeriodDayOfMonthAnchor,
    PeriodNthWeekdayAnchor,
    TimeOfDay,
    Weekday,
    WeekdayAnchor,
)
from app.services.cadence_errors import CadenceValidationError, ValidationErrorKind
from app.services.cadence_validator import validate_cadence


def _assert_kind(raw, kind: ValidationErrorKind, projector) -> CadenceValidationError:
    with pytest.raises(CadenceValidationError) as excinfo:
        validate_cadence(raw, projector=projector)
    assert excinfo.value.kind is kind
    return excinfo.value


def test_daily_spec_with_defaults(projector):
    spec = validate_cadence({"frequency": "daily"}, projector=projector)

    assert spec.frequency is Frequency.DAILY
    assert spec.anchor is None
    assert spec.time_of_day == TimeOfDay(hour=9, minute=0)
    assert spec.timezone == "UTC"


def test_weekly_spec_normalizes_weekday_and_frequency(projector):
    spec = validate_cadence(
        {
            "frequency": "Weekly",
            "time_of_day": "10:00",
            "timezone": "Europe/London",
            "anchor": {"weekday": "Mon"},
        },
        projector=projector,
    )

    assert spec.frequency is Frequency.WEEKLY
    assert spec.anchor == WeekdayAnchor(weekday=Weekday.MONDAY)
    assert str(spec.time_of_day) == "10:00"


def test_bi_weekly_spec_accepts_hyphenated_frequency(projector):
    spec = validate_cadence(
        {"frequency": "bi-weekly", "anchor": {"weekday": "monday", "epoch": "2025-01-06"}},
        projector=projector,
    )

    assert spec.frequency is Frequency.BI_WEEKLY
    assert spec.anchor == BiWeeklyAnchor(weekday=Weekday.MONDAY, epoch=date(2025, 1, 6))


def test_monthly_day_of_month(projector):
    spec = validate_cadence({"frequency": "monthly", "anchor": {"day": 31}}, projector=projector)
    assert spec.anchor == DayOfMonthAnchor(day=31)


@pytest.mark.parametrize("nth, expected", [(1, 1), (5, 5), ("last", LAST), ("LAST", LAST), (-1, LAST)])
def test_monthly_nth_weekday_forms(nth, expected, projector):
    spec = validate_cadence(
        {"frequency": "monthly", "anchor": {"nth": nth, "weekday": "friday"}},
        projector=projector,
    )
    assert spec.anchor == NthWeekdayAnchor(nth=expected, weekday=Weekday.FRIDAY)


def test_period_anchor_month_defaults_to_january(projector):
    spec = validate_cadence(
        {"frequency": "quarterly", "anchor": {"nth": 1, "weekday": "tue"}},
        projector=projector,
    )
    assert spec.anchor == PeriodNthWeekdayAnchor(nth=1, weekday=Weekday.TUESDAY, period_anchor_month=1)


@pytest.mark.parametrize("frequency", ["quarterly", "half_yearly", "annual"])
def test_period_day_of_month(frequency, projector):
    spec = validate_cadence(
        {"frequency": frequency, "anchor": {"day": 15, "period_anchor_month": 2}},
        projector=projector,
    )
    assert spec.anchor == PeriodDayOfMonthAnchor(day=15, period_anchor_month=2)


def test_period_day_of_month_defaults_to_january_and_checks_range(projector):
    spec = validate_cadence({"frequency": "annual", "anchor": {"day": 31}}, projector=projector)
    assert spec.anchor == PeriodDayOfMonthAnchor(day=31, period_anchor_month=1)

    _assert_kind(
        {"frequency": "annual", "anchor": {"day": 32}},
        ValidationErrorKind.DAY_OF_MONTH_OUT_OF_RANGE,
        projector,
    )


def test_matching_kind_is_accepted(projector):
    spec = validate_cadence(
        {"frequency": "monthly", "anchor": {"kind": "day_of_month", "day": 5}},
        projector=projector,
    )
    assert spec.anchor == DayOfMonthAnchor(day=5)


def test_time_of_day_accepts_mapping_and_zero_seconds(projector):
    from_mapping = validate_cadence(
        {"frequency": "daily", "time_of_day": {"hour": 7, "minute": 45}},
        projector=projector,
    )
    from_string = validate_cadence(
        {"frequency": "daily", "time_of_day": "07:45:00"},
        projector=projector,
    )
    assert from_mapping.time_of_day == from_string.time_of_day == TimeOfDay(hour=7, minute=45)


def test_validated_spec_is_immutable(projector):
    spec = validate_cadence({"frequency": "daily"}, projector=projector)
    with pytest.raises(ValidationError):
        spec.timezone = "Europe/London"


# --------------------------------------------------------------------------
# Rejections
# --------------------------------------------------------------------------

@pytest.mark.parametrize("raw", [{"frequency": "fortnightly"}, {}, {"frequency": 7}, ["weekly"]])
def test_unknown_frequency(raw, projector):
    _assert_kind(raw, ValidationErrorKind.UNKNOWN_FREQUENCY, projector)


@pytest.mark.parametrize(
    "raw",
    [
        {"frequency": "weekly"},
        {"frequency": "weekly", "anchor": {}},
        {"frequency": "weekly", "anchor": {"weekday": "monday", "day": 3}},
        {"frequency": "daily", "anchor": {"weekday": "monday"}},
        {"frequency": "monthly", "anchor": {"day": 3, "nth": 1, "weekday": "monday"}},
        {"frequency": "monthly", "anchor": {"nth": 1}},
        {"frequency": "monthly", "anchor": {"weekday": "monday"}},
        {"frequency": "annual", "anchor": {"day": 1, "nth": 1, "weekday": "monday"}},
        {"frequency": "quarterly", "anchor": {"day": 1, "epoch": "2025-01-06"}},
        {"frequency": "monthly", "anchor": {"kind": "nth_weekday", "day": 5}},
        {"frequency": "quarterly", "anchor": {"kind": "period_nth_weekday", "day": 5}},
        {"frequency": "quarterly", "anchor": {"nth": 1, "weekday": "monday", "epoch": "2025-01-06"}},
    ],
)
def test_missing_or_conflicting_anchor(raw, projector):
    _assert_kind(raw, ValidationErrorKind.MISSING_OR_CONFLICTING_ANCHOR, projector)


@pytest.mark.parametrize("day", [0, 32, -1, "15", 1.5, True])
def test_day_of_month_out_of_range(day, projector):
    _assert_kind(
        {"frequency": "monthly", "anchor": {"day": day}},
        ValidationErrorKind.DAY_OF_MONTH_OUT_OF_RANGE,
        projector,
    )


@pytest.mark.parametrize("nth", [0, 6, -2, "first", 2.0])
def test_invalid_nth(nth, projector):
    _assert_kind(
        {"frequency": "monthly", "anchor": {"nth": nth, "weekday": "monday"}},
        ValidationErrorKind.INVALID_NTH,
        projector,
    )


def test_missing_epoch_for_bi_weekly(projector):
    error = _assert_kind(
        {"frequency": "bi_weekly", "anchor": {"weekday": "monday"}},
        ValidationErrorKind.MISSING_EPOCH_FOR_BI_WEEKLY,
        projector,
    )
    assert error.as_dict()["kind"] == "MissingEpochForBiWeekly"


def test_epoch_must_fall_on_anchor_weekday(projector):
    _assert_kind(
        {"frequency": "bi_weekly", "anchor": {"weekday": "monday", "epoch": "2025-01-08"}},
        ValidationErrorKind.INVALID_EPOCH,
        projector,
    )


def test_epoch_must_be_iso_date(projector):
    _assert_kind(
        {"frequency": "bi_weekly", "anchor": {"weekday": "monday", "epoch": "next monday"}},
        ValidationErrorKind.INVALID_EPOCH,
        projector,
    )


def test_invalid_weekday(projector):
    _assert_kind(
        {"frequency": "weekly", "anchor": {"weekday": "funday"}},
        ValidationErrorKind.INVALID_WEEKDAY,
        projector,
    )


@pytest.mark.parametrize("value", ["24:00", "9am", "10:60", "10:00:30", {"hour": 25}, 930])
def test_invalid_time_of_day(value, projector):
    _assert_kind(
        {"frequency": "daily", "time_of_day": value},
        ValidationErrorKind.INVALID_TIME_OF_DAY,
        projector,
    )


@pytest.mark.parametrize("tz", ["Mars/Olympus_Mons", "", 5])
def test_unknown_timezone(tz, projector):
    _assert_kind(
        {"frequency": "daily", "timezone": tz},
        ValidationErrorKind.UNKNOWN_TIMEZONE,
        projector,
    )


@pytest.mark.parametrize("month", [0, 13, "3"])
def test_invalid_period_anchor_month(month, projector):
    _assert_kind(
        {"frequency": "half_yearly", "anchor": {"nth": 2, "weekday": "monday", "period_anchor_month": month}},
        ValidationErrorKind.INVALID_PERIOD_ANCHOR_MONTH,
        projector,
    )


@pytest.mark.parametrize("anchor", [None, {}])
def test_daily_accepts_empty_anchor(anchor, projector):
    spec = validate_cadence({"frequency": "daily", "anchor": anchor}, projector=projector)
    assert spec.anchor is None


# --------------------------------------------------------------------------
# CadenceSpec built directly
# --------------------------------------------------------------------------

def test_spec_model_accepts_normalized_form():
    spec = CadenceSpec.model_validate(
        {
            "frequency": "quarterly",
            "time_of_day": {"hour": 10, "minute": 0},
            "timezone": "UTC",
            "anchor": {"kind": "period_day_of_month", "day": 15, "period_anchor_month": 1},
        }
    )
    assert spec.anchor == PeriodDayOfMonthAnchor(day=15, period_anchor_month=1)


@pytest.mark.parametrize("nth", [0, 6, -1])
def test_spec_model_rejects_out_of_range_nth(nth):
    with pytest.raises(ValidationError):
        CadenceSpec.model_validate(
            {
                "frequency": "monthly",
                "anchor": {"kind": "nth_weekday", "nth": nth, "weekday": "monday"},
            }
        )


@pytest.mark.parametrize(
    "frequency, anchor",
    [
        ("weekly", None),
        ("daily", {"kind": "weekday", "weekday": "monday"}),
        ("quarterly", {"kind": "weekday", "weekday": "monday"}),
        ("monthly", {"kind": "period_day_of_month", "day": 3}),
        ("annual", {"kind": "day_of_month", "day": 3}),
    ],
)
def test_spec_model_rejects_anchor_of_other_frequency(frequency, anchor):
    with pytest.raises(ValidationError):
        CadenceSpec.model_validate({"frequency": frequency, "anchor": anchor})


def test_spec_model_rejects_misaligned_epoch():
    with pytest.raises(ValidationError):
        CadenceSpec.model_validate(
            {
                "frequency": "bi_weekly",
                "anchor": {"kind": "bi_weekly", "weekday": "monday", "epoch": "2025-01-08"},
            }
        )
