# app/services/cadence_validator.py
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Mapping, Optional

from app.schemas.cadence import (
    LAST,
    BiWeeklyAnchor,
    CadenceSpec,
    DayOfMonthAnchor,
    Frequency,
    NthSelector,
    NthWeekdayAnchor,
    PeriodDayOfMonthAnchor,
    PeriodNthWeekdayAnchor,
    TimeOfDay,
    Weekday,
    WeekdayAnchor,
)
from app.services.cadence_errors import CadenceValidationError, ValidationErrorKind
from app.services.timezone_projector import TimeZoneProjector, get_projector

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")

_WEEKDAY_ALIASES: dict[str, Weekday] = {}
for _wd in Weekday:
    _WEEKDAY_ALIASES[_wd.value] = _wd
    _WEEKDAY_ALIASES[_wd.value[:3]] = _wd

# Anchor keys allowed per anchor shape.
_WEEKLY_KEYS = {"weekday"}
_BI_WEEKLY_KEYS = {"weekday", "epoch"}
_DAY_OF_MONTH_KEYS = {"day"}
_NTH_WEEKDAY_KEYS = {"nth", "weekday"}
_PERIOD_KEYS = {"nth", "weekday", "period_anchor_month"}
_PERIOD_DAY_KEYS = {"day", "period_anchor_month"}

_DEFAULT_TIME = TimeOfDay(hour=9, minute=0)


def validate_cadence(
    raw: Mapping[str, Any],
    projector: Optional[TimeZoneProjector] = None,
) -> CadenceSpec:
    """
    Validate a raw (JSON-decoded) cadence spec and build the immutable CadenceSpec.

    Expected shape
    --------------
    {
        "frequency": "monthly",
        "time_of_day": "10:30",           # optional, defaults to 09:00
        "timezone": "Europe/London",      # optional, defaults to UTC
        "anchor": {"nth": "last", "weekday": "friday"}
    }

    Rules
    -----
    - Exactly one anchor shape is populated and it must match `frequency`.
    - daily takes no anchor; weekly takes {weekday}; bi_weekly takes
      {weekday, epoch}; monthly takes {day} or {nth, weekday};
      quarterly/half_yearly/annual take {nth, weekday, period_anchor_month?}
      or {day, period_anchor_month?}.
    - A `kind` echoed back from a normalized spec must agree with the fields.
    - `day` in 1..31, `nth` in 1..5 or "last" (-1 accepted as "last").
    - A bi-weekly `epoch` must fall on the anchor weekday.

    Never consults the clock. Raises CadenceValidationError on the first
    violated rule.
    """
    if not isinstance(raw, Mapping):
        raise CadenceValidationError(
            ValidationErrorKind.UNKNOWN_FREQUENCY,
            "Cadence spec must be a JSON object.",
        )

    frequency = _parse_frequency(raw.get("frequency"))
    time_of_day = _parse_time_of_day(raw.get("time_of_day"))
    timezone_id = _parse_timezone(raw.get("timezone"), projector or get_projector())
    anchor = _parse_anchor(frequency, raw.get("anchor"))

    return CadenceSpec(
        frequency=frequency,
        time_of_day=time_of_day,
        timezone=timezone_id,
        anchor=anchor,
    )


# --------------------------------------------------------------------------
# Field parsers
# --------------------------------------------------------------------------

def _parse_frequency(value: Any) -> Frequency:
    if not isinstance(value, str):
        raise CadenceValidationError(
            ValidationErrorKind.UNKNOWN_FREQUENCY,
            f"Frequency must be one of {[f.value for f in Frequency]}, got {value!r}.",
        )

    normalized = value.strip().lower().replace("-", "_")
    try:
        return Frequency(normalized)
    except ValueError:
        raise CadenceValidationError(
            ValidationErrorKind.UNKNOWN_FREQUENCY,
            f"Unknown frequency {value!r}.",
        ) from None


def _parse_time_of_day(value: Any) -> TimeOfDay:
    if value is None:
        return _DEFAULT_TIME

    if isinstance(value, Mapping):
        hour, minute = value.get("hour"), value.get("minute", 0)
        if set(value) - {"hour", "minute"}:
            raise CadenceValidationError(
                ValidationErrorKind.INVALID_TIME_OF_DAY,
                f"Unexpected time_of_day keys: {sorted(set(value) - {'hour', 'minute'})}.",
            )
    elif isinstance(value, str):
        match = _TIME_RE.match(value.strip())
        if match is None:
            raise CadenceValidationError(
                ValidationErrorKind.INVALID_TIME_OF_DAY,
                f"time_of_day must look like HH:MM, got {value!r}.",
            )
        if match.group(3) not in (None, "00"):
            raise CadenceValidationError(
                ValidationErrorKind.INVALID_TIME_OF_DAY,
                "time_of_day has minute precision; seconds must be 00.",
            )
        hour, minute = int(match.group(1)), int(match.group(2))
    else:
        raise CadenceValidationError(
            ValidationErrorKind.INVALID_TIME_OF_DAY,
            f"Unsupported time_of_day value {value!r}.",
        )

    if not _is_int(hour) or not 0 <= hour <= 23:
        raise CadenceValidationError(
            ValidationErrorKind.INVALID_TIME_OF_DAY,
            f"Hour must be 0..23, got {hour!r}.",
        )
    if not _is_int(minute) or not 0 <= minute <= 59:
        raise CadenceValidationError(
            ValidationErrorKind.INVALID_TIME_OF_DAY,
            f"Minute must be 0..59, got {minute!r}.",
        )
    return TimeOfDay(hour=hour, minute=minute)


def _parse_timezone(value: Any, projector: TimeZoneProjector) -> str:
    if value is None:
        return "UTC"

    if not isinstance(value, str) or not value.strip() or not projector.has_zone(value.strip()):
        raise CadenceValidationError(
            ValidationErrorKind.UNKNOWN_TIMEZONE,
            f"Unknown time zone {value!r}.",
        )
    return value.strip()


def _parse_weekday(value: Any) -> Weekday:
    weekday = _WEEKDAY_ALIASES.get(value.strip().lower()) if isinstance(value, str) else None
    if weekday is None:
        raise CadenceValidationError(
            ValidationErrorKind.INVALID_WEEKDAY,
            f"Unknown weekday {value!r}.",
        )
    return weekday


def _parse_nth(value: Any) -> NthSelector:
    if isinstance(value, str) and value.strip().lower() == LAST:
        return LAST
    if _is_int(value):
        if value == -1:
            return LAST
        if 1 <= value <= 5:
            return value
    raise CadenceValidationError(
        ValidationErrorKind.INVALID_NTH,
        f"nth must be 1..5 or 'last', got {value!r}.",
    )


def _parse_day(value: Any) -> int:
    if not _is_int(value) or not 1 <= value <= 31:
        raise CadenceValidationError(
            ValidationErrorKind.DAY_OF_MONTH_OUT_OF_RANGE,
            f"day must be an integer in 1..31, got {value!r}.",
        )
    return value


def _parse_period_anchor_month(value: Any) -> int:
    if value is None:
        return 1
    if not _is_int(value) or not 1 <= value <= 12:
        raise CadenceValidationError(
            ValidationErrorKind.INVALID_PERIOD_ANCHOR_MONTH,
            f"period_anchor_month must be 1..12, got {value!r}.",
        )
    return value


def _parse_epoch(value: Any, weekday: Weekday) -> date:
    if value is None:
        raise CadenceValidationError(
            ValidationErrorKind.MISSING_EPOCH_FOR_BI_WEEKLY,
            "bi_weekly cadences need an 'epoch' date fixing which weeks are on.",
        )

    if isinstance(value, datetime):
        epoch = value.date()
    elif isinstance(value, date):
        epoch = value
    else:
        try:
            epoch = date.fromisoformat(value)
        except (TypeError, ValueError):
            raise CadenceValidationError(
                ValidationErrorKind.INVALID_EPOCH,
                f"epoch must be an ISO date (YYYY-MM-DD), got {value!r}.",
            ) from None

    if epoch.weekday() != weekday.index:
        raise CadenceValidationError(
            ValidationErrorKind.INVALID_EPOCH,
            f"epoch {epoch.isoformat()} is not a {weekday.value}.",
        )
    return epoch


# --------------------------------------------------------------------------
# Anchor
# --------------------------------------------------------------------------

def _parse_anchor(frequency: Frequency, anchor: Any):
    parsed = _build_anchor(frequency, anchor)

    declared = anchor.get("kind") if isinstance(anchor, Mapping) else None
    if declared is not None and parsed is not None and declared != parsed.kind:
        raise CadenceValidationError(
            ValidationErrorKind.MISSING_OR_CONFLICTING_ANCHOR,
            f"anchor kind {declared!r} contradicts its fields, which describe {parsed.kind!r}.",
        )
    return parsed


def _build_anchor(frequency: Frequency, anchor: Any):
    if frequency is Frequency.DAILY:
        if anchor:
            raise CadenceValidationError(
                ValidationErrorKind.MISSING_OR_CONFLICTING_ANCHOR,
                "daily cadences take no anchor.",
            )
        return None

    if not isinstance(anchor, Mapping) or not anchor:
        raise CadenceValidationError(
            ValidationErrorKind.MISSING_OR_CONFLICTING_ANCHOR,
            f"{frequency.value} cadences need an anchor object.",
        )

    # "kind" is what a normalized spec echoes back; the key set decides the shape.
    keys = {k for k, v in anchor.items() if v is not None and k != "kind"}

    if frequency is Frequency.WEEKLY:
        _require_keys(frequency, keys, required=_WEEKLY_KEYS, allowed=_WEEKLY_KEYS)
        return WeekdayAnchor(weekday=_parse_weekday(anchor["weekday"]))

    if frequency is Frequency.BI_WEEKLY:
        # epoch is checked separately so its absence gets its own error kind
        _require_keys(frequency, keys, required=_WEEKLY_KEYS, allowed=_BI_WEEKLY_KEYS)
        weekday = _parse_weekday(anchor["weekday"])
        return BiWeeklyAnchor(weekday=weekday, epoch=_parse_epoch(anchor.get("epoch"), weekday))

    if frequency is Frequency.MONTHLY:
        if keys == _DAY_OF_MONTH_KEYS:
            return DayOfMonthAnchor(day=_parse_day(anchor["day"]))
        if "day" in keys and keys & _NTH_WEEKDAY_KEYS:
            raise CadenceValidationError(
                ValidationErrorKind.MISSING_OR_CONFLICTING_ANCHOR,
                "monthly anchor sets both 'day' and an nth-weekday rule; pick one.",
            )
        _require_keys(frequency, keys, required=_NTH_WEEKDAY_KEYS, allowed=_NTH_WEEKDAY_KEYS)
        return NthWeekdayAnchor(
            nth=_parse_nth(anchor["nth"]),
            weekday=_parse_weekday(anchor["weekday"]),
        )

    # quarterly / half_yearly / annual
    if "day" in keys:
        if keys & _NTH_WEEKDAY_KEYS:
            raise CadenceValidationError(
                ValidationErrorKind.MISSING_OR_CONFLICTING_ANCHOR,
                f"{frequency.value} anchor sets both 'day' and an nth-weekday rule; pick one.",
            )
        _require_keys(frequency, keys, required={"day"}, allowed=_PERIOD_DAY_KEYS)
        return PeriodDayOfMonthAnchor(
            day=_parse_day(anchor["day"]),
            period_anchor_month=_parse_period_anchor_month(anchor.get("period_anchor_month")),
        )

    _require_keys(frequency, keys, required=_NTH_WEEKDAY_KEYS, allowed=_PERIOD_KEYS)
    return PeriodNthWeekdayAnchor(
        nth=_parse_nth(anchor["nth"]),
        weekday=_parse_weekday(anchor["weekday"]),
        period_anchor_month=_parse_period_anchor_month(anchor.get("period_anchor_month")),
    )


def _require_keys(frequency: Frequency, keys: set, *, required: set, allowed: set) -> None:
    unexpected = keys - allowed
    missing = required - keys
    if unexpected or missing:
        parts = []
        if missing:
            parts.append(f"missing {sorted(missing)}")
        if unexpected:
            parts.append(f"unexpected {sorted(unexpected)}")
        raise CadenceValidationError(
            ValidationErrorKind.MISSING_OR_CONFLICTING_ANCHOR,
            f"{frequency.value} anchor is {' and '.join(parts)}.",
        )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
