# app/services/anchor_resolvers.py
from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Optional, Protocol

from app.schemas.cadence import (
    LAST,
    BiWeeklyAnchor,
    DayOfMonthAnchor,
    Frequency,
    NthSelector,
    NthWeekdayAnchor,
    PeriodDayOfMonthAnchor,
    PeriodNthWeekdayAnchor,
    Weekday,
    WeekdayAnchor,
)
from app.services.cadence_errors import GenerationStalled

# Any valid anchor is satisfiable within a few months; these bounds only
# stop a defective anchor from scanning forever.
MAX_MONTH_SCAN = 120
MAX_PERIOD_SCAN = 40


# --------------------------------------------------------------------------
# Calendar helpers
# --------------------------------------------------------------------------

def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def first_of_next_month(day: date) -> date:
    year, month = add_months(day.year, day.month, 1)
    return date(year, month, 1)


def next_weekday_on_or_after(day: date, weekday: Weekday) -> date:
    return day + timedelta(days=(weekday.index - day.weekday()) % 7)


def weekdays_in_month(year: int, month: int, weekday: Weekday) -> list[date]:
    """
    All dates of `month` falling on `weekday`, in order (four or five of them).
    """
    first = date(year, month, 1)
    offset = (weekday.index - first.weekday()) % 7
    return [
        date(year, month, day)
        for day in range(1 + offset, days_in_month(year, month) + 1, 7)
    ]


def nth_weekday_of_month(year: int, month: int, nth: NthSelector, weekday: Weekday) -> Optional[date]:
    """
    The `nth` `weekday` of the month, or the last one for "last".

    Returns None when the month has fewer than `nth` such weekdays (e.g. a
    fifth Monday in a month with four): the rule is not satisfiable that month.
    """
    matches = weekdays_in_month(year, month, weekday)
    if nth == LAST:
        return matches[-1]
    if nth > len(matches):
        return None
    return matches[nth - 1]


# --------------------------------------------------------------------------
# Resolvers
# --------------------------------------------------------------------------

class AnchorResolver(Protocol):
    """
    One strategy per frequency.

    `next_candidate` returns the earliest calendar date on/after `on_or_after`
    satisfying the anchor (time of day not applied). `advance_past` returns the
    date the cursor restarts from once `candidate` has been consumed.
    """

    def next_candidate(self, anchor, on_or_after: date) -> date:
        ...

    def advance_past(self, candidate: date) -> date:
        ...


class DailyResolver:
    def next_candidate(self, anchor: None, on_or_after: date) -> date:
        return on_or_after

    def advance_past(self, candidate: date) -> date:
        return candidate + timedelta(days=1)


class WeeklyResolver:
    def next_candidate(self, anchor: WeekdayAnchor, on_or_after: date) -> date:
        return next_weekday_on_or_after(on_or_after, anchor.weekday)

    def advance_past(self, candidate: date) -> date:
        return candidate + timedelta(days=7)


class BiWeeklyResolver:
    """
    Weekly match restricted to weeks an even number of weeks away from `epoch`.

    The epoch only fixes parity: it is not a start date, so aligned dates
    before it are valid too.
    """

    def next_candidate(self, anchor: BiWeeklyAnchor, on_or_after: date) -> date:
        candidate = next_weekday_on_or_after(on_or_after, anchor.weekday)
        if (candidate - anchor.epoch).days % 14 == 0:
            return candidate

        # Weekday matches recur every 7 days and parity alternates.
        candidate += timedelta(days=7)
        if (candidate - anchor.epoch).days % 14 == 0:
            return candidate

        raise GenerationStalled(
            f"epoch {anchor.epoch.isoformat()} is not a {anchor.weekday.value}; "
            "bi-weekly parity can never be satisfied."
        )

    def advance_past(self, candidate: date) -> date:
        return candidate + timedelta(days=14)


class MonthlyResolver:
    """
    Day-of-month (clamped to the month length) or nth-weekday of month.
    """

    def next_candidate(self, anchor, on_or_after: date) -> date:
        if isinstance(anchor, DayOfMonthAnchor):
            return self._day_of_month(anchor, on_or_after)
        if isinstance(anchor, NthWeekdayAnchor):
            return self._nth_weekday(anchor, on_or_after)
        raise TypeError(f"monthly cadence cannot use anchor {type(anchor).__name__}")

    def advance_past(self, candidate: date) -> date:
        return first_of_next_month(candidate)

    @staticmethod
    def _day_of_month(anchor: DayOfMonthAnchor, on_or_after: date) -> date:
        # Clamp, never skip: day=31 lands on the 30th / 28th / 29th.
        year, month = on_or_after.year, on_or_after.month
        candidate = date(year, month, min(anchor.day, days_in_month(year, month)))
        if candidate >= on_or_after:
            return candidate

        year, month = add_months(year, month, 1)
        return date(year, month, min(anchor.day, days_in_month(year, month)))

    @staticmethod
    def _nth_weekday(anchor: NthWeekdayAnchor, on_or_after: date) -> date:
        year, month = on_or_after.year, on_or_after.month
        for _ in range(MAX_MONTH_SCAN):
            candidate = nth_weekday_of_month(year, month, anchor.nth, anchor.weekday)
            if candidate is not None and candidate >= on_or_after:
                return candidate
            year, month = add_months(year, month, 1)

        raise GenerationStalled(
            f"no month within {MAX_MONTH_SCAN} satisfies nth={anchor.nth} {anchor.weekday.value}",
            iterations=MAX_MONTH_SCAN,
        )


class PeriodResolver:
    """
    Quarterly / half-yearly / annual cadences.

    - Day-of-month anchors land on `day` of each period's first month,
      clamped to the month length.
    - Nth-weekday anchors land on the nth weekday of the first month, falling
      forward to the period's second month when the first cannot satisfy it.
    """

    def __init__(self, period_months: int) -> None:
        self.period_months = period_months

    def next_candidate(self, anchor, on_or_after: date) -> date:
        if not isinstance(anchor, (PeriodNthWeekdayAnchor, PeriodDayOfMonthAnchor)):
            raise TypeError(f"period cadence cannot use anchor {type(anchor).__name__}")

        year, month = self.period_start(on_or_after, anchor.period_anchor_month)
        for _ in range(MAX_PERIOD_SCAN):
            candidate = self._resolve_period(year, month, anchor)
            if candidate is not None and candidate >= on_or_after:
                return candidate
            year, month = add_months(year, month, self.period_months)

        raise GenerationStalled(
            f"no period within {MAX_PERIOD_SCAN} satisfies {anchor!r}",
            iterations=MAX_PERIOD_SCAN,
        )

    def advance_past(self, candidate: date) -> date:
        return first_of_next_month(candidate)

    def period_start(self, day: date, period_anchor_month: int) -> tuple[int, int]:
        """
        (year, month) at which the period containing `day` starts.
        """
        offset = (day.month - period_anchor_month) % self.period_months
        return add_months(day.year, day.month, -offset)

    @staticmethod
    def _resolve_period(year: int, month: int, anchor) -> Optional[date]:
        if isinstance(anchor, PeriodDayOfMonthAnchor):
            return date(year, month, min(anchor.day, days_in_month(year, month)))

        for shift in (0, 1):
            y, m = add_months(year, month, shift)
            candidate = nth_weekday_of_month(y, m, anchor.nth, anchor.weekday)
            if candidate is not None:
                return candidate
        return None


RESOLVERS: dict[Frequency, AnchorResolver] = {
    Frequency.DAILY: DailyResolver(),
    Frequency.WEEKLY: WeeklyResolver(),
    Frequency.BI_WEEKLY: BiWeeklyResolver(),
    Frequency.MONTHLY: MonthlyResolver(),
    Frequency.QUARTERLY: PeriodResolver(period_months=3),
    Frequency.HALF_YEARLY: PeriodResolver(period_months=6),
    Frequency.ANNUAL: PeriodResolver(period_months=12),
}

_unmapped = set(Frequency) - set(RESOLVERS)
if _unmapped:  # pragma: no cover
    raise RuntimeError(f"No anchor resolver registered for {sorted(f.value for f in _unmapped)}")


def resolver_for(frequency: Frequency) -> AnchorResolver:
    return RESOLVERS[frequency]
