# app/services/lookahead_cursor.py
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from itertools import islice
from typing import Iterator, List, Optional

from app.core.config import get_settings
from app.schemas.cadence import CadenceSpec, Occurrence, OccurrencePreview
from app.services.anchor_resolvers import resolver_for
from app.services.cadence_errors import GenerationStalled
from app.services.timezone_projector import TimeZoneProjector, get_projector

logger = logging.getLogger(__name__)


def iter_occurrences(
    spec: CadenceSpec,
    reference_instant: datetime,
    *,
    projector: Optional[TimeZoneProjector] = None,
    max_iterations: Optional[int] = None,
) -> Iterator[Occurrence]:
    """
    Lazily yield the occurrences of `spec` strictly after `reference_instant`.

    Algorithm
    ---------
    - The cursor starts at the calendar date of `reference_instant` in the
      cadence's own zone.
    - Each iteration asks the frequency's resolver for the next candidate date
      on/after the cursor and projects it to an instant.
    - The instant is yielded only if it is later than both the reference and
      the previously yielded occurrence.
    - The cursor then moves past the candidate by the frequency's minimum step,
      so the same date is never matched twice.

    Raises GenerationStalled once `max_iterations` resolver calls have been
    made (None means unbounded; callers then bound the sequence themselves).
    """
    _require_aware(reference_instant, "reference_instant")
    return _walk(spec, reference_instant, projector or get_projector(), max_iterations)


def _walk(
    spec: CadenceSpec,
    reference_instant: datetime,
    projector: TimeZoneProjector,
    max_iterations: Optional[int],
) -> Iterator[Occurrence]:
    resolver = resolver_for(spec.frequency)

    reference_utc = reference_instant.astimezone(timezone.utc)
    cursor_date = projector.to_local(reference_instant, spec.timezone).date()

    last_utc: Optional[datetime] = None
    sequence_index = 0
    iterations = 0

    try:
        while True:
            if max_iterations is not None and iterations >= max_iterations:
                raise GenerationStalled(
                    f"Resolver for {spec.frequency.value} made no sufficient progress "
                    f"after {iterations} iterations ({sequence_index} occurrences collected).",
                    iterations=iterations,
                    collected=sequence_index,
                )
            iterations += 1

            candidate = resolver.next_candidate(spec.anchor, cursor_date)
            instant = projector.project(candidate, spec.time_of_day, spec.timezone)

            # Compare in UTC: same-zone datetimes compare by wall clock.
            instant_utc = instant.astimezone(timezone.utc)
            if instant_utc > reference_utc and (last_utc is None or instant_utc > last_utc):
                yield Occurrence(instant=instant, sequence_index=sequence_index)
                sequence_index += 1
                last_utc = instant_utc

            cursor_date = resolver.advance_past(candidate)
    except GenerationStalled as exc:
        logger.error(
            "Cadence generation stalled (frequency=%s, timezone=%s, reference=%s): %s",
            spec.frequency.value,
            spec.timezone,
            reference_instant.isoformat(),
            exc,
        )
        raise


def generate(
    spec: CadenceSpec,
    reference_instant: datetime,
    count: int,
    *,
    projector: Optional[TimeZoneProjector] = None,
    ceiling_factor: Optional[int] = None,
) -> List[Occurrence]:
    """
    Return exactly `count` occurrences strictly after `reference_instant`.

    All-or-nothing: either the full list is returned or GenerationStalled is
    raised once `ceiling_factor * count` resolver iterations have been spent.
    Identical arguments always produce identical output.
    """
    _require_aware(reference_instant, "reference_instant")
    if count < 0:
        raise ValueError("count must be >= 0")
    if count == 0:
        return []

    factor = get_settings().ITERATION_CEILING_FACTOR if ceiling_factor is None else ceiling_factor
    occurrences = iter_occurrences(
        spec,
        reference_instant,
        projector=projector,
        max_iterations=factor * count,
    )
    try:
        return list(islice(occurrences, count))
    except GenerationStalled as exc:
        exc.requested = count
        raise


def occurrences_between(
    spec: CadenceSpec,
    window_start: datetime,
    window_end: datetime,
    *,
    projector: Optional[TimeZoneProjector] = None,
    ceiling_factor: Optional[int] = None,
) -> List[Occurrence]:
    """
    Occurrences with window_start <= instant < window_end.

    Used when materializing every meeting of a planning window. The ceiling is
    proportional to the window length in days, so even a daily cadence over a
    long window stays within bounds.
    """
    _require_aware(window_start, "window_start")
    _require_aware(window_end, "window_end")
    if window_end <= window_start:
        return []

    factor = get_settings().ITERATION_CEILING_FACTOR if ceiling_factor is None else ceiling_factor
    window_days = math.ceil((window_end - window_start) / timedelta(days=1))

    result: List[Occurrence] = []
    end_utc = window_end.astimezone(timezone.utc)
    for occurrence in iter_occurrences(
        spec,
        window_start - timedelta(microseconds=1),
        projector=projector,
        max_iterations=factor * (window_days + 2),
    ):
        if occurrence.utc >= end_utc:
            break
        result.append(occurrence)
    return result


def preview(
    spec: CadenceSpec,
    reference_instant: datetime,
    count: int,
    *,
    projector: Optional[TimeZoneProjector] = None,
) -> List[OccurrencePreview]:
    """
    Display rows for the team settings preview: each occurrence as local
    wall-clock time (with offset) and as UTC.
    """
    return [
        OccurrencePreview(
            sequence_index=occ.sequence_index,
            local=occ.instant.isoformat(),
            utc=occ.utc.isoformat(),
        )
        for occ in generate(spec, reference_instant, count, projector=projector)
    ]


def _require_aware(value: datetime, name: str) -> None:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware")
