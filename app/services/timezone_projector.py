# app/services/timezone_projector.py
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Iterable, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import get_settings
from app.schemas.cadence import TimeOfDay

logger = logging.getLogger(__name__)


class UnknownTimezoneError(KeyError):
    """
    Raised when a zone identifier is not present in the time-zone rule database.
    """


class TimeZoneProjector(Protocol):
    """
    Turns a local calendar date and wall-clock time into a precise instant.

    DST policy
    ----------
    - Spring-forward gap: roll forward to the first valid instant after the
      gap (the transition instant itself).
    - Fall-back fold: the earlier of the two valid instants.
    """

    def project(self, local_date: date, time_of_day: TimeOfDay, timezone_id: str) -> datetime:
        ...

    def has_zone(self, timezone_id: str) -> bool:
        ...

    def to_local(self, instant: datetime, timezone_id: str) -> datetime:
        ...


class ZoneInfoProjector:
    """
    TimeZoneProjector backed by the IANA database shipped through `zoneinfo`
    (system tzdata, or the `tzdata` distribution where the OS has none).

    Zones are loaded on first use (or up-front via `preload`) and kept in an
    in-memory table, so projecting never performs I/O once a zone is warm.
    """

    def __init__(self, preload: Iterable[str] = ()) -> None:
        self._zones: dict[str, ZoneInfo] = {}
        for timezone_id in preload:
            self.zone(timezone_id)

    def zone(self, timezone_id: str) -> ZoneInfo:
        """
        Return the rules for `timezone_id`.

        Raises UnknownTimezoneError if the identifier cannot be resolved.
        """
        cached = self._zones.get(timezone_id)
        if cached is not None:
            return cached

        try:
            tz = ZoneInfo(timezone_id)
        except (ZoneInfoNotFoundError, ValueError, TypeError) as exc:
            raise UnknownTimezoneError(timezone_id) from exc

        self._zones[timezone_id] = tz
        return tz

    @property
    def loaded_zones(self) -> list[str]:
        return sorted(self._zones)

    def has_zone(self, timezone_id: str) -> bool:
        try:
            self.zone(timezone_id)
        except UnknownTimezoneError:
            return False
        return True

    def to_local(self, instant: datetime, timezone_id: str) -> datetime:
        """
        Express an aware `instant` in `timezone_id`.
        """
        return instant.astimezone(self.zone(timezone_id))

    def project(self, local_date: date, time_of_day: TimeOfDay, timezone_id: str) -> datetime:
        """
        Project `local_date` at `time_of_day` in `timezone_id` to an aware
        datetime carrying the zone's UTC offset for that instant.

        The result carries a fixed offset, never the ZoneInfo itself, so it
        compares equal to the same instant expressed in any other zone (a
        ZoneInfo datetime inside a repeated hour does not, per PEP 495).
        """
        tz = self.zone(timezone_id)
        naive = datetime.combine(local_date, time_of_day.as_time())

        # fold=0 picks the earlier instant when the wall time occurs twice.
        candidate = naive.replace(tzinfo=tz, fold=0)
        if _wall_clock(candidate, tz) == naive:
            return _fixed_offset(candidate)

        return _fixed_offset(_first_instant_after_gap(naive, tz))


def _fixed_offset(instant: datetime) -> datetime:
    return instant.astimezone(timezone(instant.utcoffset()))


def _wall_clock(instant: datetime, tz: ZoneInfo) -> datetime:
    return instant.astimezone(timezone.utc).astimezone(tz).replace(tzinfo=None, fold=0)


def _first_instant_after_gap(naive: datetime, tz: ZoneInfo) -> datetime:
    """
    Locate the transition that swallowed `naive`.

    Inside a gap, fold=1 reads the wall time with the post-transition offset
    and fold=0 with the pre-transition one, so the transition lies between the
    two readings. Transitions fall on whole seconds.
    """
    lo = int(naive.replace(tzinfo=tz, fold=1).timestamp())
    hi = int(naive.replace(tzinfo=tz, fold=0).timestamp())

    # Invariant: wall(lo) < naive <= wall(hi)
    while hi - lo > 1:
        mid = (lo + hi) // 2
        if _wall_clock(datetime.fromtimestamp(mid, tz=timezone.utc), tz) >= naive:
            hi = mid
        else:
            lo = mid

    return datetime.fromtimestamp(hi, tz=tz)


@lru_cache()
def get_projector() -> ZoneInfoProjector:
    """
    Process-wide projector, built once and warmed with PRELOAD_TIMEZONES.
    """
    settings = get_settings()
    projector = ZoneInfoProjector(preload=settings.preload_timezones)
    logger.info("Time-zone projector ready (preloaded: %s)", ", ".join(settings.preload_timezones) or "none")
    return projector
