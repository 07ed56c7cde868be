"""Ledger-day arithmetic in local time.

A ledger day starts at local midnight shifted by ``day_start_offset`` hours.
Local wall times are mapped back to UTC with two rules: an ambiguous wall time
(clocks turned back) takes the earlier instant, and a wall time that does not
exist (clocks sprang forward) is probed forward minute by minute.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from time_ledger.core.errors import ConfigurationFatalError, InvalidRangeError
from time_ledger.core.models import ensure_utc

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)
RESOLUTION = timedelta(microseconds=1)


def load_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """Resolve a timezone name. ``None`` or ``"local"`` means the host zone.

    Raises:
        ConfigurationFatalError: If the name is not a known IANA zone
    """
    if name is None or name == "local":
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationFatalError(f"unknown timezone: {name}") from e


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


class DayBoundaryResolver:
    """Converts between UTC instants and ledger days.

    Args:
        day_start_offset: Hours after local midnight at which a ledger day begins
        tz: Timezone for local time. ``None`` uses the host's local zone.
    """

    GAP_PROBE_STEP = timedelta(minutes=1)
    GAP_PROBE_LIMIT = timedelta(hours=2)

    def __init__(self, day_start_offset: int = 0, tz: Optional[tzinfo] = None):
        if not 0 <= day_start_offset < 24:
            raise ValueError(f"day_start_offset must be between 0 and 23, got {day_start_offset}")
        self.day_start_offset = day_start_offset
        self.tz = tz
        self._offset = timedelta(hours=day_start_offset)

    def __repr__(self) -> str:
        zone = getattr(self.tz, "key", None) or (self.tz and str(self.tz)) or "local"
        return f"DayBoundaryResolver(day_start_offset={self.day_start_offset}, tz={zone!r})"

    def to_local(self, instant: datetime) -> datetime:
        """Local wall time (naive) of a UTC instant."""
        aware = ensure_utc(instant).astimezone(self.tz)
        return aware.replace(tzinfo=None)

    def _instants_for(self, wall: datetime) -> list[datetime]:
        """Every UTC instant whose local wall time is ``wall``, earliest first.

        Empty for a wall time inside a DST gap; two entries when ambiguous.
        """
        found = set()
        for fold in (0, 1):
            local = wall.replace(fold=fold)
            if self.tz is None:
                # Naive datetimes are interpreted in the host zone.
                instant = local.astimezone(timezone.utc)
            else:
                instant = local.replace(tzinfo=self.tz).astimezone(timezone.utc)
            if self.to_local(instant) == wall:
                found.add(instant)
        return sorted(found)

    def local_to_utc(self, wall: datetime) -> datetime:
        """Map a local wall time to UTC.

        Raises:
            ConfigurationFatalError: If no instant is found within the probe window
        """
        instants = self._instants_for(wall)
        if instants:
            return instants[0]

        shift = self.GAP_PROBE_STEP
        while shift <= self.GAP_PROBE_LIMIT:
            instants = self._instants_for(wall + shift)
            if instants:
                logger.warning(f"Local time {wall.isoformat()} does not exist, using {wall + shift}")
                return instants[0]
            shift += self.GAP_PROBE_STEP

        raise ConfigurationFatalError(
            f"local time {wall.isoformat()} cannot be resolved in {self!r}"
        )

    def local_clock_on_date_to_utc(self, day: date, hour: int, minute: int) -> datetime:
        """UTC instant for a wall-clock time on a calendar date.

        Unlike day boundaries, user-entered times are never shifted: a time
        inside a DST gap is rejected.

        Raises:
            InvalidRangeError: If the clock time is invalid or does not exist locally
        """
        try:
            wall = datetime.combine(day, time(hour, minute))
        except ValueError as e:
            raise InvalidRangeError(f"invalid clock time {hour:02d}:{minute:02d}") from e
        instants = self._instants_for(wall)
        if not instants:
            raise InvalidRangeError(f"local time {wall:%Y-%m-%d %H:%M} does not exist")
        return instants[0]

    def day_for_timestamp(self, instant: datetime) -> date:
        """Ledger day an instant belongs to."""
        return (self.to_local(instant) - self._offset).date()

    def day_bounds_utc(self, day: date) -> tuple[datetime, datetime]:
        """UTC start (inclusive) and end (exclusive) of a ledger day."""
        start_wall = datetime.combine(day, time()) + self._offset
        return self.local_to_utc(start_wall), self.local_to_utc(start_wall + ONE_DAY)

    def slice_session(self, start: datetime, stop: datetime) -> list[tuple[date, timedelta]]:
        """Split ``[start, stop)`` into per-day parts.

        The parts are disjoint and add up to exactly ``stop - start``.
        """
        if stop <= start:
            return []

        parts = []
        day = self.day_for_timestamp(start)
        last_day = self.day_for_timestamp(stop - RESOLUTION)
        while day <= last_day:
            day_start, day_end = self.day_bounds_utc(day)
            part_start = max(start, day_start)
            part_end = min(stop, day_end)
            if part_end > part_start:
                parts.append((day, part_end - part_start))
            day += ONE_DAY
        return parts
