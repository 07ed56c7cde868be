"""Tests for ledger-day boundaries."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest  # type: ignore[import-not-found]

from time_ledger.core.days import DayBoundaryResolver, load_timezone, week_start
from time_ledger.core.errors import ConfigurationFatalError, InvalidRangeError


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestLoadTimezone:
    def test_local(self) -> None:
        assert load_timezone(None) is None
        assert load_timezone("local") is None

    def test_named(self) -> None:
        assert load_timezone("Europe/Berlin") == ZoneInfo("Europe/Berlin")

    def test_unknown(self) -> None:
        with pytest.raises(ConfigurationFatalError):
            load_timezone("Mars/Olympus_Mons")


class TestWeekStart:
    def test_monday(self) -> None:
        assert week_start(date(2026, 1, 8)) == date(2026, 1, 5)
        assert week_start(date(2026, 1, 5)) == date(2026, 1, 5)
        assert week_start(date(2026, 1, 11)) == date(2026, 1, 5)


class TestResolverBasics:
    def test_offset_bounds(self) -> None:
        with pytest.raises(ValueError):
            DayBoundaryResolver(24)
        with pytest.raises(ValueError):
            DayBoundaryResolver(-1)

    def test_day_for_timestamp_with_offset(self) -> None:
        resolver = DayBoundaryResolver(4, timezone.utc)
        assert resolver.day_for_timestamp(utc(2026, 1, 2, 3, 59)) == date(2026, 1, 1)
        assert resolver.day_for_timestamp(utc(2026, 1, 2, 4, 0)) == date(2026, 1, 2)

    def test_day_bounds_with_offset(self) -> None:
        resolver = DayBoundaryResolver(4, timezone.utc)
        assert resolver.day_bounds_utc(date(2026, 1, 1)) == (utc(2026, 1, 1, 4), utc(2026, 1, 2, 4))

    def test_host_zone(self) -> None:
        resolver = DayBoundaryResolver()
        instant = utc(2026, 6, 1, 12)
        assert resolver.to_local(instant) == instant.astimezone().replace(tzinfo=None)


class TestSliceSession:
    """Splitting sessions across ledger days."""

    def test_crosses_midnight(self) -> None:
        resolver = DayBoundaryResolver(0, timezone.utc)
        parts = resolver.slice_session(utc(2026, 1, 1, 23), utc(2026, 1, 2, 1))
        assert parts == [
            (date(2026, 1, 1), timedelta(hours=1)),
            (date(2026, 1, 2), timedelta(hours=1)),
        ]

    def test_offset_moves_early_hours_to_previous_day(self) -> None:
        resolver = DayBoundaryResolver(4, timezone.utc)
        parts = resolver.slice_session(utc(2026, 1, 2, 2), utc(2026, 1, 2, 3, 30))
        assert parts == [(date(2026, 1, 1), timedelta(minutes=90))]

    def test_offset_boundary_splits_session(self) -> None:
        resolver = DayBoundaryResolver(4, timezone.utc)
        parts = resolver.slice_session(utc(2026, 1, 2, 2), utc(2026, 1, 2, 5))
        assert parts == [
            (date(2026, 1, 1), timedelta(hours=2)),
            (date(2026, 1, 2), timedelta(hours=1)),
        ]

    def test_stop_on_boundary_stays_in_one_day(self) -> None:
        resolver = DayBoundaryResolver(0, timezone.utc)
        parts = resolver.slice_session(utc(2026, 1, 1, 22), utc(2026, 1, 2, 0))
        assert parts == [(date(2026, 1, 1), timedelta(hours=2))]

    def test_empty_interval(self) -> None:
        resolver = DayBoundaryResolver(0, timezone.utc)
        assert resolver.slice_session(utc(2026, 1, 1, 1), utc(2026, 1, 1, 1)) == []

    def test_multi_day(self) -> None:
        resolver = DayBoundaryResolver(0, timezone.utc)
        parts = resolver.slice_session(utc(2026, 1, 1, 12), utc(2026, 1, 4, 6))
        assert [d for d, _ in parts] == [date(2026, 1, d) for d in (1, 2, 3, 4)]
        assert parts[1][1] == timedelta(hours=24)


@pytest.mark.dst  # type: ignore[misc]
class TestDaylightSaving:
    """America/New_York: 2026-03-08 springs forward, 2026-11-01 falls back."""

    def test_ambiguous_time_takes_earliest_instant(self, new_york: ZoneInfo) -> None:
        resolver = DayBoundaryResolver(0, new_york)
        assert resolver.local_to_utc(datetime(2026, 11, 1, 1, 30)) == utc(2026, 11, 1, 5, 30)

    def test_missing_time_probes_forward(self, new_york: ZoneInfo) -> None:
        resolver = DayBoundaryResolver(0, new_york)
        assert resolver.local_to_utc(datetime(2026, 3, 8, 2, 30)) == utc(2026, 3, 8, 7)

    def test_short_and_long_days(self, new_york: ZoneInfo) -> None:
        resolver = DayBoundaryResolver(0, new_york)

        start, end = resolver.day_bounds_utc(date(2026, 3, 8))
        assert (start, end) == (utc(2026, 3, 8, 5), utc(2026, 3, 9, 4))

        start, end = resolver.day_bounds_utc(date(2026, 11, 1))
        assert end - start == timedelta(hours=25)

    def test_day_start_inside_gap(self, new_york: ZoneInfo) -> None:
        resolver = DayBoundaryResolver(2, new_york)
        start, end = resolver.day_bounds_utc(date(2026, 3, 8))
        assert start == utc(2026, 3, 8, 7)
        assert end == utc(2026, 3, 9, 6)

    def test_probe_limit_is_fatal(self, new_york: ZoneInfo) -> None:
        class NarrowResolver(DayBoundaryResolver):
            GAP_PROBE_LIMIT = timedelta(minutes=30)

        resolver = NarrowResolver(0, new_york)
        with pytest.raises(ConfigurationFatalError):
            resolver.local_to_utc(datetime(2026, 3, 8, 2, 0))

    def test_clock_time_in_gap_rejected(self, new_york: ZoneInfo) -> None:
        resolver = DayBoundaryResolver(0, new_york)
        with pytest.raises(InvalidRangeError):
            resolver.local_clock_on_date_to_utc(date(2026, 3, 8), 2, 30)

    def test_clock_time_ambiguous(self, new_york: ZoneInfo) -> None:
        resolver = DayBoundaryResolver(0, new_york)
        assert resolver.local_clock_on_date_to_utc(date(2026, 11, 1), 1, 15) == utc(2026, 11, 1, 5, 15)

    def test_invalid_clock_time(self, new_york: ZoneInfo) -> None:
        resolver = DayBoundaryResolver(0, new_york)
        with pytest.raises(InvalidRangeError):
            resolver.local_clock_on_date_to_utc(date(2026, 1, 5), 25, 0)

    @pytest.mark.parametrize("offset", [0, 3])  # type: ignore[misc]
    def test_slices_conserve_time(self, new_york: ZoneInfo, offset: int) -> None:
        """Parts are contiguous, within their day, and sum to the session."""
        resolver = DayBoundaryResolver(offset, new_york)
        base = utc(2026, 3, 6)

        for step in range(0, 24 * 4, 7):
            start = base + timedelta(hours=step, minutes=13)
            for length in (timedelta(minutes=45), timedelta(hours=26), timedelta(hours=50)):
                stop = start + length
                parts = resolver.slice_session(start, stop)

                assert sum((d for _, d in parts), timedelta()) == length

                cursor = start
                for day, duration in parts:
                    day_start, day_end = resolver.day_bounds_utc(day)
                    assert max(cursor, day_start) == cursor
                    assert cursor + duration <= day_end
                    cursor += duration
                assert cursor == stop
