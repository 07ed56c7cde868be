"""Tests for data models."""

from datetime import date, datetime, timedelta, timezone

import pytest  # type: ignore[import-not-found]

from time_ledger.core.models import (
    Category,
    EventKind,
    LedgerHeader,
    LedgerSnapshot,
    Project,
    Session,
    Task,
    TimeEvent,
    ensure_utc,
)

T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


class TestTask:
    """Test Task model."""

    def test_short_description_is_first_line(self) -> None:
        task = Task(id="t1", project_id="p1", description="Write report\nwith appendix")
        assert task.short_description == "Write report"

    def test_short_description_empty(self) -> None:
        task = Task(id="t1", project_id="p1", description="")
        assert task.short_description == "(no description)"

    def test_serialization(self) -> None:
        """Test to_dict and from_dict."""
        task = Task(id="t1", project_id="p1", description="Review", category_id="c1", archived=True)
        data = task.to_dict()

        assert data["category_id"] == "c1"
        assert data["archived"] is True
        assert Task.from_dict(data) == task

    def test_from_dict_normalizes_empty_category(self) -> None:
        task = Task.from_dict({"id": "t1", "project_id": "p1", "category_id": "", "description": None})
        assert task.category_id is None
        assert task.description == ""


class TestProjectAndCategory:
    """Test Project and Category models."""

    def test_project_defaults(self) -> None:
        project = Project.from_dict({"id": "p1", "name": "Client"})
        assert project.color is None
        assert project.archived is False

    def test_category_serialization(self) -> None:
        category = Category(id="c1", name="Meetings", description="Calls")
        assert Category.from_dict(category.to_dict()) == category


class TestTimeEvent:
    """Test TimeEvent model."""

    def test_constructors_set_kind(self) -> None:
        start = TimeEvent.start("t1", T0, "focus")
        stop = TimeEvent.stop("t1", T0 + timedelta(hours=1))

        assert start.kind is EventKind.START
        assert start.is_start and not start.is_stop
        assert stop.is_stop
        assert start.note == "focus"
        assert stop.note is None

    def test_timestamps_normalized_to_utc(self) -> None:
        berlin = timezone(timedelta(hours=1))
        event = TimeEvent.start("t1", datetime(2026, 1, 5, 10, 0, tzinfo=berlin))
        assert event.timestamp == T0
        assert event.timestamp.tzinfo == timezone.utc

    def test_naive_timestamp_rejected(self) -> None:
        with pytest.raises(ValueError):
            TimeEvent.start("t1", datetime(2026, 1, 5, 9, 0))

    def test_events_are_immutable(self) -> None:
        event = TimeEvent.start("t1", T0)
        with pytest.raises(AttributeError):
            event.task_id = "t2"  # type: ignore[misc]

    def test_with_timestamp_keeps_other_fields(self) -> None:
        event = TimeEvent.stop("t1", T0, "done")
        moved = event.with_timestamp(T0 + timedelta(minutes=5))

        assert moved.timestamp == T0 + timedelta(minutes=5)
        assert moved.kind is EventKind.STOP
        assert moved.note == "done"
        assert event.timestamp == T0

    def test_serialization_format(self) -> None:
        data = TimeEvent.start("t1", T0).to_dict()
        assert data == {
            "timestamp": "2026-01-05T09:00:00+00:00",
            "type": "start",
            "task_id": "t1",
            "note": None,
        }
        assert TimeEvent.from_dict(data) == TimeEvent.start("t1", T0)


class TestLedgerHeader:
    """Test LedgerHeader model."""

    def test_defaults(self) -> None:
        header = LedgerHeader()
        assert header.schema_version == 1
        assert header.created_at.tzinfo is not None
        assert header.projects == [] and header.tasks == []

    def test_from_dict_accepts_datetime(self) -> None:
        """YAML may load timestamps as datetime objects."""
        header = LedgerHeader.from_dict({"schema_version": 1, "created_at": T0})
        assert header.created_at == T0


class TestEnsureUtc:
    def test_naive_rejected(self) -> None:
        with pytest.raises(ValueError, match="timezone-aware"):
            ensure_utc(datetime(2026, 1, 1))


class TestSession:
    def test_duration_and_running(self) -> None:
        session = Session("t1", T0, T0 + timedelta(minutes=90), start_index=0, stop_index=None)
        assert session.duration == timedelta(minutes=90)
        assert session.is_running


class TestLedgerSnapshot:
    """Test LedgerSnapshot queries."""

    def test_totals_for_day_sorted(self) -> None:
        day = date(2026, 1, 5)
        snapshot = LedgerSnapshot(
            daily_task_totals={
                day: {
                    "b": timedelta(hours=1),
                    "a": timedelta(hours=1),
                    "c": timedelta(hours=2),
                }
            }
        )

        assert [task_id for task_id, _ in snapshot.totals_for_day(day)] == ["c", "a", "b"]
        assert snapshot.day_total(day) == timedelta(hours=4)
        assert snapshot.total_for_day(day, "a") == timedelta(hours=1)

    def test_missing_day(self) -> None:
        snapshot = LedgerSnapshot()
        day = date(2026, 1, 5)
        assert snapshot.totals_for_day(day) == []
        assert snapshot.total_for_day(day, "a") == timedelta()
        assert snapshot.total_tracked() == timedelta()
