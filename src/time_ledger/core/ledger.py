"""Ledger aggregate: registry, event log and the validated operations on them."""

import logging
from datetime import date, datetime
from typing import Optional

from time_ledger.core.days import DayBoundaryResolver
from time_ledger.core.errors import (
    EventNotFoundError,
    InvalidRangeError,
    OrderingViolationError,
    TaskAlreadyRunningError,
    TaskArchivedError,
    TaskNotRunningError,
)
from time_ledger.core.events import EventLog
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
from time_ledger.core.registry import Registry
from time_ledger.core.snapshot import Interval, build_snapshot, collect_sessions, pair_intervals

logger = logging.getLogger(__name__)


class Ledger:
    """All entities and events of one tracked workspace.

    The ledger's operations are the only writers of its event log. Every
    failed operation leaves the log as it was.
    """

    def __init__(
        self,
        header: Optional[LedgerHeader] = None,
        events: Optional[EventLog] = None,
        resolver: Optional[DayBoundaryResolver] = None,
    ):
        """Initialize ledger.

        Args:
            header: Entities and metadata. Creates a fresh header if None.
            events: Event log. Creates an empty log if None.
            resolver: Day boundaries for snapshots. Defaults to local midnight.
        """
        self.registry = Registry(header)
        self.events = events if events is not None else EventLog()
        self.resolver = resolver or DayBoundaryResolver()

    @property
    def header(self) -> LedgerHeader:
        return self.registry.header

    # Registry passthrough

    def project(self, project_id: str) -> Optional[Project]:
        return self.registry.project(project_id)

    def category(self, category_id: str) -> Optional[Category]:
        return self.registry.category(category_id)

    def task(self, task_id: str) -> Optional[Task]:
        return self.registry.task(task_id)

    def add_project(self, name: str, color: Optional[str] = None) -> str:
        return self.registry.add_project(name, color)

    def add_category(self, name: str, description: Optional[str] = None) -> str:
        return self.registry.add_category(name, description)

    def add_task(
        self, project_id: str, description: str, category_id: Optional[str] = None
    ) -> str:
        return self.registry.add_task(project_id, description, category_id)

    def task_label(self, task_id: str) -> str:
        """Display title of a task, or its id if unknown."""
        task = self.registry.task(task_id)
        return task.short_description if task else task_id

    # Projections

    def snapshot(self, now: datetime) -> LedgerSnapshot:
        """Replay the log at ``now``."""
        return build_snapshot(self.events.to_list(), ensure_utc(now), self.resolver)

    def sessions(self, now: datetime) -> list[Session]:
        """Reconstructed sessions with their event positions."""
        return collect_sessions(self.events.to_list(), ensure_utc(now))

    def sessions_for_day(self, day: date, now: datetime) -> list[Session]:
        """Sessions overlapping a ledger day."""
        day_start, day_end = self.resolver.day_bounds_utc(day)
        return [s for s in self.sessions(now) if s.stop > day_start and s.start < day_end]

    # Event-producing operations

    def start_task(self, task_id: str, at: datetime, note: Optional[str] = None) -> TimeEvent:
        """Start tracking a task.

        Args:
            task_id: Task to start
            at: Start instant
            note: Note for the session

        Returns:
            Appended start event

        Raises:
            TaskNotFoundError: If the task does not exist
            TaskArchivedError: If the task is archived
            TaskAlreadyRunningError: If the task is active at ``at``
        """
        task = self.registry.require_task(task_id)
        if task.archived:
            raise TaskArchivedError(task_id)

        at = ensure_utc(at)
        if self.snapshot(at).is_active(task_id):
            raise TaskAlreadyRunningError(task_id)

        event = TimeEvent.start(task_id, at, note)
        self.events.append(event)
        logger.debug(f"Started task {task_id} at {at.isoformat()}")
        return event

    def stop_task(self, task_id: str, at: datetime, note: Optional[str] = None) -> TimeEvent:
        """Stop tracking a task.

        Args:
            task_id: Task to stop
            at: Stop instant
            note: Note on the stop event

        Returns:
            Appended stop event

        Raises:
            TaskNotFoundError: If the task does not exist
            TaskNotRunningError: If the task is not active at ``at``
        """
        self.registry.require_task(task_id)

        at = ensure_utc(at)
        if not self.snapshot(at).is_active(task_id):
            raise TaskNotRunningError(task_id)

        event = TimeEvent.stop(task_id, at, note)
        self.events.append(event)
        logger.debug(f"Stopped task {task_id} at {at.isoformat()}")
        return event

    def add_manual_session(
        self,
        task_id: str,
        start: datetime,
        stop: datetime,
        note: Optional[str] = None,
    ) -> tuple[TimeEvent, TimeEvent]:
        """Record a finished session after the fact.

        The running check is skipped, so past work can be logged while a
        timer for the same task is open.

        Raises:
            TaskNotFoundError: If the task does not exist
            InvalidRangeError: If ``stop`` is not after ``start``
        """
        self.registry.require_task(task_id)

        start = ensure_utc(start)
        stop = ensure_utc(stop)
        if stop <= start:
            raise InvalidRangeError("stop must be after start")

        start_event = TimeEvent.start(task_id, start, note)
        stop_event = TimeEvent.stop(task_id, stop)
        self.events.extend([start_event, stop_event])
        logger.debug(f"Logged manual session for {task_id}: {start.isoformat()} - {stop.isoformat()}")
        return start_event, stop_event

    # Corrections

    def _interval_for(self, index: int, kind: EventKind) -> Optional[Interval]:
        for interval in pair_intervals(self.events.to_list()):
            if kind is EventKind.START and interval.start_index == index:
                return interval
            if kind is EventKind.STOP and interval.stop_index == index:
                return interval
        return None

    def _neighbor(self, index: int, kind: EventKind, before: bool) -> Optional[datetime]:
        """Timestamp of the nearest ``kind`` event of the same task around ``index``."""
        history = self.events.task_history(self.events[index].task_id)
        position = [i for i, _ in history].index(index)
        candidates = reversed(history[:position]) if before else iter(history[position + 1 :])
        for _, event in candidates:
            if event.kind is kind:
                return event.timestamp
        return None

    def retime_start(self, index: int, timestamp: datetime, now: datetime) -> TimeEvent:
        """Move a start event.

        The start must stay before its stop (or ``now`` while open) and not
        before the task's previous stop.

        Raises:
            EventNotFoundError: If ``index`` is not a start event
            OrderingViolationError: If the move breaks the task's ordering
        """
        event = self.events.get(index, EventKind.START)
        timestamp = ensure_utc(timestamp)
        interval = self._interval_for(index, EventKind.START)

        if interval is not None and interval.stop_index is not None:
            paired_stop = self.events[interval.stop_index].timestamp
        else:
            paired_stop = ensure_utc(now)
        if timestamp >= paired_stop:
            raise OrderingViolationError("start must be before end")

        previous_stop = self._neighbor(index, EventKind.STOP, before=True)
        if previous_stop is not None and timestamp < previous_stop:
            raise OrderingViolationError("start cannot be before previous stop for this task")

        updated = event.with_timestamp(timestamp)
        self.events.replace(index, updated)
        logger.debug(f"Moved start {index} of {event.task_id} to {timestamp.isoformat()}")
        return updated

    def retime_stop(self, index: int, timestamp: datetime, now: datetime) -> TimeEvent:
        """Move a stop event.

        The stop must stay after its start, not in the future, and not after
        the task's next start.

        Raises:
            EventNotFoundError: If ``index`` is not a stop closing an interval
            OrderingViolationError: If the move breaks the task's ordering
        """
        event = self.events.get(index, EventKind.STOP)
        timestamp = ensure_utc(timestamp)
        interval = self._interval_for(index, EventKind.STOP)
        if interval is None:
            raise EventNotFoundError(f"stop event {index} does not close an interval")

        if timestamp <= self.events[interval.start_index].timestamp:
            raise OrderingViolationError("end must be after start")
        if timestamp > ensure_utc(now):
            raise OrderingViolationError("end cannot be later than current time")

        next_start = self._neighbor(index, EventKind.START, before=False)
        if next_start is not None and timestamp > next_start:
            raise OrderingViolationError("end cannot be after following start for this task")

        updated = event.with_timestamp(timestamp)
        self.events.replace(index, updated)
        logger.debug(f"Moved stop {index} of {event.task_id} to {timestamp.isoformat()}")
        return updated

    def retime_event(self, index: int, timestamp: datetime, now: datetime) -> TimeEvent:
        """Move a start or stop event, whichever ``index`` names."""
        event = self.events.get(index)
        if event.is_start:
            return self.retime_start(index, timestamp, now)
        return self.retime_stop(index, timestamp, now)

    def delete_interval(self, start_index: int) -> list[TimeEvent]:
        """Remove an interval: its start and, if closed, its stop.

        Args:
            start_index: Log position of the interval's start event

        Returns:
            Removed events in log order

        Raises:
            EventNotFoundError: If ``start_index`` is not a start event
        """
        self.events.get(start_index, EventKind.START)
        interval = self._interval_for(start_index, EventKind.START)

        indices = [start_index]
        if interval is not None and interval.stop_index is not None:
            indices.append(interval.stop_index)

        removed = self.events.remove(indices)
        logger.debug(f"Deleted interval at {start_index} ({len(removed)} events)")
        return removed
