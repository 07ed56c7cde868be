"""Replay of the event log into snapshots and sessions.

Everything here is a pure function of the events and an injected ``now``:
the same inputs always give the same output.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from time_ledger.core.days import DayBoundaryResolver
from time_ledger.core.models import (
    RECENT_TASKS_LIMIT,
    ActiveSession,
    LedgerSnapshot,
    Session,
    TimeEvent,
)


@dataclass(frozen=True)
class Interval:
    """A start event paired with the stop that closed it, by log position."""

    task_id: str
    start_index: int
    stop_index: Optional[int]
    replaced: bool = False


def replay_order(events: Sequence[TimeEvent]) -> list[int]:
    """Positions sorted by timestamp, ties broken by append position."""
    return sorted(range(len(events)), key=lambda i: (events[i].timestamp, i))


def pair_intervals(events: Sequence[TimeEvent]) -> list[Interval]:
    """Pair every start with its closing stop.

    A start that is never stopped gets ``stop_index=None``; one overridden by
    a later start of the same task is also marked ``replaced``. Stops with
    nothing open are not paired.
    """
    open_starts: dict[str, int] = {}
    intervals: list[Interval] = []
    for index in replay_order(events):
        event = events[index]
        if event.is_start:
            replaced = open_starts.get(event.task_id)
            if replaced is not None:
                intervals.append(Interval(event.task_id, replaced, None, replaced=True))
            open_starts[event.task_id] = index
        else:
            start_index = open_starts.pop(event.task_id, None)
            if start_index is not None:
                intervals.append(Interval(event.task_id, start_index, index))
    for task_id, start_index in open_starts.items():
        intervals.append(Interval(task_id, start_index, None))
    intervals.sort(key=lambda interval: interval.start_index)
    return intervals


def _accumulate(
    snapshot: LedgerSnapshot,
    resolver: DayBoundaryResolver,
    task_id: str,
    start: datetime,
    stop: datetime,
) -> None:
    if stop <= start:
        return
    snapshot.task_totals[task_id] = snapshot.task_totals.get(task_id, timedelta()) + (stop - start)
    for day, part in resolver.slice_session(start, stop):
        day_totals = snapshot.daily_task_totals.setdefault(day, {})
        day_totals[task_id] = day_totals.get(task_id, timedelta()) + part


def build_snapshot(
    events: Sequence[TimeEvent],
    now: datetime,
    resolver: Optional[DayBoundaryResolver] = None,
) -> LedgerSnapshot:
    """Project the event log at ``now``.

    Args:
        events: Events in append order
        now: Evaluation instant; open intervals run until here
        resolver: Day boundaries for bucketing. Defaults to local midnight.

    Returns:
        Active sessions, per-task totals and per-day per-task totals
    """
    resolver = resolver or DayBoundaryResolver()
    snapshot = LedgerSnapshot()
    recency: list[str] = []

    for index in replay_order(events):
        event = events[index]
        recency.append(event.task_id)
        if event.is_start:
            # Last start wins when a task is started twice without a stop.
            snapshot.active_sessions[event.task_id] = ActiveSession(event.timestamp, event.note)
        else:
            active = snapshot.active_sessions.pop(event.task_id, None)
            if active is not None:
                _accumulate(snapshot, resolver, event.task_id, active.started_at, event.timestamp)

    for task_id, active in snapshot.active_sessions.items():
        _accumulate(snapshot, resolver, task_id, active.started_at, now)

    seen = set()
    for task_id in reversed(recency):
        if task_id not in seen:
            seen.add(task_id)
            snapshot.recent_tasks.append(task_id)
            if len(snapshot.recent_tasks) >= RECENT_TASKS_LIMIT:
                break

    return snapshot


def collect_sessions(events: Sequence[TimeEvent], now: datetime) -> list[Session]:
    """Reconstruct sessions with the log positions of their events.

    Open sessions end at ``now``. Sessions with no positive length are left out.
    """
    sessions = []
    for interval in pair_intervals(events):
        if interval.replaced:
            continue
        start_event = events[interval.start_index]
        if interval.stop_index is not None:
            stop = events[interval.stop_index].timestamp
        else:
            stop = now
        if stop <= start_event.timestamp:
            continue
        sessions.append(
            Session(
                task_id=interval.task_id,
                start=start_event.timestamp,
                stop=stop,
                note=start_event.note,
                start_index=interval.start_index,
                stop_index=interval.stop_index,
            )
        )
    sessions.sort(key=lambda s: (s.start, s.start_index))
    return sessions
