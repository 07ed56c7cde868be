"""Append-only event log with positional corrections."""

from collections.abc import Iterable, Iterator
from typing import Optional

from time_ledger.core.errors import EventNotFoundError
from time_ledger.core.models import EventKind, TimeEvent


class EventLog:
    """Ordered sequence of time events.

    Positions are append order. Replay order is (timestamp, position), see
    ``sorted_indices``.
    """

    def __init__(self, events: Optional[Iterable[TimeEvent]] = None):
        self._events: list[TimeEvent] = list(events or [])

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[TimeEvent]:
        return iter(self._events)

    def __getitem__(self, index: int) -> TimeEvent:
        return self._events[index]

    def append(self, event: TimeEvent) -> int:
        """Append an event and return its position."""
        self._events.append(event)
        return len(self._events) - 1

    def extend(self, events: Iterable[TimeEvent]) -> None:
        self._events.extend(events)

    def get(self, index: int, kind: Optional[EventKind] = None) -> TimeEvent:
        """Event at a position, optionally checking its kind.

        Raises:
            EventNotFoundError: If the position is out of range or the kind differs
        """
        if index < 0 or index >= len(self._events):
            raise EventNotFoundError(f"no event at index {index}")
        event = self._events[index]
        if kind is not None and event.kind is not kind:
            raise EventNotFoundError(f"event {index} is not a {kind.value} event")
        return event

    def replace(self, index: int, event: TimeEvent) -> TimeEvent:
        """Swap the event at a position, returning the old one."""
        old = self.get(index)
        self._events[index] = event
        return old

    def remove(self, indices: Iterable[int]) -> list[TimeEvent]:
        """Remove several positions at once.

        Every index is checked before anything is removed; removal runs from
        the highest index down so earlier positions stay valid.

        Returns:
            Removed events in ascending position order
        """
        unique = sorted(set(indices), reverse=True)
        for index in unique:
            self.get(index)
        removed = [self._events.pop(index) for index in unique]
        removed.reverse()
        return removed

    def sorted_indices(self) -> list[int]:
        """Positions in replay order: timestamp, then append position."""
        return sorted(range(len(self._events)), key=lambda i: (self._events[i].timestamp, i))

    def task_history(self, task_id: str) -> list[tuple[int, TimeEvent]]:
        """A task's own events in replay order, with their positions."""
        return [(i, self._events[i]) for i in self.sorted_indices() if self._events[i].task_id == task_id]

    def to_list(self) -> list[TimeEvent]:
        return list(self._events)
