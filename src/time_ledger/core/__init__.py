"""Core ledger: entities, event log, day boundaries and snapshots."""

from time_ledger.core.days import DayBoundaryResolver
from time_ledger.core.ledger import Ledger
from time_ledger.core.models import Category, LedgerSnapshot, Project, Task, TimeEvent
from time_ledger.core.snapshot import build_snapshot

__all__ = [
    "Category",
    "DayBoundaryResolver",
    "Ledger",
    "LedgerSnapshot",
    "Project",
    "Task",
    "TimeEvent",
    "build_snapshot",
]
