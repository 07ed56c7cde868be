"""Core data models for the time ledger."""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

SCHEMA_VERSION = 1
RECENT_TASKS_LIMIT = 20


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to UTC.

    Raises:
        ValueError: If the datetime is naive
    """
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"timestamp must be timezone-aware: {value.isoformat()}")
    return value.astimezone(timezone.utc)


def _optional(value: Any) -> Optional[str]:
    return value if value else None


@dataclass
class Project:
    """Project grouping tasks.

    Attributes:
        id: Generated identifier
        name: Display name
        color: Display color tag (optional)
        archived: Whether the project is archived
    """

    id: str
    name: str
    color: Optional[str] = None
    archived: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "archived": self.archived,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Project":
        """Create Project from dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            color=_optional(data.get("color")),
            archived=bool(data.get("archived", False)),
        )


@dataclass
class Category:
    """Category for organizing tasks across projects.

    Attributes:
        id: Generated identifier
        name: Display name
        description: Longer description (optional)
        archived: Whether the category is archived
    """

    id: str
    name: str
    description: Optional[str] = None
    archived: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "archived": self.archived,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Category":
        """Create Category from dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            description=_optional(data.get("description")),
            archived=bool(data.get("archived", False)),
        )


@dataclass
class Task:
    """A unit of work that time is tracked against.

    Attributes:
        id: Generated identifier
        project_id: Owning project
        description: Free text; the first line is the display title
        category_id: Category (optional)
        archived: Whether the task is archived
    """

    id: str
    project_id: str
    description: str
    category_id: Optional[str] = None
    archived: bool = False

    @property
    def short_description(self) -> str:
        """First line of the description."""
        lines = self.description.splitlines()
        return lines[0] if lines else "(no description)"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "project_id": self.project_id,
            "category_id": self.category_id,
            "description": self.description,
            "archived": self.archived,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Create Task from dictionary."""
        return cls(
            id=data["id"],
            project_id=data["project_id"],
            category_id=_optional(data.get("category_id")),
            description=data.get("description") or "",
            archived=bool(data.get("archived", False)),
        )


class EventKind(str, Enum):
    """Kind of a time event."""

    START = "start"
    STOP = "stop"


@dataclass(frozen=True)
class TimeEvent:
    """A timestamped start or stop of a task.

    Events are immutable; corrections replace an event in the log.
    """

    timestamp: datetime
    kind: EventKind
    task_id: str
    note: Optional[str] = None

    @classmethod
    def start(cls, task_id: str, timestamp: datetime, note: Optional[str] = None) -> "TimeEvent":
        return cls(timestamp=ensure_utc(timestamp), kind=EventKind.START, task_id=task_id, note=note)

    @classmethod
    def stop(cls, task_id: str, timestamp: datetime, note: Optional[str] = None) -> "TimeEvent":
        return cls(timestamp=ensure_utc(timestamp), kind=EventKind.STOP, task_id=task_id, note=note)

    @property
    def is_start(self) -> bool:
        return self.kind is EventKind.START

    @property
    def is_stop(self) -> bool:
        return self.kind is EventKind.STOP

    def with_timestamp(self, timestamp: datetime) -> "TimeEvent":
        """Copy of this event moved to another instant."""
        return TimeEvent(
            timestamp=ensure_utc(timestamp),
            kind=self.kind,
            task_id=self.task_id,
            note=self.note,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "type": self.kind.value,
            "task_id": self.task_id,
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimeEvent":
        """Create TimeEvent from dictionary."""
        return cls(
            timestamp=ensure_utc(datetime.fromisoformat(data["timestamp"])),
            kind=EventKind(data["type"]),
            task_id=data["task_id"],
            note=data.get("note"),
        )


@dataclass
class LedgerHeader:
    """Everything in a ledger except its events."""

    schema_version: int = SCHEMA_VERSION
    created_at: datetime = field(default_factory=utc_now)
    projects: list[Project] = field(default_factory=list)
    categories: list[Category] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "schema_version": self.schema_version,
            "created_at": self.created_at.isoformat(),
            "projects": [p.to_dict() for p in self.projects],
            "categories": [c.to_dict() for c in self.categories],
            "tasks": [t.to_dict() for t in self.tasks],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LedgerHeader":
        """Create LedgerHeader from dictionary."""
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        return cls(
            schema_version=int(data.get("schema_version", SCHEMA_VERSION)),
            created_at=ensure_utc(created_at) if created_at else utc_now(),
            projects=[Project.from_dict(p) for p in data.get("projects") or []],
            categories=[Category.from_dict(c) for c in data.get("categories") or []],
            tasks=[Task.from_dict(t) for t in data.get("tasks") or []],
        )


@dataclass(frozen=True)
class ActiveSession:
    """An open interval, as seen by a snapshot."""

    started_at: datetime
    note: Optional[str] = None


@dataclass(frozen=True)
class Session:
    """A reconstructed interval for one task.

    Attributes:
        task_id: Task the interval belongs to
        start: Start instant
        stop: Stop instant, or the evaluation instant while still open
        note: Note from the start event
        start_index: Log position of the start event
        stop_index: Log position of the stop event (None while open)
    """

    task_id: str
    start: datetime
    stop: datetime
    note: Optional[str] = None
    start_index: Optional[int] = None
    stop_index: Optional[int] = None

    @property
    def duration(self) -> timedelta:
        return self.stop - self.start

    @property
    def is_running(self) -> bool:
        return self.stop_index is None


@dataclass
class LedgerSnapshot:
    """Point-in-time projection of the event log. Never persisted.

    Attributes:
        active_sessions: Open interval per task
        daily_task_totals: Ledger day -> task id -> tracked time
        task_totals: Task id -> tracked time across all days
        recent_tasks: Most recently touched task ids, newest first
    """

    active_sessions: dict[str, ActiveSession] = field(default_factory=dict)
    daily_task_totals: dict[date, dict[str, timedelta]] = field(default_factory=dict)
    task_totals: dict[str, timedelta] = field(default_factory=dict)
    recent_tasks: list[str] = field(default_factory=list)

    def is_active(self, task_id: str) -> bool:
        return task_id in self.active_sessions

    def total_tracked(self) -> timedelta:
        """Sum of all task totals."""
        return sum(self.task_totals.values(), timedelta())

    def total_for_day(self, day: date, task_id: str) -> timedelta:
        return self.daily_task_totals.get(day, {}).get(task_id, timedelta())

    def totals_for_day(self, day: date) -> list[tuple[str, timedelta]]:
        """Task totals for a day, longest first, ties by task id."""
        totals = list(self.daily_task_totals.get(day, {}).items())
        totals.sort(key=lambda item: (-item[1], item[0]))
        return totals

    def day_total(self, day: date) -> timedelta:
        return sum(self.daily_task_totals.get(day, {}).values(), timedelta())
