"""Error types raised by ledger operations.

All recoverable errors derive from ``LedgerError`` (itself a ``ValueError``),
so callers can catch one type and report the message. A failed operation never
leaves a partial write in the event log.
"""


class LedgerError(ValueError):
    """Base class for ledger errors."""


class NotFoundError(LedgerError):
    """A referenced entity or event does not exist."""


class ProjectNotFoundError(NotFoundError):
    """Project id is not in the registry."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"project not found: {project_id}")


class CategoryNotFoundError(NotFoundError):
    """Category id is not in the registry."""

    def __init__(self, category_id: str):
        self.category_id = category_id
        super().__init__(f"category not found: {category_id}")


class TaskNotFoundError(NotFoundError):
    """Task id is not in the registry."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"task not found: {task_id}")


class EventNotFoundError(NotFoundError):
    """Event index is out of range or names the wrong kind of event."""


class InvalidStateError(LedgerError):
    """Operation is not allowed in the task's current state."""


class TaskArchivedError(InvalidStateError):
    """Archived tasks cannot be started."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"task is archived: {task_id}")


class TaskAlreadyRunningError(InvalidStateError):
    """Task already has an open interval."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"task already running: {task_id}")


class TaskNotRunningError(InvalidStateError):
    """Task has no open interval to stop."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"task is not running: {task_id}")


class InvalidRangeError(LedgerError):
    """Stop is not after start."""


class OrderingViolationError(InvalidRangeError):
    """A retimed event would break the task's start/stop alternation."""


class ConfigurationFatalError(Exception):
    """A day boundary cannot be resolved to any UTC instant.

    Not a ``LedgerError``: it signals a broken timezone setup rather than a
    bad request, and the operation that hit it is aborted.
    """
