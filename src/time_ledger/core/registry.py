"""Registry of projects, categories and tasks."""

import logging
import secrets
import string
from typing import Optional

from time_ledger.core.errors import (
    CategoryNotFoundError,
    ProjectNotFoundError,
    TaskNotFoundError,
)
from time_ledger.core.models import Category, LedgerHeader, Project, Task

logger = logging.getLogger(__name__)

ID_LENGTH = 8
ID_ALPHABET = string.ascii_letters + string.digits

# Sentinel for "argument not given" where None is a meaningful value.
_UNSET = object()


def generate_id(length: int = ID_LENGTH) -> str:
    """Generate a short random alphanumeric identifier."""
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))


def _required_text(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{field_name} is required")
    return value


class Registry:
    """Holds the ledger's entities.

    Lookups are linear scans by id, so listings keep creation order.
    """

    def __init__(self, header: Optional[LedgerHeader] = None):
        """Initialize registry.

        Args:
            header: Header whose entity lists are managed. Creates empty if None.
        """
        self.header = header or LedgerHeader()

    @property
    def projects(self) -> list[Project]:
        return self.header.projects

    @property
    def categories(self) -> list[Category]:
        return self.header.categories

    @property
    def tasks(self) -> list[Task]:
        return self.header.tasks

    def _new_id(self) -> str:
        taken = {p.id for p in self.projects}
        taken.update(c.id for c in self.categories)
        taken.update(t.id for t in self.tasks)
        new_id = generate_id()
        while new_id in taken:
            new_id = generate_id()
        return new_id

    # Lookups

    def project(self, project_id: str) -> Optional[Project]:
        for project in self.projects:
            if project.id == project_id:
                return project
        return None

    def category(self, category_id: str) -> Optional[Category]:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None

    def task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def require_project(self, project_id: str) -> Project:
        project = self.project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def require_category(self, category_id: str) -> Category:
        category = self.category(category_id)
        if category is None:
            raise CategoryNotFoundError(category_id)
        return category

    def require_task(self, task_id: str) -> Task:
        task = self.task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def tasks_for_project(self, project_id: str, include_archived: bool = True) -> list[Task]:
        """Tasks owned by a project, in creation order."""
        return [
            t
            for t in self.tasks
            if t.project_id == project_id and (include_archived or not t.archived)
        ]

    def active_projects(self) -> list[Project]:
        return [p for p in self.projects if not p.archived]

    def active_categories(self) -> list[Category]:
        return [c for c in self.categories if not c.archived]

    def active_tasks(self) -> list[Task]:
        return [t for t in self.tasks if not t.archived]

    # Creation

    def add_project(self, name: str, color: Optional[str] = None) -> str:
        """Create a project.

        Args:
            name: Display name
            color: Color tag

        Returns:
            New project id
        """
        project = Project(id=self._new_id(), name=name, color=color)
        self.projects.append(project)
        logger.debug(f"Added project {project.id}: {name}")
        return project.id

    def add_category(self, name: str, description: Optional[str] = None) -> str:
        """Create a category.

        Args:
            name: Display name
            description: Longer description

        Returns:
            New category id
        """
        category = Category(id=self._new_id(), name=name, description=description)
        self.categories.append(category)
        logger.debug(f"Added category {category.id}: {name}")
        return category.id

    def add_task(
        self,
        project_id: str,
        description: str,
        category_id: Optional[str] = None,
    ) -> str:
        """Create a task under a project.

        Args:
            project_id: Owning project; must exist
            description: Task description
            category_id: Category; must exist if given

        Returns:
            New task id

        Raises:
            ProjectNotFoundError: If the project does not exist
            CategoryNotFoundError: If the category does not exist
        """
        self.require_project(project_id)
        if category_id is not None:
            self.require_category(category_id)

        task = Task(
            id=self._new_id(),
            project_id=project_id,
            category_id=category_id,
            description=description,
        )
        self.tasks.append(task)
        logger.debug(f"Added task {task.id} to project {project_id}")
        return task.id

    # Edits

    def update_project(
        self,
        project_id: str,
        name: Optional[str] = None,
        color: object = _UNSET,
        archived: Optional[bool] = None,
    ) -> Project:
        """Edit a project. Pass ``color=None`` to clear the color."""
        project = self.require_project(project_id)
        if name is not None:
            project.name = _required_text(name, "project name")
        if color is not _UNSET:
            project.color = color  # type: ignore[assignment]
        if archived is not None:
            project.archived = archived
        return project

    def update_category(
        self,
        category_id: str,
        name: Optional[str] = None,
        description: object = _UNSET,
        archived: Optional[bool] = None,
    ) -> Category:
        """Edit a category. Pass ``description=None`` to clear it."""
        category = self.require_category(category_id)
        if name is not None:
            category.name = _required_text(name, "category name")
        if description is not _UNSET:
            category.description = description  # type: ignore[assignment]
        if archived is not None:
            category.archived = archived
        return category

    def update_task(
        self,
        task_id: str,
        description: Optional[str] = None,
        project_id: Optional[str] = None,
        category_id: object = _UNSET,
        archived: Optional[bool] = None,
    ) -> Task:
        """Edit a task.

        References are checked before anything changes, so a failed edit
        leaves the task untouched. Pass ``category_id=None`` to uncategorize.

        Raises:
            TaskNotFoundError: If the task does not exist
            ProjectNotFoundError: If the new project does not exist
            CategoryNotFoundError: If the new category does not exist
            ValueError: If the new description is blank
        """
        task = self.require_task(task_id)
        if project_id is not None:
            self.require_project(project_id)
        if category_id is not _UNSET and category_id is not None:
            self.require_category(category_id)  # type: ignore[arg-type]
        if description is not None:
            _required_text(description, "task description")

        if description is not None:
            task.description = description
        if project_id is not None:
            task.project_id = project_id
        if category_id is not _UNSET:
            task.category_id = category_id  # type: ignore[assignment]
        if archived is not None:
            task.archived = archived
        return task
