"""Task repository for managing task operations.

This module provides the TaskRepository class, which implements every task
operation on top of a Storage backend. Each operation loads the full task
list once and, if it changes anything, saves it once.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from task_tracker.exceptions import InvalidArgumentError, TaskNotFoundError
from task_tracker.models import STATUS_FILTERS, Status, Task
from task_tracker.storage import Storage

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def next_task_id(tasks: List[Task]) -> int:
    """Return the ID for a new task: one past the highest existing ID."""
    return max((task.id for task in tasks), default=0) + 1


def resolve_filter(status_filter: Optional[str]) -> Optional[Status]:
    """Translate a `list` filter name into a Status.

    Args:
        status_filter: One of "all", "todo", "in-progress", "done"
                       (case-insensitive). None or "" mean "all".

    Returns:
        The matching Status, or None for "all"

    Raises:
        InvalidArgumentError: If the filter name is not recognized
    """
    if not status_filter:
        return None
    name = status_filter.strip().lower()
    if name == "all":
        return None
    try:
        return STATUS_FILTERS[name]
    except KeyError:
        raise InvalidArgumentError(f"Invalid filter: {status_filter}") from None


class TaskRepository:
    """Repository for managing tasks with a storage backend.

    Mutating operations hold the storage lock across load, change and save.
    An operation on an unknown ID raises TaskNotFoundError before anything
    is written.

    Attributes:
        storage: Storage backend for persisting tasks
        clock: Callable returning the current time
    """

    def __init__(self, storage: Storage, clock: Clock = datetime.now):
        self.storage = storage
        self.clock = clock

    def add_task(self, description: str) -> Task:
        """Create a new task.

        Args:
            description: Task text

        Returns:
            The created Task with its assigned ID
        """
        with self.storage.lock():
            tasks = self.storage.load()
            now = self.clock()
            task = Task(
                id=next_task_id(tasks),
                description=description,
                status=Status.TODO,
                created_at=now,
                updated_at=now,
            )
            tasks.append(task)
            self.storage.save(tasks)

        logger.info("Added task %d", task.id)
        return task

    def update_task(self, task_id: int, description: str) -> Task:
        """Replace the description of a task.

        Raises:
            TaskNotFoundError: If no task has this ID
        """
        with self.storage.lock():
            tasks = self.storage.load()
            task = self._find(tasks, task_id)
            task.description = description
            task.touch(self.clock())
            self.storage.save(tasks)

        logger.info("Updated task %d", task_id)
        return task

    def delete_task(self, task_id: int) -> Task:
        """Delete a task by ID.

        Returns:
            The removed Task

        Raises:
            TaskNotFoundError: If no task has this ID
        """
        with self.storage.lock():
            tasks = self.storage.load()
            task = self._find(tasks, task_id)
            tasks.remove(task)
            self.storage.save(tasks)

        logger.info("Deleted task %d", task_id)
        return task

    def set_status(self, task_id: int, status: Status) -> Task:
        """Move a task to the given status.

        Any status can be reached from any other.

        Raises:
            TaskNotFoundError: If no task has this ID
        """
        with self.storage.lock():
            tasks = self.storage.load()
            task = self._find(tasks, task_id)
            task.status = status
            task.touch(self.clock())
            self.storage.save(tasks)

        logger.info("Task %d is now %s", task_id, status.value)
        return task

    def list_tasks(self, status_filter: Optional[str] = None) -> List[Task]:
        """Get tasks, optionally filtered by status.

        Args:
            status_filter: "all", "todo", "in-progress" or "done".
                           None or "" mean "all".

        Returns:
            Matching tasks in stored order

        Raises:
            InvalidArgumentError: If the filter name is not recognized
        """
        status = resolve_filter(status_filter)
        tasks = self.storage.load()
        if status is None:
            return tasks
        return [task for task in tasks if task.status == status]

    def get_task(self, task_id: int) -> Optional[Task]:
        """Get a specific task by ID, or None if it doesn't exist."""
        for task in self.storage.load():
            if task.id == task_id:
                return task
        return None

    @staticmethod
    def _find(tasks: List[Task], task_id: int) -> Task:
        for task in tasks:
            if task.id == task_id:
                return task
        raise TaskNotFoundError(task_id)
