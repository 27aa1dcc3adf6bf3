"""Exception hierarchy for task-tracker."""


class TaskTrackerError(Exception):
    """Base class for all task-tracker errors."""


class TaskNotFoundError(TaskTrackerError, LookupError):
    """Raised when no task has the requested ID."""

    def __init__(self, task_id: int):
        super().__init__(f"Task ID {task_id} not found.")
        self.task_id = task_id


class InvalidArgumentError(TaskTrackerError, ValueError):
    """Raised for user input that cannot be acted on (e.g. unknown filter)."""


class StorageWriteError(TaskTrackerError):
    """Raised when the task store cannot be written."""


class StorageCorruptedError(TaskTrackerError):
    """Raised when the task store exists but does not hold a valid task list."""
