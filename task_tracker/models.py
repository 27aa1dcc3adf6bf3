"""Core models for task-tracker.

This module defines the data structures persisted by the tracker:
- Task: A dataclass representing a single tracked task
- Status: Enum for the task lifecycle state
- STATUS_FILTERS: Mapping of `list` filter names to statuses
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional


class Status(Enum):
    """Task lifecycle state.

    Values are the tokens written to the JSON store.
    """

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"

    @property
    def label(self) -> str:
        """Human-readable form, e.g. ``IN PROGRESS``."""
        return self.value.replace("_", " ")


STATUS_FILTERS: Dict[str, Status] = {
    "todo": Status.TODO,
    "in-progress": Status.IN_PROGRESS,
    "done": Status.DONE,
}


@dataclass
class Task:
    """Task model representing a single task item.

    Attributes:
        id: Unique positive identifier, assigned by the repository
        description: Free-form task text
        status: Current lifecycle state (TODO when created)
        created_at: Timestamp when the task was created
        updated_at: Timestamp of the last change (defaults to created_at)
    """

    id: int
    description: str
    status: Status = Status.TODO
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.updated_at is None:
            self.updated_at = self.created_at

    def touch(self, now: datetime) -> None:
        """Refresh updated_at, never moving it backwards."""
        self.updated_at = max(now, self.updated_at, self.created_at)
