"""Storage layer for task-tracker.

This module provides an abstract storage interface and the JSON file
implementation. The store is always read and written whole: load returns
the full ordered task list and save replaces the file atomically. A
fcntl-based lock on a sidecar file serializes load-modify-save cycles
across processes.
"""

import fcntl
import json
import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from task_tracker.exceptions import StorageCorruptedError, StorageWriteError
from task_tracker.models import Status, Task

logger = logging.getLogger(__name__)

_FRACTION_RE = re.compile(r"^(.*T\d{2}:\d{2}:\d{2})\.(\d+)$")


class Storage(ABC):
    """Abstract base class for task storage implementations."""

    @abstractmethod
    def save(self, tasks: List[Task]) -> None:
        """Save tasks to storage.

        Args:
            tasks: Full ordered list of tasks
        """
        pass

    @abstractmethod
    def load(self) -> List[Task]:
        """Load tasks from storage.

        Returns:
            Full ordered list of tasks
        """
        pass

    @contextmanager
    def lock(self) -> Iterator[None]:
        """Hold an exclusive lock for a load-modify-save cycle.

        The base implementation does not lock.
        """
        yield


def task_to_dict(task: Task) -> Dict[str, Any]:
    """Convert a Task to its JSON object form."""
    return {
        "id": task.id,
        "description": task.description,
        "status": task.status.value,
        "createdAt": task.created_at.isoformat(),
        "updatedAt": task.updated_at.isoformat(),
    }


def parse_timestamp(value: Any) -> datetime:
    """Parse a stored ISO-8601 timestamp.

    Fractions of a second are padded or cut to microseconds, so nanosecond
    timestamps such as ``2024-01-01T12:00:00.123456789`` load as well.

    Raises:
        TypeError, ValueError: If the value is not a timestamp
    """
    if not isinstance(value, str):
        raise TypeError(f"Expected a timestamp string, got {type(value).__name__}")
    match = _FRACTION_RE.match(value)
    if match:
        value = f"{match.group(1)}.{match.group(2)[:6].ljust(6, '0')}"
    return datetime.fromisoformat(value)


def task_from_dict(data: Any) -> Task:
    """Build a Task from its JSON object form.

    Raises:
        StorageCorruptedError: If the object does not describe a valid task
    """
    if not isinstance(data, dict):
        raise StorageCorruptedError(f"Expected a task object, got {type(data).__name__}")
    try:
        task_id = data["id"]
        description = data["description"]
        if not isinstance(task_id, int) or isinstance(task_id, bool) or task_id < 1:
            raise StorageCorruptedError(f"Invalid task id: {task_id!r}")
        if not isinstance(description, str):
            raise StorageCorruptedError(f"Invalid description for task {task_id}")
        task = Task(
            id=task_id,
            description=description,
            status=Status(data["status"]),
            created_at=parse_timestamp(data["createdAt"]),
            updated_at=parse_timestamp(data["updatedAt"]),
        )
    except KeyError as e:
        raise StorageCorruptedError(f"Task object is missing field {e}") from e
    except (TypeError, ValueError) as e:
        raise StorageCorruptedError(f"Invalid task object: {e}") from e

    if task.updated_at < task.created_at:
        raise StorageCorruptedError(f"Task {task_id} was updated before it was created")
    return task


class JsonStorage(Storage):
    """JSON file-based storage with atomic writes and file locking.

    The file holds a JSON array of task objects in insertion order.

    Attributes:
        file_path: Path to the JSON storage file
    """

    def __init__(self, file_path: Union[str, Path]):
        """Initialize JsonStorage with a file path.

        Args:
            file_path: Path to the JSON file for storage
        """
        self.file_path = Path(file_path)

    @property
    def lock_path(self) -> Path:
        """Path of the sidecar file used by lock(), e.g. ``tasks.json.lock``."""
        return self.file_path.with_name(self.file_path.name + ".lock")

    def save(self, tasks: List[Task]) -> None:
        """Replace the JSON file with the given tasks.

        The data is written to a temporary file in the same directory and
        renamed over the target, so an interrupted save leaves the previous
        file intact.

        Args:
            tasks: Full ordered list of tasks

        Raises:
            StorageWriteError: If the file cannot be written
        """
        payload = [task_to_dict(task) for task in tasks]
        tmp_path: Optional[str] = None
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.file_path.parent),
                prefix=self.file_path.name + ".",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.file_path)
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageWriteError(f"Could not write {self.file_path}: {e}") from e

        logger.debug("Saved %d task(s) to %s", len(tasks), self.file_path)

    def load(self) -> List[Task]:
        """Load tasks from the JSON file.

        Returns:
            Ordered list of tasks. Returns an empty list if the file doesn't
            exist, can't be read, or is empty.

        Raises:
            StorageCorruptedError: If the file exists but isn't a valid task list
        """
        if not self.file_path.exists():
            logger.debug("No task store at %s", self.file_path)
            return []

        try:
            content = self.file_path.read_text(encoding="utf-8").strip()
        except UnicodeDecodeError as e:
            raise StorageCorruptedError(f"{self.file_path} is not valid UTF-8: {e}") from e
        except OSError as e:
            logger.warning("Could not read %s, treating as empty: %s", self.file_path, e)
            return []

        if not content:
            return []

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise StorageCorruptedError(f"{self.file_path} is not valid JSON: {e}") from e

        if not isinstance(data, list):
            raise StorageCorruptedError(f"{self.file_path} does not contain a task list")

        tasks = [task_from_dict(item) for item in data]
        seen = set()
        for task in tasks:
            if task.id in seen:
                raise StorageCorruptedError(f"{self.file_path} has duplicate task id {task.id}")
            seen.add(task.id)

        logger.debug("Loaded %d task(s) from %s", len(tasks), self.file_path)
        return tasks

    @contextmanager
    def lock(self) -> Iterator[None]:
        """Hold an exclusive flock on the sidecar lock file.

        Raises:
            StorageWriteError: If the lock file cannot be created
        """
        try:
            self.lock_path.parent.mkdir(parents=True, exist_ok=True)
            f = open(self.lock_path, "a")
        except OSError as e:
            raise StorageWriteError(f"Could not open lock file {self.lock_path}: {e}") from e

        with f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
