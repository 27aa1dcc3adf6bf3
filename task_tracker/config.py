"""Runtime configuration for task-tracker.

A single Config value is built at startup and handed to the storage layer
and the command dispatcher.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional, Tuple

DEFAULT_DB_PATH = "db/tasks.json"
DEFAULT_LOG_LEVEL = "WARNING"

COMMANDS: Tuple[str, ...] = (
    "add",
    "update",
    "delete",
    "list",
    "mark-todo",
    "mark-in-progress",
    "mark-done",
)


@dataclass(frozen=True)
class Config:
    """Settings for one CLI invocation.

    Attributes:
        db_path: Path to the JSON task store
        log_level: Name of the logging level (e.g. "INFO")
        commands: Commands the dispatcher accepts
    """

    db_path: Path = Path(DEFAULT_DB_PATH)
    log_level: str = DEFAULT_LOG_LEVEL
    commands: Tuple[str, ...] = COMMANDS

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Build a Config from TASK_DB_PATH and TASK_LOG_LEVEL.

        Args:
            environ: Mapping to read from. If None, uses os.environ

        Returns:
            Config with unset variables falling back to defaults
        """
        if environ is None:
            environ = os.environ
        return cls(
            db_path=Path(environ.get("TASK_DB_PATH") or DEFAULT_DB_PATH),
            log_level=(environ.get("TASK_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
        )

    def with_overrides(
        self, db_path: Optional[str] = None, verbose: bool = False
    ) -> "Config":
        """Return a copy with command-line overrides applied."""
        config = self
        if db_path:
            config = replace(config, db_path=Path(db_path))
        if verbose:
            config = replace(config, log_level="DEBUG")
        return config
