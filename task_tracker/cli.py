"""Command-line interface for task-tracker.

This module provides the `task-cli` command using argparse.
It supports the following commands:
- add: Create a new task
- update: Change a task's description
- delete: Delete a task
- list: List all tasks or filter by status
- mark-todo, mark-in-progress, mark-done: Change a task's status
"""

import argparse
import logging
import sys
from typing import Callable, Dict, List, Optional

from task_tracker.config import Config
from task_tracker.exceptions import (
    InvalidArgumentError,
    TaskNotFoundError,
    TaskTrackerError,
)
from task_tracker.models import Status, Task
from task_tracker.repository import TaskRepository
from task_tracker.storage import JsonStorage

PROG = "task-cli"
DISPLAY_TIME_FORMAT = "%d-%m-%Y %H:%M:%S"
LIST_USAGE = f"Usage: {PROG} list [todo|in-progress|done]"

MARK_COMMANDS: Dict[str, Status] = {
    "mark-todo": Status.TODO,
    "mark-in-progress": Status.IN_PROGRESS,
    "mark-done": Status.DONE,
}

logger = logging.getLogger(__name__)

Handler = Callable[[argparse.Namespace, TaskRepository], int]


def task_id(value: str) -> int:
    """argparse type for task IDs."""
    try:
        parsed = int(value)
    except ValueError:
        parsed = 0
    if parsed < 1:
        raise argparse.ArgumentTypeError(
            f"invalid task ID: {value!r} "
            f"(use `{PROG} list` to see all tasks and their IDs)"
        )
    return parsed


def format_task(task: Task) -> str:
    """Render a task as a multi-line block for display."""
    return (
        f"Task ID: {task.id}\n"
        f"Description: {task.description}\n"
        f"Status: {task.status.value}\n"
        f"Created At: {task.created_at.strftime(DISPLAY_TIME_FORMAT)}\n"
        f"Updated At: {task.updated_at.strftime(DISPLAY_TIME_FORMAT)}\n"
    )


def cmd_add(args: argparse.Namespace, repo: TaskRepository) -> int:
    """Handle the 'add' command."""
    task = repo.add_task(args.description)
    print(f"Task added successfully (ID: {task.id})")
    return 0


def cmd_update(args: argparse.Namespace, repo: TaskRepository) -> int:
    """Handle the 'update' command."""
    task = repo.update_task(args.id, args.description)
    print(f"Task updated successfully (ID: {task.id})")
    return 0


def cmd_delete(args: argparse.Namespace, repo: TaskRepository) -> int:
    """Handle the 'delete' command."""
    task = repo.delete_task(args.id)
    print(f"Task deleted successfully (ID: {task.id})")
    return 0


def cmd_mark(args: argparse.Namespace, repo: TaskRepository) -> int:
    """Handle the 'mark-todo', 'mark-in-progress' and 'mark-done' commands."""
    task = repo.set_status(args.id, args.status)
    print(f"Task marked as {task.status.label} (ID: {task.id})")
    return 0


def cmd_list(args: argparse.Namespace, repo: TaskRepository) -> int:
    """Handle the 'list' command.

    Returns:
        Exit code (0 for success, 1 for an unknown filter)
    """
    try:
        tasks = repo.list_tasks(args.filter)
    except InvalidArgumentError as e:
        print(e, file=sys.stderr)
        print(f"To list all tasks, use: `{PROG} list`", file=sys.stderr)
        print(LIST_USAGE, file=sys.stderr)
        return 1

    if not tasks:
        print("No tasks found.")
        return 0

    for task in tasks:
        print(format_task(task))

    return 0


def _add_id_argument(parser: argparse.ArgumentParser) -> None:
    """Add the positional task ID argument shared by several commands."""
    parser.add_argument("id", type=task_id, help="Task ID")


def create_parser(config: Optional[Config] = None) -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Args:
        config: Only commands in config.commands are registered. If None,
                all commands are.

    Returns:
        Configured ArgumentParser instance
    """
    commands = (config or Config()).commands

    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Track your tasks from the command line"
    )
    parser.add_argument("--db", metavar="PATH", help="Path to the task store")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    if "add" in commands:
        add_parser = subparsers.add_parser("add", help="Add a new task")
        add_parser.add_argument("description", help="Task description")
        add_parser.set_defaults(handler=cmd_add)

    if "update" in commands:
        update_parser = subparsers.add_parser("update", help="Update a task's description")
        _add_id_argument(update_parser)
        update_parser.add_argument("description", help="New task description")
        update_parser.set_defaults(handler=cmd_update)

    if "delete" in commands:
        delete_parser = subparsers.add_parser("delete", help="Delete a task")
        _add_id_argument(delete_parser)
        delete_parser.set_defaults(handler=cmd_delete)

    if "list" in commands:
        list_parser = subparsers.add_parser("list", help="List tasks")
        list_parser.add_argument(
            "filter",
            nargs="?",
            default="all",
            help="Filter tasks by status: all, todo, in-progress or done (default: all)"
        )
        list_parser.set_defaults(handler=cmd_list)

    for name, status in MARK_COMMANDS.items():
        if name not in commands:
            continue
        mark_parser = subparsers.add_parser(name, help=f"Mark a task as {status.label}")
        _add_id_argument(mark_parser)
        mark_parser.set_defaults(handler=cmd_mark, status=status)

    return parser


def configure_logging(level: str) -> None:
    """Send log records at or above the named level to stderr."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Optional[List[str]] = None, config: Optional[Config] = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:]
        config: Base configuration. If None, read from the environment

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    if config is None:
        config = Config.from_env()

    parser = create_parser(config)
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    config = config.with_overrides(db_path=args.db, verbose=args.verbose)
    configure_logging(config.log_level)
    logger.debug("Using task store %s", config.db_path)

    repo = TaskRepository(JsonStorage(config.db_path))
    handler: Handler = args.handler

    try:
        return handler(args, repo)
    except TaskNotFoundError as e:
        print(e)
        return 0
    except TaskTrackerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
