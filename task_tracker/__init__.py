"""task-tracker: a single-user command-line task tracker backed by a JSON file."""

__version__ = "1.0.0"
