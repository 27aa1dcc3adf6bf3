"""Entry point for task-tracker when run as a module.

This allows the package to be run with: python -m task_tracker
"""

import sys

from task_tracker.cli import main

if __name__ == "__main__":
    sys.exit(main())
