"""Device command dispatch and task tracking."""

from hubwatch.tasks.commands import CONFLICT_ERROR, CommandService
from hubwatch.tasks.tracker import TIMEOUT_ERROR, TaskTracker

__all__ = [
    "CONFLICT_ERROR",
    "TIMEOUT_ERROR",
    "CommandService",
    "TaskTracker",
]
