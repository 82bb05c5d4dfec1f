"""Task queue subsystem — persistent, priority-ordered pending work."""

from devdemon.tasks.models import Task, TaskKind
from devdemon.tasks.queue import TaskQueue

__all__ = ["Task", "TaskKind", "TaskQueue"]
