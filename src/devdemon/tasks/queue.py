"""JSON file persistence for the pending task queue."""

from __future__ import annotations

import bisect
import json
import logging
from pathlib import Path

from pydantic import ValidationError

from devdemon.config.constants import DEFAULT_MAX_QUEUE_SIZE
from devdemon.config.paths import get_queue_path
from devdemon.errors import CapacityExceededError, PersistenceWriteFailure
from devdemon.tasks.models import Task, TaskKind

_logger = logging.getLogger("devdemon.tasks.queue")


def _priority(task: Task) -> int:
    return task.priority_class


class TaskQueue:
    """Priority-ordered pending tasks, persisted to a JSON array.

    Items are kept sorted by ``(priority_class, insertion order)``. Uses atomic
    writes (write to .tmp, then replace) to prevent corruption. Write failures
    are logged and the in-memory queue stays authoritative.
    """

    def __init__(
        self,
        path: Path | None = None,
        max_size: int = DEFAULT_MAX_QUEUE_SIZE,
        logger: logging.Logger | None = None,
    ) -> None:
        self._path = path or get_queue_path()
        self._max_size = max_size
        self._logger = logger or _logger
        self._items: list[Task] = []
        self.load()

    # -- Persistence -----------------------------------------------------------

    def load(self) -> None:
        """Load the queue from disk. Missing or corrupt files yield an empty queue."""
        self._items = []
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as exc:
            self._logger.warning("Failed to load task queue from %s: %s", self._path, exc)
            return
        if not isinstance(data, list):
            self._logger.warning(
                "Ignoring task queue at %s: expected a JSON array, got %s",
                self._path,
                type(data).__name__,
            )
            return

        tasks: list[Task] = []
        for raw in data:
            try:
                tasks.append(Task.model_validate(raw))
            except ValidationError as exc:
                self._logger.warning("Skipping invalid queued task: %s", exc)
        # File order is insertion order; the sort is stable so FIFO survives.
        tasks.sort(key=_priority)
        self._items = tasks
        self._logger.debug("Loaded %d queued tasks from %s", len(tasks), self._path)

    def save(self) -> None:
        """Persist the queue to disk atomically. Never raises."""
        try:
            self._write()
        except PersistenceWriteFailure as exc:
            self._logger.error("%s", exc)

    def _write(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            data = [task.model_dump(mode="json", by_alias=True) for task in self._items]
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp.replace(self._path)
        except OSError as exc:
            raise PersistenceWriteFailure(
                f"Failed to save task queue to {self._path}: {exc}"
            ) from exc

    # -- Queue operations ------------------------------------------------------

    def enqueue_user(self, instruction: str) -> Task:
        """Queue a user instruction behind any existing user tasks and persist.

        Raises CapacityExceededError when the queue is full.
        """
        if len(self._items) >= self._max_size:
            raise CapacityExceededError(self._max_size)
        task = Task.user(instruction)
        self._insert(task)
        self.save()
        self._logger.info("Enqueued user task %s (%d pending)", task.id, len(self._items))
        return task

    def make_autonomous(self, payload: str) -> Task:
        """Build an autonomous task for immediate use. It is never queued."""
        return Task.autonomous(payload)

    def dequeue(self) -> Task | None:
        """Remove and return the next task, or None when the queue is empty."""
        if not self._items:
            return None
        task = self._items.pop(0)
        self.save()
        return task

    def peek(self) -> Task | None:
        """Return the task dequeue() would return next, without removing it."""
        return self._items[0] if self._items else None

    def all(self) -> list[Task]:
        """Return a copy of the pending tasks in dequeue order."""
        return list(self._items)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def user_task_count(self) -> int:
        return sum(1 for task in self._items if task.kind == TaskKind.USER)

    def __len__(self) -> int:
        return len(self._items)

    # -- Internal helpers ------------------------------------------------------

    def _insert(self, task: Task) -> None:
        # Rightmost slot among equal priorities keeps FIFO order.
        index = bisect.bisect_right(self._items, task.priority_class, key=_priority)
        self._items.insert(index, task)
