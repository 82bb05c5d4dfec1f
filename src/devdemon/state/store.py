"""JSON file persistence for the lifecycle state (current task, history, stats)."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from devdemon.config.constants import STATE_VERSION
from devdemon.config.paths import get_state_path
from devdemon.errors import (
    ExecutionFailure,
    PersistenceLoadFailure,
    PersistenceWriteFailure,
    SchemaMismatch,
)
from devdemon.state.models import (
    CurrentTaskRecord,
    HistoryEntry,
    HistoryStatus,
    LifecycleState,
    RoleRef,
    Stats,
)
from devdemon.tasks.models import Task, TaskKind

if TYPE_CHECKING:
    from devdemon.agent.executor import ExecutionOutcome

_logger = logging.getLogger("devdemon.state.store")


def _error_message(error: BaseException | str) -> str:
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    return str(error)


class LifecycleStore:
    """Durable record of the running task, finished tasks, and aggregate stats.

    The state is loaded once at construction and written back after every
    mutation. A file with any schema version other than the current one is
    discarded in favour of a fresh state; there is no migration.
    """

    def __init__(
        self,
        path: Path | None = None,
        repo_path: Path | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._path = path or get_state_path(repo_path)
        self._repo_path = repo_path or Path.cwd()
        self._logger = logger or _logger
        self._state = self._load()

    # -- Persistence -----------------------------------------------------------

    def _load(self) -> LifecycleState:
        if not self._path.exists():
            return LifecycleState()
        try:
            state = self._read()
        except SchemaMismatch as exc:
            self._logger.warning("%s, starting a new session", exc)
            return LifecycleState()
        except PersistenceLoadFailure as exc:
            self._logger.warning("%s, using defaults", exc)
            return LifecycleState()
        self._logger.debug(
            "Loaded state for session %s (%d history entries)",
            state.session_id,
            len(state.task_history),
        )
        return state

    def _read(self) -> LifecycleState:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as exc:
            raise PersistenceLoadFailure(f"Failed to load state from {self._path}: {exc}") from exc

        version = data.get("version") if isinstance(data, dict) else None
        if version != STATE_VERSION:
            raise SchemaMismatch(
                f"State file {self._path} has schema version {version!r} (expected {STATE_VERSION})"
            )
        try:
            return LifecycleState.model_validate(data)
        except ValidationError as exc:
            raise PersistenceLoadFailure(f"Invalid state in {self._path}: {exc}") from exc

    def save(self) -> None:
        """Persist the state atomically. Write failures are logged, never raised."""
        try:
            self._write()
        except PersistenceWriteFailure as exc:
            self._logger.error("%s", exc)

    def _write(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            data = self._state.model_dump(mode="json", by_alias=True)
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp.replace(self._path)
        except OSError as exc:
            raise PersistenceWriteFailure(f"Failed to save state to {self._path}: {exc}") from exc

    # -- Lifecycle -------------------------------------------------------------

    def set_current_task(self, task: Task) -> None:
        """Mark a task as running."""
        self._state.current_task = CurrentTaskRecord(
            id=task.id,
            kind=task.kind,
            payload=task.payload,
            started_at=datetime.now(UTC),
        )
        self.save()

    def record_completion(self, task: Task, outcome: ExecutionOutcome) -> HistoryEntry:
        """Record a finished task.

        An outcome with ``success=False`` is recorded as a failure, never as
        completed.
        """
        if not outcome.success:
            return self.record_failure(task, ExecutionFailure(outcome.error_message))

        return self._append(
            task,
            status=HistoryStatus.COMPLETED,
            result_text=outcome.result_text or "",
            duration_ms=outcome.duration_ms,
            cost_units=outcome.cost_usd,
            turn_count=outcome.num_turns,
        )

    def record_failure(self, task: Task, error: BaseException | str) -> HistoryEntry:
        """Record a task that raised or reported a failure."""
        return self._append(task, status=HistoryStatus.FAILED, result_text=_error_message(error))

    def record_interruption(
        self, task: Task, reason: str = "Task was interrupted before it finished"
    ) -> HistoryEntry:
        """Record a task that was cancelled from outside."""
        return self._append(task, status=HistoryStatus.INTERRUPTED, result_text=reason)

    def recover_interrupted(self) -> HistoryEntry | None:
        """Close out a task left running by a previous process.

        Returns the interrupted history entry, or None if nothing was stale.
        """
        stale = self._state.current_task
        if stale is None:
            return None
        self._logger.warning(
            "Task %s was still marked running from a previous session, recording as interrupted",
            stale.id,
        )
        task = Task(id=stale.id, kind=stale.kind, payload=stale.payload)
        return self.record_interruption(task, "Process exited while the task was running")

    def set_current_role(self, name: str, file: str = "") -> None:
        self._state.current_role = RoleRef(name=name, file=file)
        self.save()

    # -- Queries ---------------------------------------------------------------

    def get_recent_history(self, count: int) -> list[HistoryEntry]:
        """Return the last ``count`` entries, oldest first."""
        if count <= 0:
            return []
        return list(self._state.task_history[-count:])

    def get_stats(self) -> Stats:
        """Return a snapshot of the running totals."""
        return self._state.stats.model_copy()

    @property
    def current_task(self) -> CurrentTaskRecord | None:
        task = self._state.current_task
        return task.model_copy() if task is not None else None

    @property
    def current_role(self) -> RoleRef:
        return self._state.current_role.model_copy()

    @property
    def session_id(self) -> str:
        return self._state.session_id

    @property
    def started_at(self) -> datetime:
        return self._state.started_at

    @property
    def repo_path(self) -> Path:
        return self._repo_path

    @property
    def history_size(self) -> int:
        return len(self._state.task_history)

    # -- Internal helpers ------------------------------------------------------

    def _append(
        self,
        task: Task,
        *,
        status: HistoryStatus,
        result_text: str,
        duration_ms: int = 0,
        cost_units: float = 0.0,
        turn_count: int = 0,
    ) -> HistoryEntry:
        now = datetime.now(UTC)
        current = self._state.current_task
        started_at = current.started_at if current is not None and current.id == task.id else now

        entry = HistoryEntry(
            id=task.id,
            kind=task.kind,
            payload=task.payload,
            result_text=result_text,
            status=status,
            started_at=started_at,
            completed_at=now,
            duration_ms=duration_ms,
            cost_units=cost_units,
            turn_count=turn_count,
        )
        self._state.task_history.append(entry)
        self._state.current_task = None
        self._update_stats(entry)
        self.save()
        return entry

    def _update_stats(self, entry: HistoryEntry) -> None:
        stats = self._state.stats
        stats.total_cycles += 1
        stats.total_cost_usd += entry.cost_units
        stats.total_tasks += 1
        if entry.kind == TaskKind.USER:
            stats.user_tasks += 1
        else:
            stats.autonomous_tasks += 1
        if entry.status == HistoryStatus.FAILED:
            stats.failed_tasks += 1
        elif entry.status == HistoryStatus.INTERRUPTED:
            stats.interrupted_tasks += 1
