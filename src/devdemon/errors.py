"""Exception types shared across the daemon components."""

from __future__ import annotations


class DevDemonError(Exception):
    """Base class for all devdemon errors."""


class CapacityExceededError(DevDemonError):
    """The task queue already holds its configured maximum number of items."""

    def __init__(self, max_size: int) -> None:
        super().__init__(f"Task queue is full ({max_size} pending tasks)")
        self.max_size = max_size


class PersistenceWriteFailure(DevDemonError):
    """A durable write failed; the in-memory state stays authoritative."""


class PersistenceLoadFailure(DevDemonError):
    """On-disk state could not be read or parsed."""


class SchemaMismatch(PersistenceLoadFailure):
    """On-disk state carries an unknown schema version."""


class ExecutionFailure(DevDemonError):
    """The executor raised or reported a failed task."""


class ExecutionInterrupted(ExecutionFailure):
    """The in-flight task was stopped from outside before it finished."""


class RoleValidationError(DevDemonError):
    """A role definition failed frontmatter validation."""

    def __init__(self, message: str, source: str = "") -> None:
        prefix = f"{source}: " if source else ""
        super().__init__(f"{prefix}{message}")
        self.source = source
