"""Executor interface — the collaborator that actually performs a task."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from devdemon.roles.models import RoleConfig


@dataclass(slots=True)
class ExecutionOutcome:
    """Structured result of one executor run."""

    success: bool
    result_text: str | None = None
    cost_usd: float = 0.0
    num_turns: int = 0
    duration_ms: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def error_message(self) -> str:
        if self.errors:
            return "; ".join(self.errors)
        return self.result_text or "Executor reported failure"


class Executor(Protocol):
    """Protocol implemented by task executors.

    ``execute`` may take an unbounded amount of time. ``interrupt`` asks an
    in-flight ``execute`` to stop; the pending call then raises
    ``ExecutionInterrupted``.
    """

    async def execute(self, prompt: str, role: RoleConfig) -> ExecutionOutcome:
        """Run a task and return its outcome. May raise on process failure."""

    async def interrupt(self) -> None:
        """Stop the in-flight task, if any."""
