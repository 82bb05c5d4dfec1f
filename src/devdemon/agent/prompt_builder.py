"""Prompt builder — turns role, history, and progress notes into task payloads."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from devdemon.config.constants import MAX_HISTORY_PROMPT_LENGTH, RECENT_HISTORY_COUNT

if TYPE_CHECKING:
    from devdemon.agent.progress import ProgressNotes
    from devdemon.roles.models import RoleConfig
    from devdemon.state.store import LifecycleStore

AUTONOMOUS_DIRECTIVE = (
    "Based on your role definition, recent history, and progress notes,\n"
    "decide what to do next. Choose a task that provides value\n"
    "and does not duplicate recent work."
)

AUTONOMOUS_GUIDELINES = (
    "- Before starting, run existing tests to understand current state\n"
    "- After completing work, run tests again to ensure no regressions\n"
    "- If you try an approach that fails, update .devdemon/progress.md\n"
    "  with what you tried and why it failed, so future cycles avoid it\n"
    "- Keep output concise. Log details to files, not stdout\n"
    "- Commit your changes with clear commit messages"
)


@dataclass(frozen=True)
class RoleContext:
    """Read-only situational data used to template prompts."""

    name: str
    repository_path: Path
    cycle_number: int


class PromptBuilder:
    """Builds the text handed to the executor for user and autonomous ticks.

    Holds no state of its own; everything comes from the role, a read-only
    view of the lifecycle store, the progress notes, and the clock.
    """

    def __init__(
        self,
        role: RoleConfig,
        state: LifecycleStore,
        progress: ProgressNotes,
    ) -> None:
        self._role = role
        self._state = state
        self._progress = progress

    def role_context(self) -> RoleContext:
        return RoleContext(
            name=self._role.name,
            repository_path=self._state.repo_path,
            cycle_number=self._state.get_stats().total_cycles + 1,
        )

    def build_context(self) -> str:
        ctx = self.role_context()
        return "\n".join(
            [
                "## Context",
                f"- Repository: {ctx.repository_path}",
                f"- Role: {ctx.name}",
                f"- Cycle: #{ctx.cycle_number}",
                f"- Time: {datetime.now(UTC).isoformat()}",
            ]
        )

    def build_user(self, instruction: str) -> str:
        """Wrap a user instruction with the current context."""
        return f"{self.build_context()}\n\n## User Instruction\n\n{instruction}"

    def build_autonomous(self) -> str:
        """Build a self-directed task from history and progress notes."""
        recent = self._state.get_recent_history(RECENT_HISTORY_COUNT)
        if recent:
            history_text = "\n".join(
                f"- [{entry.status}] {entry.payload[:MAX_HISTORY_PROMPT_LENGTH]}"
                for entry in recent
            )
        else:
            history_text = "No previous tasks."

        sections = [
            self.build_context(),
            "## Recent Task History",
            history_text,
        ]

        progress = self._progress.read()
        if progress:
            sections.append(f"## Progress Notes\n{progress}")

        sections += [
            "## Your Task",
            AUTONOMOUS_DIRECTIVE,
            "## Important Guidelines",
            AUTONOMOUS_GUIDELINES,
        ]
        return "\n\n".join(sections)
