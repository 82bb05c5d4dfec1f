"""Agent collaborators — executor, task synthesizer, progress notes."""

from devdemon.agent.executor import ExecutionOutcome, Executor
from devdemon.agent.progress import ProgressNotes
from devdemon.agent.prompt_builder import PromptBuilder, RoleContext

__all__ = ["ExecutionOutcome", "Executor", "ProgressNotes", "PromptBuilder", "RoleContext"]
