"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from devdemon.agent.executor import ExecutionOutcome
from devdemon.agent.progress import ProgressNotes
from devdemon.agent.prompt_builder import PromptBuilder
from devdemon.config.paths import ensure_devdemon_dir, get_queue_path, get_state_path
from devdemon.errors import ExecutionInterrupted
from devdemon.roles.models import RoleConfig, RoleFrontmatter
from devdemon.state.store import LifecycleStore
from devdemon.tasks.queue import TaskQueue


class FakeExecutor:
    """Executor stub that records calls and returns or raises what it is told."""

    def __init__(self, outcome: ExecutionOutcome | None = None, error: Exception | None = None):
        self.outcome = outcome or ExecutionOutcome(
            success=True, result_text="done", cost_usd=0.1, num_turns=2, duration_ms=500
        )
        self.error = error
        self.calls: list[tuple[str, RoleConfig]] = []
        self.interrupt_calls = 0
        self.block = False
        self.started = asyncio.Event()
        self._release = asyncio.Event()

    async def execute(self, prompt: str, role: RoleConfig) -> ExecutionOutcome:
        self.calls.append((prompt, role))
        self.started.set()
        if self.block:
            await self._release.wait()
            raise ExecutionInterrupted("Task was interrupted")
        if self.error is not None:
            raise self.error
        return self.outcome

    async def interrupt(self) -> None:
        self.interrupt_calls += 1
        self._release.set()


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """A temporary repository with an initialized .devdemon directory."""
    path = tmp_path / "repo"
    path.mkdir()
    ensure_devdemon_dir(path)
    return path


@pytest.fixture
def role(tmp_path: Path) -> RoleConfig:
    return RoleConfig(
        frontmatter=RoleFrontmatter(name="Tester", interval=60, max_turns=5),
        body="You test things.",
        file_path=tmp_path / "tester.md",
    )


@pytest.fixture
def queue(repo: Path) -> TaskQueue:
    return TaskQueue(path=get_queue_path(repo))


@pytest.fixture
def state(repo: Path) -> LifecycleStore:
    return LifecycleStore(path=get_state_path(repo), repo_path=repo)


@pytest.fixture
def progress(repo: Path) -> ProgressNotes:
    return ProgressNotes(repo / ".devdemon")


@pytest.fixture
def prompt_builder(role, state, progress) -> PromptBuilder:
    return PromptBuilder(role, state, progress)


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()
