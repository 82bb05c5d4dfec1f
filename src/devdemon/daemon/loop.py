"""One tick of the work loop: select, mark running, execute, record."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from devdemon.errors import ExecutionFailure, ExecutionInterrupted
from devdemon.tasks.models import Task, TaskKind

if TYPE_CHECKING:
    from devdemon.agent.executor import ExecutionOutcome, Executor
    from devdemon.agent.prompt_builder import PromptBuilder
    from devdemon.roles.models import RoleConfig
    from devdemon.state.store import LifecycleStore
    from devdemon.tasks.queue import TaskQueue

_logger = logging.getLogger("devdemon.daemon.loop")


@dataclass
class LoopDependencies:
    executor: Executor
    queue: TaskQueue
    state: LifecycleStore
    role: RoleConfig
    prompt_builder: PromptBuilder
    logger: logging.Logger = field(default=_logger)


@dataclass(slots=True)
class TickResult:
    """What happened during one tick."""

    task: Task
    success: bool
    interrupted: bool = False
    outcome: ExecutionOutcome | None = None
    error: str | None = None


def select_task(deps: LoopDependencies) -> Task:
    """Next queued task, or a freshly synthesized autonomous one."""
    task = deps.queue.dequeue()
    if task is not None:
        return task
    return deps.queue.make_autonomous(deps.prompt_builder.build_autonomous())


def _prompt_for(task: Task, deps: LoopDependencies) -> str:
    if task.kind == TaskKind.USER:
        return deps.prompt_builder.build_user(task.payload)
    return task.payload


async def execute_tick(deps: LoopDependencies) -> TickResult:
    """Run exactly one task and record how it ended.

    Executor failures of any kind are recorded and reported through the
    returned TickResult; they never propagate. Cancelling the calling task
    records the task as interrupted before the CancelledError is re-raised.
    """
    log = deps.logger
    task = select_task(deps)
    deps.state.set_current_task(task)

    log.info("Starting %s task %s", task.kind, task.id)
    try:
        prompt = _prompt_for(task, deps)
        outcome = await deps.executor.execute(prompt, deps.role)
    except asyncio.CancelledError:
        deps.state.record_interruption(task, "Task was cancelled")
        log.info("Task %s cancelled", task.id)
        raise
    except ExecutionInterrupted as exc:
        deps.state.record_interruption(task, str(exc) or "Task was interrupted")
        log.info("Task %s interrupted", task.id)
        return TickResult(task=task, success=False, interrupted=True, error=str(exc))
    except Exception as exc:
        log.error("Task %s failed: %s", task.id, exc, exc_info=True)
        deps.state.record_failure(task, exc)
        return TickResult(task=task, success=False, error=str(exc) or type(exc).__name__)

    if not outcome.success:
        failure = ExecutionFailure(outcome.error_message)
        log.warning("Task %s reported failure: %s", task.id, failure)
        deps.state.record_failure(task, failure)
        return TickResult(task=task, success=False, outcome=outcome, error=str(failure))

    deps.state.record_completion(task, outcome)
    log.info(
        "Task %s completed in %d turns (%.2fs, $%.4f)",
        task.id,
        outcome.num_turns,
        outcome.duration_ms / 1000,
        outcome.cost_usd,
    )
    return TickResult(task=task, success=True, outcome=outcome)
