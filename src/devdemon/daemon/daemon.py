"""Daemon — APScheduler-driven driver that runs ticks and routes user instructions."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from devdemon.config.models import DaemonConfig
from devdemon.daemon.events import DaemonEvent, EventChannel, EventType
from devdemon.daemon.loop import LoopDependencies, TickResult, execute_tick
from devdemon.tasks.models import Task

if TYPE_CHECKING:
    from devdemon.agent.executor import Executor
    from devdemon.agent.prompt_builder import PromptBuilder
    from devdemon.roles.models import RoleConfig
    from devdemon.state.models import Stats
    from devdemon.state.store import LifecycleStore
    from devdemon.tasks.queue import TaskQueue

_logger = logging.getLogger("devdemon.daemon.daemon")

TICK_JOB_ID = "__tick__"


class Daemon:
    """Runs one task at a time, forever, until stopped.

    Each tick is a one-shot APScheduler job. When a tick finishes the next one
    is scheduled: after a backoff if it failed, right away if user tasks are
    waiting, otherwise after the role's interval. A user instruction that
    arrives while the daemon is idle pulls the next tick forward to now; one
    that arrives mid-tick waits for the next tick.
    """

    def __init__(
        self,
        role: RoleConfig,
        repo_path: Path,
        executor: Executor,
        queue: TaskQueue,
        state: LifecycleStore,
        prompt_builder: PromptBuilder,
        config: DaemonConfig | None = None,
        events: EventChannel | None = None,
        interval: float | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.role = role
        self.repo_path = repo_path
        self._executor = executor
        self._queue = queue
        self._state = state
        self._prompt_builder = prompt_builder
        self._config = config or DaemonConfig()
        self.events = events or EventChannel(self._config.event_buffer_size)
        self._interval = interval or role.frontmatter.interval
        self._logger = logger or _logger

        self._scheduler = AsyncIOScheduler(timezone=UTC)
        self._running = False
        self._busy = False
        self._cycle_task: asyncio.Task | None = None
        self._stopped: asyncio.Event | None = None
        self.consecutive_errors = 0

    # -- Lifecycle -------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def interval(self) -> float:
        return self._interval

    async def start(self) -> None:
        """Start ticking and block until stop() is called."""
        if self._running:
            return
        self._stopped = asyncio.Event()
        self._running = True

        recovered = self._state.recover_interrupted()
        if recovered is not None:
            self._logger.warning("Recovered stale task %s as interrupted", recovered.id)
        self._state.set_current_role(self.role.name, str(self.role.file_path))

        self._scheduler.start()
        self._publish(
            EventType.STARTED,
            role=self.role.name,
            repo_path=str(self.repo_path),
            interval=self._interval,
        )
        self._logger.info(
            "Daemon started for %s with role %s (interval %ss)",
            self.repo_path,
            self.role.name,
            self._interval,
        )
        self._schedule_next(0)
        await self._stopped.wait()

    async def stop(self) -> None:
        """Stop scheduling, interrupt the running task, and flush state."""
        if not self._running:
            return
        self._running = False
        self._unschedule()

        cycle = self._cycle_task
        if cycle is not None and not cycle.done():
            await self._executor.interrupt()
            done, _ = await asyncio.wait({cycle}, timeout=self._config.stop_timeout_seconds)
            if not done:
                self._logger.warning("Tick did not finish after interrupt, cancelling it")
                cycle.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await cycle

        self._state.save()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._publish(EventType.STOPPED)
        self._logger.info("Daemon stopped")
        if self._stopped is not None:
            self._stopped.set()

    # -- Driver surface --------------------------------------------------------

    def enqueue_user_task(self, instruction: str) -> Task:
        """Queue a user instruction. Raises CapacityExceededError when full."""
        task = self._queue.enqueue_user(instruction)
        self._publish(EventType.TASK_ENQUEUED, task_id=task.id, payload=task.payload)
        if self._running and not self._busy:
            self._schedule_next(0)
        return task

    def get_stats(self) -> Stats:
        return self._state.get_stats()

    def get_queue_depth(self) -> int:
        return len(self._queue)

    async def run_cycle(self) -> TickResult:
        """Run one tick and update the consecutive-error counter."""
        deps = LoopDependencies(
            executor=self._executor,
            queue=self._queue,
            state=self._state,
            role=self.role,
            prompt_builder=self._prompt_builder,
            logger=self._logger,
        )
        self._busy = True
        try:
            self._publish(EventType.CYCLE_START, cycle=self._state.get_stats().total_cycles + 1)
            result = await execute_tick(deps)
        finally:
            self._busy = False

        task_data = {"task_id": result.task.id, "kind": str(result.task.kind)}
        if result.success:
            self.consecutive_errors = 0
            outcome = result.outcome
            self._publish(
                EventType.CYCLE_COMPLETE,
                **task_data,
                result=outcome.result_text if outcome else None,
                cost_usd=outcome.cost_usd if outcome else 0.0,
                num_turns=outcome.num_turns if outcome else 0,
                duration_ms=outcome.duration_ms if outcome else 0,
            )
        elif result.interrupted:
            self._publish(EventType.CYCLE_INTERRUPTED, **task_data)
        else:
            self.consecutive_errors += 1
            self._publish(EventType.CYCLE_ERROR, **task_data, error=result.error)
            if self.consecutive_errors >= self._config.max_consecutive_errors:
                self._logger.error(
                    "%d consecutive task failures", self.consecutive_errors
                )
                self._publish(EventType.MAX_ERRORS_REACHED, count=self.consecutive_errors)
        return result

    def next_delay(self, result: TickResult) -> float:
        """Seconds to wait before the tick after ``result``."""
        if not result.success and not result.interrupted:
            return self._backoff_delay()
        if self._queue.user_task_count:
            return 0.0
        return self._interval

    # -- Execution callback ----------------------------------------------------

    async def _scheduled_cycle(self) -> None:
        """Called by APScheduler when the tick job fires."""
        if not self._running or self._busy:
            return
        self._cycle_task = asyncio.current_task()
        try:
            result = await self.run_cycle()
        except Exception:
            # Failures outside the executor call (e.g. prompt building) must not end the loop.
            self._logger.exception("Tick failed before the task could run")
            self.consecutive_errors += 1
            delay = self._backoff_delay()
        else:
            delay = self.next_delay(result)
        finally:
            self._cycle_task = None
        if self._running:
            self._schedule_next(delay)

    # -- Internal helpers ------------------------------------------------------

    def _schedule_next(self, delay: float) -> None:
        run_at = datetime.now(UTC) + timedelta(seconds=delay)
        self._scheduler.add_job(
            self._scheduled_cycle,
            trigger=DateTrigger(run_date=run_at, timezone=UTC),
            id=TICK_JOB_ID,
            name="devdemon tick",
            replace_existing=True,
            misfire_grace_time=None,
            # The next tick is scheduled from inside the one still finishing
            max_instances=2,
        )
        self._logger.debug("Next tick in %.1fs", delay)

    def _backoff_delay(self) -> float:
        return min(
            self._config.base_backoff_seconds * self.consecutive_errors,
            self._config.max_backoff_seconds,
        )

    def _unschedule(self) -> None:
        with contextlib.suppress(JobLookupError):
            self._scheduler.remove_job(TICK_JOB_ID)

    def _publish(self, event_type: EventType, **data) -> None:
        self.events.publish(DaemonEvent(type=event_type, data=data))
