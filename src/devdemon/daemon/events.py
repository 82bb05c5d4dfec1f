"""Live daemon events, delivered through a bounded drop-oldest channel."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from devdemon.config.constants import DEFAULT_EVENT_BUFFER_SIZE


class EventType(StrEnum):
    STARTED = "started"
    STOPPED = "stopped"
    TASK_ENQUEUED = "task_enqueued"
    CYCLE_START = "cycle_start"
    CYCLE_COMPLETE = "cycle_complete"
    CYCLE_ERROR = "cycle_error"
    CYCLE_INTERRUPTED = "cycle_interrupted"
    MAX_ERRORS_REACHED = "max_errors_reached"


@dataclass(slots=True)
class DaemonEvent:
    type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    at: datetime = field(default_factory=lambda: datetime.now(UTC))


class EventChannel:
    """Bounded buffer between the daemon and whoever renders its progress.

    Publishing never blocks the daemon: when the buffer is full the oldest
    event is discarded to make room.
    """

    def __init__(self, maxsize: int = DEFAULT_EVENT_BUFFER_SIZE) -> None:
        self._queue: asyncio.Queue[DaemonEvent] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def publish(self, event: DaemonEvent) -> None:
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(event)

    async def get(self) -> DaemonEvent:
        return await self._queue.get()

    def get_nowait(self) -> DaemonEvent | None:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def __len__(self) -> int:
        return self._queue.qsize()

    async def __aiter__(self) -> AsyncIterator[DaemonEvent]:
        while True:
            yield await self._queue.get()
