"""Daemon subsystem — the execution loop, its driver, and live events."""

from devdemon.daemon.daemon import Daemon
from devdemon.daemon.events import DaemonEvent, EventChannel, EventType
from devdemon.daemon.loop import LoopDependencies, TickResult, execute_tick

__all__ = [
    "Daemon",
    "DaemonEvent",
    "EventChannel",
    "EventType",
    "LoopDependencies",
    "TickResult",
    "execute_tick",
]
