"""Lifecycle store — current task, history, and running stats."""

from devdemon.state.models import (
    CurrentTaskRecord,
    HistoryEntry,
    HistoryStatus,
    LifecycleState,
    Stats,
)
from devdemon.state.store import LifecycleStore

__all__ = [
    "CurrentTaskRecord",
    "HistoryEntry",
    "HistoryStatus",
    "LifecycleState",
    "LifecycleStore",
    "Stats",
]
