"""Pydantic models for the persisted lifecycle state."""

from __future__ import annotations

import secrets
from datetime import UTC, datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from devdemon.config.constants import STATE_VERSION
from devdemon.tasks.models import TaskKind


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HistoryStatus(StrEnum):
    """How a finished task ended."""

    COMPLETED = "completed"
    FAILED = "failed"
    INTERRUPTED = "interrupted"


class CurrentTaskRecord(_CamelModel):
    """The task that is executing right now."""

    id: str
    kind: TaskKind
    payload: str
    started_at: datetime
    status: Literal["running"] = "running"


class HistoryEntry(_CamelModel):
    """Immutable record of one finished task."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: TaskKind
    payload: str
    result_text: str = ""
    status: HistoryStatus
    started_at: datetime
    completed_at: datetime
    duration_ms: int = 0
    cost_units: float = 0.0
    turn_count: int = 0


class Stats(_CamelModel):
    """Running totals, updated each time a history entry is appended."""

    total_cycles: int = 0
    total_cost_usd: float = 0.0
    total_tasks: int = 0
    user_tasks: int = 0
    autonomous_tasks: int = 0
    failed_tasks: int = 0
    interrupted_tasks: int = 0


class RoleRef(_CamelModel):
    name: str = ""
    file: str = ""


def _generate_session_id() -> str:
    return secrets.token_hex(8)


class LifecycleState(_CamelModel):
    """Everything written to state.json."""

    version: Literal[1] = STATE_VERSION
    session_id: str = Field(default_factory=_generate_session_id)
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    current_role: RoleRef = Field(default_factory=RoleRef)
    current_task: CurrentTaskRecord | None = None
    task_history: list[HistoryEntry] = Field(default_factory=list)
    stats: Stats = Field(default_factory=Stats)
