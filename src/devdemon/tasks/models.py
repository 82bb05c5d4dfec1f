"""Pydantic models for queued work."""

from __future__ import annotations

import secrets
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from devdemon.config.constants import AUTONOMOUS_PRIORITY, USER_PRIORITY


class TaskKind(StrEnum):
    """Where a task came from."""

    USER = "user"
    AUTONOMOUS = "autonomous"


# Closed two-level ordering: lower value is served first.
PRIORITY_BY_KIND: dict[TaskKind, int] = {
    TaskKind.USER: USER_PRIORITY,
    TaskKind.AUTONOMOUS: AUTONOMOUS_PRIORITY,
}


def _generate_id() -> str:
    return secrets.token_hex(6)


class Task(BaseModel):
    """A single unit of work handed to the executor."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(default_factory=_generate_id)
    kind: TaskKind
    payload: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    priority_class: int | None = None  # derived from kind when omitted

    @model_validator(mode="before")
    @classmethod
    def fill_priority(cls, data):
        if isinstance(data, dict):
            kind = data.get("kind")
            priority = data.get("priority_class", data.get("priorityClass"))
            if kind is not None and priority is None:
                data = {**data, "priority_class": PRIORITY_BY_KIND[TaskKind(kind)]}
        return data

    @model_validator(mode="after")
    def check_priority(self) -> "Task":
        expected = PRIORITY_BY_KIND[self.kind]
        if self.priority_class != expected:
            raise ValueError(
                f"priority_class {self.priority_class} does not match kind "
                f"'{self.kind}' (expected {expected})"
            )
        return self

    @classmethod
    def user(cls, instruction: str) -> "Task":
        return cls(kind=TaskKind.USER, payload=instruction)

    @classmethod
    def autonomous(cls, payload: str) -> "Task":
        return cls(kind=TaskKind.AUTONOMOUS, payload=payload)
