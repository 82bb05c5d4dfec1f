"""Pydantic models for configuration sub-sections."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from devdemon.config.constants import (
    DEFAULT_BASE_BACKOFF_SECONDS,
    DEFAULT_EVENT_BUFFER_SIZE,
    DEFAULT_EXECUTOR_COMMAND,
    DEFAULT_MAX_CONSECUTIVE_ERRORS,
    DEFAULT_MAX_QUEUE_SIZE,
    DEFAULT_STOP_TIMEOUT_SECONDS,
    MAX_BACKOFF_SECONDS,
)


class DaemonConfig(BaseModel):
    """Scheduling limits for the work loop."""

    max_queue_size: int = Field(default=DEFAULT_MAX_QUEUE_SIZE, gt=0)
    max_consecutive_errors: int = Field(default=DEFAULT_MAX_CONSECUTIVE_ERRORS, gt=0)
    base_backoff_seconds: float = Field(default=DEFAULT_BASE_BACKOFF_SECONDS, ge=0)
    max_backoff_seconds: float = Field(default=MAX_BACKOFF_SECONDS, ge=0)
    stop_timeout_seconds: float = Field(default=DEFAULT_STOP_TIMEOUT_SECONDS, ge=0)
    event_buffer_size: int = Field(default=DEFAULT_EVENT_BUFFER_SIZE, gt=0)

    @model_validator(mode="after")
    def validate_backoff(self) -> "DaemonConfig":
        if self.base_backoff_seconds > self.max_backoff_seconds:
            raise ValueError(
                f"base_backoff_seconds ({self.base_backoff_seconds}) must not exceed "
                f"max_backoff_seconds ({self.max_backoff_seconds})"
            )
        return self


class ExecutorConfig(BaseModel):
    """How the coding agent is launched."""

    command: str = DEFAULT_EXECUTOR_COMMAND  # executable on PATH or absolute path
