"""Pydantic models for role definitions."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from devdemon.config.constants import (
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_MAX_TURNS,
    DEFAULT_PERMISSION_MODE,
)

PermissionMode = Literal["default", "acceptEdits", "bypassPermissions"]

ROLE_NAME_PATTERN = r"^[a-zA-Z0-9][a-zA-Z0-9 _\-]*$"


class RoleFrontmatter(BaseModel):
    """The YAML header of a role file. Unknown keys are rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )

    name: str = Field(min_length=1, pattern=ROLE_NAME_PATTERN)
    interval: float = Field(default=DEFAULT_INTERVAL_SECONDS, gt=0)  # seconds between ticks
    max_turns: int = Field(default=DEFAULT_MAX_TURNS, gt=0)
    tools: list[str] | None = None  # None = executor default tool set
    permission_mode: PermissionMode = DEFAULT_PERMISSION_MODE
    description: str | None = None
    tags: list[str] | None = None


@dataclass(frozen=True)
class RoleConfig:
    """A loaded role: validated header, prompt body, and source file."""

    frontmatter: RoleFrontmatter
    body: str
    file_path: Path

    @property
    def name(self) -> str:
        return self.frontmatter.name

    @property
    def slug(self) -> str:
        return self.file_path.stem
