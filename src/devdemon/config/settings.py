"""Repository settings — loads from <repo>/.devdemon/settings.json + environment variables."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from devdemon.config.models import DaemonConfig, ExecutorConfig
from devdemon.config.paths import get_settings_path

logger = logging.getLogger("devdemon.config.settings")

# Keys users may change with `devdemon config set`
EDITABLE_KEYS = ("language", "model")


class Settings(BaseSettings):
    """All devdemon configuration for one repository.

    Priority (highest → lowest):
      1. Environment variables (DEVDEMON_ prefix)
      2. <repo>/.devdemon/settings.json
      3. Defaults defined here
    """

    model_config = SettingsConfigDict(
        env_prefix="DEVDEMON_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # --- Sub-configs ---
    daemon: DaemonConfig = Field(default_factory=DaemonConfig)
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)

    # --- Top-level settings ---
    repo_path: Path = Field(default_factory=Path.cwd, exclude=True)
    language: str | None = None  # e.g. "Japanese"; None = executor default
    model: str | None = None  # None = executor default

    @model_validator(mode="before")
    @classmethod
    def load_settings_file(cls, values: dict) -> dict:
        """Merge settings.json values as defaults (env vars and kwargs still override)."""
        repo = Path(values.get("repo_path") or Path.cwd())
        path = get_settings_path(repo)
        if path.exists():
            try:
                file_data = json.loads(path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, OSError) as exc:
                logger.warning("Failed to load settings from %s, using defaults: %s", path, exc)
            else:
                if isinstance(file_data, dict):
                    values = {**file_data, **{k: v for k, v in values.items() if v is not None}}
                else:
                    logger.warning("Ignoring settings file %s: expected a JSON object", path)
        return values

    @property
    def settings_path(self) -> Path:
        return get_settings_path(self.repo_path)

    def save(self) -> None:
        """Persist settings to disk atomically."""
        path = self.settings_path
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        data = self.model_dump(mode="json", exclude_none=True)
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(path)

    @classmethod
    def config_exists(cls, repo_path: Path | None = None) -> bool:
        return get_settings_path(repo_path).exists()


def get_settings(repo_path: Path | None = None) -> Settings:
    """Load settings for a repository (defaults to the current directory)."""
    return Settings(repo_path=repo_path or Path.cwd())
