"""Per-repository file locations."""

from __future__ import annotations

from pathlib import Path

from devdemon.config.constants import (
    DEVDEMON_DIR_NAME,
    LOG_FILE_NAME,
    QUEUE_FILE_NAME,
    ROLES_DIR_NAME,
    SETTINGS_FILE_NAME,
    STATE_FILE_NAME,
)


def get_devdemon_dir(repo_path: Path | None = None) -> Path:
    return (repo_path or Path.cwd()) / DEVDEMON_DIR_NAME


def get_state_path(repo_path: Path | None = None) -> Path:
    return get_devdemon_dir(repo_path) / STATE_FILE_NAME


def get_queue_path(repo_path: Path | None = None) -> Path:
    return get_devdemon_dir(repo_path) / QUEUE_FILE_NAME


def get_settings_path(repo_path: Path | None = None) -> Path:
    return get_devdemon_dir(repo_path) / SETTINGS_FILE_NAME


def get_log_path(repo_path: Path | None = None) -> Path:
    return get_devdemon_dir(repo_path) / LOG_FILE_NAME


def get_project_roles_dir(repo_path: Path | None = None) -> Path:
    return get_devdemon_dir(repo_path) / ROLES_DIR_NAME


def ensure_devdemon_dir(repo_path: Path | None = None) -> Path:
    """Create the data directory if it doesn't exist and return it."""
    directory = get_devdemon_dir(repo_path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory
