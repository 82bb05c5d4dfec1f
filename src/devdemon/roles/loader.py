"""Load and validate role files."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from devdemon.config.paths import get_project_roles_dir
from devdemon.errors import RoleValidationError
from devdemon.roles.models import RoleConfig, RoleFrontmatter

logger = logging.getLogger("devdemon.roles.loader")

# Built-in roles are shipped inside the package
BUILTIN_ROLES_DIR = Path(__file__).parent / "templates"

_DELIMITER = "---"


def format_validation_error(error: ValidationError) -> str:
    """Collapse pydantic issues into one readable line."""
    parts = []
    for issue in error.errors():
        location = ".".join(str(part) for part in issue["loc"])
        parts.append(f"{location}: {issue['msg']}" if location else issue["msg"])
    return "; ".join(parts)


def split_frontmatter(text: str) -> tuple[dict, str]:
    """Split ``---`` delimited YAML frontmatter from the markdown body."""
    lines = text.splitlines()
    if not lines or lines[0].strip() != _DELIMITER:
        raise RoleValidationError("role file must start with YAML frontmatter (---)")

    for index, line in enumerate(lines[1:], start=1):
        if line.strip() == _DELIMITER:
            header = "\n".join(lines[1:index])
            body = "\n".join(lines[index + 1 :])
            break
    else:
        raise RoleValidationError("unterminated YAML frontmatter")

    try:
        data = yaml.safe_load(header) or {}
    except yaml.YAMLError as exc:
        raise RoleValidationError(f"invalid YAML frontmatter: {exc}") from exc
    if not isinstance(data, dict):
        raise RoleValidationError("frontmatter must be a mapping")
    return data, body


def validate_frontmatter(data: dict, source: str = "") -> RoleFrontmatter:
    try:
        return RoleFrontmatter.model_validate(data)
    except ValidationError as exc:
        raise RoleValidationError(format_validation_error(exc), source=source) from exc


def validate_interval_override(value: str) -> float:
    """Parse a CLI interval override (seconds) into a positive number."""
    try:
        interval = float(value)
    except ValueError:
        raise RoleValidationError(f'Invalid interval: "{value}" is not a number') from None
    if interval <= 0:
        raise RoleValidationError("Interval must be a positive number")
    return interval


def load_role(path: Path) -> RoleConfig:
    """Read and validate a single role file."""
    absolute = path.resolve()
    try:
        text = absolute.read_text(encoding="utf-8")
    except OSError as exc:
        raise RoleValidationError(f"cannot read role file: {exc}", source=str(absolute)) from exc

    try:
        data, body = split_frontmatter(text)
    except RoleValidationError as exc:
        raise RoleValidationError(str(exc), source=str(absolute)) from exc
    frontmatter = validate_frontmatter(data, source=str(absolute))
    return RoleConfig(frontmatter=frontmatter, body=body.strip(), file_path=absolute)


def load_all_roles(directory: Path) -> list[RoleConfig]:
    """Load every ``*.md`` role in a directory, skipping invalid files."""
    if not directory.is_dir():
        return []
    roles = []
    for path in sorted(directory.glob("*.md")):
        try:
            roles.append(load_role(path))
        except RoleValidationError as exc:
            logger.warning("Failed to load role %s: %s", path.name, exc)
    return roles


def load_grouped_roles(repo_path: Path | None = None) -> dict[str, list[RoleConfig]]:
    """Return built-in and project roles, keyed by origin."""
    return {
        "builtin": load_all_roles(BUILTIN_ROLES_DIR),
        "project": load_all_roles(get_project_roles_dir(repo_path)),
    }


def resolve_role(name: str, repo_path: Path | None = None) -> RoleConfig | None:
    """Find a role by file stem or display name. Project roles win over built-ins."""
    grouped = load_grouped_roles(repo_path)
    wanted = name.lower()
    for role in grouped["project"] + grouped["builtin"]:
        if role.slug.lower() == wanted or role.name.lower() == wanted:
            return role
    return None


def with_interval(role: RoleConfig, interval: float) -> RoleConfig:
    """Return a copy of the role with a different tick interval."""
    data = role.frontmatter.model_dump()
    data["interval"] = interval
    frontmatter = validate_frontmatter(data, source=str(role.file_path))
    return dataclasses.replace(role, frontmatter=frontmatter)
