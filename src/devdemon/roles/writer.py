"""Write new role files into a roles directory."""

from __future__ import annotations

import logging
import re
from pathlib import Path

import yaml

from devdemon.roles.models import RoleFrontmatter

logger = logging.getLogger("devdemon.roles.writer")


def slugify(name: str) -> str:
    """File stem for a role name: lowercase, runs of other characters become ``-``."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower().strip()).strip("-")


def role_file_path(directory: Path, name: str) -> Path:
    return directory / f"{slugify(name)}.md"


def default_role_body(frontmatter: RoleFrontmatter) -> str:
    """Starter prompt body for a new role, meant to be edited by hand."""
    lines = [f"You are the **{frontmatter.name}** role."]
    if frontmatter.description:
        lines += ["", frontmatter.description]
    lines += [
        "",
        "## Responsibilities",
        "",
        "- Carry out tasks assigned to this role",
        "- Follow project conventions",
        "- Report progress clearly",
        "",
        "## Guidelines",
        "",
        "- Be thorough and precise",
        "- Prefer minimal, focused changes",
        "- Leave notes for the next cycle in the progress file",
    ]
    return "\n".join(lines)


def render_role(frontmatter: RoleFrontmatter, body: str) -> str:
    data = frontmatter.model_dump(by_alias=True, exclude_none=True)
    if float(data["interval"]).is_integer():
        data["interval"] = int(data["interval"])
    header = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    return f"---\n{header}---\n\n{body.strip()}\n"


def write_role(directory: Path, frontmatter: RoleFrontmatter, body: str) -> Path:
    """Create ``<directory>/<slug>.md``. Raises FileExistsError if it is already there."""
    directory.mkdir(parents=True, exist_ok=True)
    path = role_file_path(directory, frontmatter.name)
    with path.open("x", encoding="utf-8") as fh:
        fh.write(render_role(frontmatter, body))
    logger.info("Created role %s at %s", frontmatter.name, path)
    return path
