"""Tests for writing new role files."""

from __future__ import annotations

from pathlib import Path

import pytest

from devdemon.roles.loader import load_role, resolve_role
from devdemon.roles.models import RoleFrontmatter
from devdemon.roles.writer import default_role_body, render_role, slugify, write_role


@pytest.mark.parametrize(
    "name, slug",
    [
        ("Developer", "developer"),
        ("Doc Writer", "doc-writer"),
        ("QA_bot 2", "qa-bot-2"),
        ("trailing-", "trailing"),
    ],
)
def test_slugify(name: str, slug: str):
    assert slugify(name) == slug


def test_render_keeps_field_order_and_drops_unset():
    frontmatter = RoleFrontmatter(name="Tidy", interval=60, description="Cleans up")
    text = render_role(frontmatter, "Body text.\n\n")

    assert text.startswith("---\nname: Tidy\ninterval: 60\nmaxTurns: 50\npermissionMode: acceptEdits\n")
    assert "tools" not in text
    assert "tags" not in text
    assert text.endswith("---\n\nBody text.\n")


def test_fractional_interval_is_kept():
    text = render_role(RoleFrontmatter(name="Fast", interval=0.5), "body")
    assert "interval: 0.5\n" in text


def test_written_role_loads_back(repo: Path):
    roles_dir = repo / ".devdemon" / "roles"
    frontmatter = RoleFrontmatter(
        name="Doc Writer",
        interval=120,
        max_turns=10,
        tools=["Read"],
        permission_mode="default",
        tags=["docs"],
    )
    path = write_role(roles_dir, frontmatter, default_role_body(frontmatter))

    assert path == roles_dir / "doc-writer.md"
    role = load_role(path)
    assert role.frontmatter == frontmatter
    assert role.body.startswith("You are the **Doc Writer** role.")
    assert resolve_role("doc writer", repo).file_path == path.resolve()


def test_write_refuses_existing_file(tmp_path: Path):
    frontmatter = RoleFrontmatter(name="Tidy")
    path = write_role(tmp_path, frontmatter, "first")

    with pytest.raises(FileExistsError):
        write_role(tmp_path, frontmatter, "second")
    assert path.read_text(encoding="utf-8").endswith("first\n")


def test_default_body_mentions_description():
    body = default_role_body(RoleFrontmatter(name="Tidy", description="Removes dead code"))
    assert "Removes dead code" in body
    assert "## Responsibilities" in body
