"""Tests for role file loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from devdemon.config.paths import get_project_roles_dir
from devdemon.errors import RoleValidationError
from devdemon.roles.loader import (
    BUILTIN_ROLES_DIR,
    load_all_roles,
    load_grouped_roles,
    load_role,
    resolve_role,
    split_frontmatter,
    validate_interval_override,
    with_interval,
)

_VALID = """\
---
name: Test Writer
interval: 120
maxTurns: 10
permissionMode: bypassPermissions
tools:
  - Read
  - Edit
description: Writes tests
---

You write tests.
"""


def _write(directory: Path, filename: str, text: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadRole:
    def test_valid_role(self, tmp_path: Path):
        role = load_role(_write(tmp_path, "test-writer.md", _VALID))
        assert role.name == "Test Writer"
        assert role.slug == "test-writer"
        assert role.frontmatter.interval == 120
        assert role.frontmatter.max_turns == 10
        assert role.frontmatter.permission_mode == "bypassPermissions"
        assert role.frontmatter.tools == ["Read", "Edit"]
        assert role.body == "You write tests."
        assert role.file_path.is_absolute()

    def test_defaults(self, tmp_path: Path):
        role = load_role(_write(tmp_path, "min.md", "---\nname: Minimal\n---\nBody"))
        assert role.frontmatter.interval == 300
        assert role.frontmatter.max_turns == 50
        assert role.frontmatter.permission_mode == "acceptEdits"
        assert role.frontmatter.tools is None

    def test_unknown_field_rejected(self, tmp_path: Path):
        path = _write(tmp_path, "bad.md", "---\nname: Bad\ncolour: red\n---\nBody")
        with pytest.raises(RoleValidationError, match="colour"):
            load_role(path)

    @pytest.mark.parametrize("name", ["-starts-with-dash", "has/slash", ""])
    def test_bad_name(self, tmp_path: Path, name: str):
        path = _write(tmp_path, "bad.md", f"---\nname: '{name}'\n---\nBody")
        with pytest.raises(RoleValidationError):
            load_role(path)

    @pytest.mark.parametrize(
        "header", ["interval: 0", "interval: -5", "maxTurns: 0", "permissionMode: yolo"]
    )
    def test_invalid_values(self, tmp_path: Path, header: str):
        path = _write(tmp_path, "bad.md", f"---\nname: Bad\n{header}\n---\nBody")
        with pytest.raises(RoleValidationError):
            load_role(path)

    def test_error_names_the_file(self, tmp_path: Path):
        path = _write(tmp_path, "broken.md", "no frontmatter here")
        with pytest.raises(RoleValidationError) as excinfo:
            load_role(path)
        assert "broken.md" in str(excinfo.value)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(RoleValidationError, match="cannot read"):
            load_role(tmp_path / "nope.md")


class TestSplitFrontmatter:
    def test_unterminated(self):
        with pytest.raises(RoleValidationError, match="unterminated"):
            split_frontmatter("---\nname: x\n")

    def test_invalid_yaml(self):
        with pytest.raises(RoleValidationError, match="invalid YAML"):
            split_frontmatter("---\nname: [unclosed\n---\n")

    def test_non_mapping(self):
        with pytest.raises(RoleValidationError, match="mapping"):
            split_frontmatter("---\n- a\n- b\n---\n")


class TestLoadAllRoles:
    def test_skips_invalid(self, tmp_path: Path):
        _write(tmp_path, "good.md", _VALID)
        _write(tmp_path, "bad.md", "---\nname: Bad\nbogus: 1\n---\n")
        _write(tmp_path, "notes.txt", "ignored")
        roles = load_all_roles(tmp_path)
        assert [r.name for r in roles] == ["Test Writer"]

    def test_missing_directory(self, tmp_path: Path):
        assert load_all_roles(tmp_path / "absent") == []

    def test_builtin_templates_are_valid(self):
        names = {role.slug for role in load_all_roles(BUILTIN_ROLES_DIR)}
        assert {"developer", "reviewer"} <= names
        assert len(names) == len(list(BUILTIN_ROLES_DIR.glob("*.md")))


class TestResolveRole:
    def test_by_slug_and_name(self, repo: Path):
        _write(get_project_roles_dir(repo), "test-writer.md", _VALID)
        assert resolve_role("test-writer", repo).name == "Test Writer"
        assert resolve_role("TEST WRITER", repo).slug == "test-writer"

    def test_project_role_wins(self, repo: Path):
        _write(get_project_roles_dir(repo), "developer.md", "---\nname: Developer\ninterval: 42\n---\nMine")
        role = resolve_role("developer", repo)
        assert role.frontmatter.interval == 42
        assert role.body == "Mine"

    def test_falls_back_to_builtin(self, repo: Path):
        role = resolve_role("reviewer", repo)
        assert role is not None
        assert role.file_path.parent == BUILTIN_ROLES_DIR.resolve()

    def test_not_found(self, repo: Path):
        assert resolve_role("nobody", repo) is None

    def test_grouped(self, repo: Path):
        _write(get_project_roles_dir(repo), "test-writer.md", _VALID)
        grouped = load_grouped_roles(repo)
        assert [r.slug for r in grouped["project"]] == ["test-writer"]
        assert grouped["builtin"]


class TestIntervalOverride:
    def test_valid(self):
        assert validate_interval_override("90") == 90.0
        assert validate_interval_override("0.5") == 0.5

    @pytest.mark.parametrize("value", ["abc", "0", "-3", ""])
    def test_invalid(self, value: str):
        with pytest.raises(RoleValidationError):
            validate_interval_override(value)

    def test_with_interval(self, role):
        updated = with_interval(role, 15)
        assert updated.frontmatter.interval == 15
        assert updated.name == role.name
        assert role.frontmatter.interval == 60
