"""Tests for the claude CLI executor: argument building, result parsing, process control."""

from __future__ import annotations

import asyncio
import json
import stat
import sys
from pathlib import Path

import pytest

from devdemon.agent.claude_cli import (
    ClaudeCliExecutor,
    build_run_args,
    build_system_append,
    parse_result,
)
from devdemon.errors import ExecutionFailure, ExecutionInterrupted
from devdemon.roles.models import RoleConfig, RoleFrontmatter

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses /bin/sh scripts")

_SUCCESS = {
    "type": "result",
    "subtype": "success",
    "is_error": False,
    "result": "Added two tests.",
    "total_cost_usd": 0.042,
    "num_turns": 3,
}


def _script(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "fake-claude"
    path.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path


class TestBuildRunArgs:
    def test_basic(self, role: RoleConfig):
        args = build_run_args(command="claude", role=role)
        assert args[:2] == ["claude", "-p"]
        assert args[args.index("--output-format") + 1] == "json"
        assert args[args.index("--max-turns") + 1] == "5"
        assert args[args.index("--permission-mode") + 1] == "acceptEdits"
        assert args[args.index("--append-system-prompt") + 1] == "You test things."
        assert "--model" not in args
        assert "--allowedTools" not in args

    def test_model_and_tools(self, tmp_path: Path):
        role = RoleConfig(
            frontmatter=RoleFrontmatter(name="Dev", tools=["Read", "Edit"]),
            body="body",
            file_path=tmp_path / "dev.md",
        )
        args = build_run_args(command="claude", role=role, model="opus")
        assert args[args.index("--model") + 1] == "opus"
        assert args[args.index("--allowedTools") + 1] == "Read,Edit"

    def test_language_rule(self, role: RoleConfig):
        text = build_system_append(role, "Japanese")
        assert text.startswith("You test things.")
        assert "Always respond in Japanese" in text
        assert build_system_append(role) == "You test things."


class TestParseResult:
    def test_success(self):
        outcome = parse_result(json.dumps(_SUCCESS), exit_code=0, stderr="", duration_ms=1200)
        assert outcome.success
        assert outcome.result_text == "Added two tests."
        assert outcome.cost_usd == pytest.approx(0.042)
        assert outcome.num_turns == 3
        assert outcome.duration_ms == 1200

    def test_reported_error(self):
        payload = {
            "type": "result",
            "subtype": "error_max_turns",
            "is_error": True,
            "total_cost_usd": 0.5,
            "num_turns": 50,
        }
        outcome = parse_result(json.dumps(payload), exit_code=1, stderr="", duration_ms=10)
        assert not outcome.success
        assert outcome.errors == ["error_max_turns"]
        assert outcome.error_message == "error_max_turns"
        assert outcome.num_turns == 50

    def test_explicit_errors_list(self):
        payload = {"type": "result", "subtype": "error_during_execution", "errors": ["a", "b"]}
        outcome = parse_result(json.dumps(payload), exit_code=1, stderr="", duration_ms=10)
        assert outcome.error_message == "a; b"

    def test_message_list(self):
        messages = [{"type": "system", "subtype": "init"}, _SUCCESS]
        outcome = parse_result(json.dumps(messages), exit_code=0, stderr="", duration_ms=1)
        assert outcome.success

    def test_line_delimited_messages(self):
        stdout = "\n".join([json.dumps({"type": "assistant"}), "garbage", json.dumps(_SUCCESS)])
        outcome = parse_result(stdout, exit_code=0, stderr="", duration_ms=1)
        assert outcome.result_text == "Added two tests."

    def test_no_result_message(self):
        with pytest.raises(ExecutionFailure, match="code 2: not logged in"):
            parse_result("", exit_code=2, stderr="not logged in\n", duration_ms=1)

    def test_non_result_json(self):
        with pytest.raises(ExecutionFailure):
            parse_result(json.dumps({"type": "assistant"}), exit_code=0, stderr="", duration_ms=1)


class TestClaudeCliExecutor:
    @pytest.mark.asyncio
    async def test_missing_command(self, repo: Path, role: RoleConfig):
        executor = ClaudeCliExecutor(repo, command="devdemon-no-such-command-xyz")
        with pytest.raises(ExecutionFailure, match="not found"):
            await executor.execute("hello", role)

    @posix_only
    @pytest.mark.asyncio
    async def test_runs_in_repo(self, tmp_path: Path, repo: Path, role: RoleConfig):
        script = _script(
            tmp_path,
            "printf '{\"type\":\"result\",\"subtype\":\"success\",\"result\":\"%s\",\"num_turns\":1}' \"$(pwd)\"",
        )
        executor = ClaudeCliExecutor(repo, command=str(script))

        outcome = await executor.execute("hello", role)
        assert outcome.success
        assert Path(outcome.result_text).resolve() == repo.resolve()
        assert outcome.duration_ms >= 0

    @posix_only
    @pytest.mark.asyncio
    async def test_large_prompt_goes_through_stdin(self, tmp_path: Path, repo: Path, role: RoleConfig):
        """Prompts far beyond the per-argument limit (128 KiB on Linux) still run."""
        script = _script(
            tmp_path,
            "n=$(wc -c | tr -d ' ')\n"
            "printf '{\"type\":\"result\",\"subtype\":\"success\",\"result\":\"%s\",\"num_turns\":1}' \"$n\"",
        )
        executor = ClaudeCliExecutor(repo, command=str(script))

        outcome = await executor.execute("x" * 200_000, role)
        assert outcome.success
        assert outcome.result_text == "200000"

    @posix_only
    @pytest.mark.asyncio
    async def test_process_failure_without_result(self, tmp_path: Path, repo: Path, role: RoleConfig):
        script = _script(tmp_path, "echo 'boom' >&2\nexit 3")
        executor = ClaudeCliExecutor(repo, command=str(script))
        with pytest.raises(ExecutionFailure, match="code 3: boom"):
            await executor.execute("hello", role)

    @posix_only
    @pytest.mark.asyncio
    async def test_interrupt(self, tmp_path: Path, repo: Path, role: RoleConfig):
        script = _script(tmp_path, "exec sleep 30")
        executor = ClaudeCliExecutor(repo, command=str(script))

        pending = asyncio.create_task(executor.execute("hello", role))
        for _ in range(100):
            if executor._process is not None:
                break
            await asyncio.sleep(0.01)
        await executor.interrupt()

        with pytest.raises(ExecutionInterrupted):
            await asyncio.wait_for(pending, timeout=5)

    @pytest.mark.asyncio
    async def test_interrupt_when_idle(self, repo: Path):
        await ClaudeCliExecutor(repo).interrupt()
