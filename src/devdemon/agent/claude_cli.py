"""Subprocess-based executor that drives the ``claude`` CLI in print mode."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

from devdemon.agent.executor import ExecutionOutcome
from devdemon.config.constants import DEFAULT_EXECUTOR_COMMAND, EXECUTOR_KILL_GRACE_SECONDS
from devdemon.errors import ExecutionFailure, ExecutionInterrupted

if TYPE_CHECKING:
    from devdemon.roles.models import RoleConfig

_logger = logging.getLogger("devdemon.agent.claude_cli")


def build_system_append(role: RoleConfig, language: str | None = None) -> str:
    """Role body plus the optional response-language rule."""
    text = role.body
    if language:
        text += (
            f"\n\nIMPORTANT: Always respond in {language}. Use {language} for all "
            "explanations, comments, and communications."
        )
    return text


def build_run_args(
    *,
    command: str,
    role: RoleConfig,
    model: str | None = None,
    language: str | None = None,
) -> list[str]:
    """Print-mode argv. The prompt itself is written to stdin."""
    fm = role.frontmatter
    args = [
        command,
        "-p",
        "--output-format",
        "json",
        "--max-turns",
        str(fm.max_turns),
        "--permission-mode",
        fm.permission_mode,
        "--append-system-prompt",
        build_system_append(role, language),
    ]
    if model:
        args += ["--model", model]
    if fm.tools:
        args += ["--allowedTools", ",".join(fm.tools)]
    return args


def parse_result(stdout: str, *, exit_code: int, stderr: str, duration_ms: int) -> ExecutionOutcome:
    """Convert the CLI's JSON result message into an ExecutionOutcome.

    Raises ExecutionFailure when no result message can be found.
    """
    payload = _find_result_message(stdout)
    if payload is None:
        detail = stderr.strip() or stdout.strip() or "no output"
        raise ExecutionFailure(f"Executor exited with code {exit_code}: {detail[:500]}")

    cost = float(payload.get("total_cost_usd") or 0.0)
    turns = int(payload.get("num_turns") or 0)
    if payload.get("subtype") == "success" and not payload.get("is_error"):
        return ExecutionOutcome(
            success=True,
            result_text=payload.get("result"),
            cost_usd=cost,
            num_turns=turns,
            duration_ms=duration_ms,
        )

    errors = [str(err) for err in payload.get("errors") or []]
    if not errors:
        errors = [str(payload.get("result") or payload.get("subtype") or "unknown error")]
    return ExecutionOutcome(
        success=False,
        result_text=None,
        cost_usd=cost,
        num_turns=turns,
        duration_ms=duration_ms,
        errors=errors,
    )


def _find_result_message(stdout: str) -> dict[str, Any] | None:
    text = stdout.strip()
    if not text:
        return None
    candidates: list[Any] = []
    try:
        candidates.append(json.loads(text))
    except json.JSONDecodeError:
        # stream-json style output: one message per line
        for line in text.splitlines():
            with contextlib.suppress(json.JSONDecodeError):
                candidates.append(json.loads(line))

    for item in reversed(candidates):
        messages = item if isinstance(item, list) else [item]
        for message in reversed(messages):
            if isinstance(message, dict) and message.get("type") == "result":
                return message
    return None


class ClaudeCliExecutor:
    """Runs each task as one ``claude -p`` process inside the repository.

    Only one process is alive at a time. ``interrupt()`` terminates it (and
    kills it after a grace period), which makes the pending ``execute()``
    raise ExecutionInterrupted. The prompt is fed on stdin.
    """

    def __init__(
        self,
        repo_path: Path,
        command: str = DEFAULT_EXECUTOR_COMMAND,
        model: str | None = None,
        language: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._repo_path = repo_path
        self._command = command
        self._model = model
        self._language = language
        self._logger = logger or _logger
        self._process: asyncio.subprocess.Process | None = None
        self._interrupted = False

    async def execute(self, prompt: str, role: RoleConfig) -> ExecutionOutcome:
        args = build_run_args(
            command=self._command,
            role=role,
            model=self._model,
            language=self._language,
        )
        self._interrupted = False
        started = time.monotonic()
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(self._repo_path),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise ExecutionFailure(f"Executor command not found: {self._command}") from exc
        except OSError as exc:
            raise ExecutionFailure(f"Executor failed to start: {exc}") from exc

        self._process = process
        self._logger.debug("Started executor pid=%s for role %s", process.pid, role.name)
        try:
            stdout, stderr = await process.communicate(prompt.encode("utf-8"))
        except asyncio.CancelledError:
            await self._terminate(process)
            raise
        finally:
            self._process = None

        duration_ms = int((time.monotonic() - started) * 1000)
        if self._interrupted:
            raise ExecutionInterrupted("Task was interrupted")

        return parse_result(
            stdout.decode("utf-8", errors="replace"),
            exit_code=process.returncode if process.returncode is not None else -1,
            stderr=stderr.decode("utf-8", errors="replace"),
            duration_ms=duration_ms,
        )

    async def interrupt(self) -> None:
        process = self._process
        if process is None or process.returncode is not None:
            return
        self._interrupted = True
        self._logger.info("Interrupting executor pid=%s", process.pid)
        await self._terminate(process)

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        with contextlib.suppress(ProcessLookupError):
            process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=EXECUTOR_KILL_GRACE_SECONDS)
        except TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
