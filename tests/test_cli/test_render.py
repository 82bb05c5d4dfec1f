"""Tests for rich rendering of events and history."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from rich.console import Console

from devdemon.cli.render import format_event, history_table, stats_lines, truncate
from devdemon.daemon.events import DaemonEvent, EventType
from devdemon.state.models import HistoryEntry, HistoryStatus, Stats
from devdemon.tasks.models import TaskKind

BRACKETED = "strip the trailing [/] from paths and keep [bold] literal"


def _render(renderable) -> str:
    console = Console(width=200, record=True)
    console.print(renderable)
    return console.export_text()


def test_truncate():
    assert truncate("short", 10) == "short"
    assert truncate("a  b\n c", 10) == "a b c"
    assert truncate("x" * 20, 10) == "xxxxxxx..."


@pytest.mark.parametrize(
    "event_type, data",
    [
        (EventType.TASK_ENQUEUED, {"task_id": "abc", "payload": BRACKETED}),
        (
            EventType.CYCLE_COMPLETE,
            {"task_id": "abc", "kind": "user", "result": BRACKETED, "num_turns": 1},
        ),
        (EventType.CYCLE_ERROR, {"task_id": "abc", "kind": "user", "error": BRACKETED}),
    ],
)
def test_bracketed_text_is_printed_literally(event_type, data):
    line = format_event(DaemonEvent(type=event_type, data=data))
    text = _render(line)
    assert "[/]" in text
    assert "[bold]" in text


def test_started_event():
    event = DaemonEvent(
        type=EventType.STARTED,
        data={"role": "Developer", "interval": 300, "repo_path": "/work/[repo]"},
    )
    text = _render(format_event(event))
    assert "Developer" in text
    assert "/work/[repo]" in text


def test_unknown_event_is_quiet():
    assert format_event(DaemonEvent(type=EventType.CYCLE_START, data={"cycle": 2})) is not None
    assert format_event(DaemonEvent(type="something_else")) is None


def test_history_table_escapes_payload():
    now = datetime.now(UTC)
    entry = HistoryEntry(
        id="abc123",
        kind=TaskKind.USER,
        payload="fix [/] parsing",
        status=HistoryStatus.FAILED,
        started_at=now,
        completed_at=now,
    )
    text = _render(history_table([entry]))
    assert "fix [/] parsing" in text
    assert "failed" in text


def test_stats_lines():
    stats = Stats(total_cycles=3, total_tasks=3, user_tasks=1, autonomous_tasks=2, failed_tasks=1)
    text = _render("\n".join(stats_lines(stats)))
    assert "Cycles:       3" in text
    assert "1 user, 2 autonomous" in text
