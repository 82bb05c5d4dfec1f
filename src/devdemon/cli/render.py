"""Rich formatting for daemon events and history."""

from __future__ import annotations

from rich.markup import escape
from rich.table import Table

from devdemon.config.constants import MAX_RESULT_PREVIEW_LENGTH, MAX_TASK_PROMPT_LENGTH
from devdemon.daemon.events import DaemonEvent, EventType
from devdemon.state.models import HistoryEntry, HistoryStatus, Stats

_STATUS_STYLE = {
    HistoryStatus.COMPLETED: "green",
    HistoryStatus.FAILED: "red",
    HistoryStatus.INTERRUPTED: "yellow",
}


def truncate(text: str, limit: int) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[: limit - 3] + "..."


def _text(value) -> str:
    # Payloads, results and errors are arbitrary text; never let them act as markup
    return escape(str(value)) if value is not None else ""


def format_event(event: DaemonEvent) -> str | None:
    """One console line (rich markup) for an event, or None to stay quiet."""
    data = event.data
    time = event.at.strftime("%H:%M:%S")
    prefix = f"[dim]{time}[/dim]"
    task = f"{_text(data.get('kind'))} task {_text(data.get('task_id'))}"

    if event.type == EventType.STARTED:
        return (
            f"{prefix} [bold]DevDemon started[/bold] — role [cyan]{_text(data.get('role'))}[/cyan], "
            f"every {data.get('interval')}s in {_text(data.get('repo_path'))}"
        )
    if event.type == EventType.STOPPED:
        return f"{prefix} [bold]DevDemon stopped[/bold]"
    if event.type == EventType.TASK_ENQUEUED:
        payload = _text(truncate(data.get("payload", ""), MAX_TASK_PROMPT_LENGTH))
        return f"{prefix} [blue]queued[/blue] {_text(data.get('task_id'))}: {payload}"
    if event.type == EventType.CYCLE_START:
        return f"{prefix} [bold]cycle #{data.get('cycle')}[/bold] starting"
    if event.type == EventType.CYCLE_COMPLETE:
        result = _text(truncate(data.get("result") or "(no output)", MAX_RESULT_PREVIEW_LENGTH))
        seconds = (data.get("duration_ms") or 0) / 1000
        return (
            f"{prefix} [green]completed[/green] {task} "
            f"({data.get('num_turns')} turns, {seconds:.1f}s, ${data.get('cost_usd', 0.0):.4f})\n"
            f"  {result}"
        )
    if event.type == EventType.CYCLE_ERROR:
        return f"{prefix} [red]failed[/red] {task}: {_text(data.get('error'))}"
    if event.type == EventType.CYCLE_INTERRUPTED:
        return f"{prefix} [yellow]interrupted[/yellow] task {_text(data.get('task_id'))}"
    if event.type == EventType.MAX_ERRORS_REACHED:
        return (
            f"{prefix} [bold red]{data.get('count')} consecutive failures[/bold red] — "
            "check .devdemon/debug.log"
        )
    return None


def history_table(entries: list[HistoryEntry]) -> Table:
    table = Table(title="Task History", show_lines=False)
    table.add_column("ID", style="dim", max_width=12)
    table.add_column("Kind")
    table.add_column("Status")
    table.add_column("Finished")
    table.add_column("Turns", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Task", max_width=40)

    for entry in entries:
        style = _STATUS_STYLE[entry.status]
        table.add_row(
            _text(entry.id),
            str(entry.kind),
            f"[{style}]{entry.status}[/{style}]",
            entry.completed_at.strftime("%Y-%m-%d %H:%M"),
            str(entry.turn_count),
            f"${entry.cost_units:.4f}",
            _text(truncate(entry.payload, 40)),
        )
    return table


def stats_lines(stats: Stats) -> list[str]:
    return [
        f"  [bold]Cycles:[/bold]       {stats.total_cycles}",
        f"  [bold]Tasks:[/bold]        {stats.total_tasks} "
        f"([cyan]{stats.user_tasks}[/cyan] user, {stats.autonomous_tasks} autonomous)",
        f"  [bold]Failed:[/bold]       {stats.failed_tasks}",
        f"  [bold]Interrupted:[/bold]  {stats.interrupted_tasks}",
        f"  [bold]Total cost:[/bold]   ${stats.total_cost_usd:.4f}",
    ]
