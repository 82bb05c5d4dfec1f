"""DevDemon CLI — the main entry point."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shutil
import signal
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from devdemon import __version__
from devdemon.cli.config_commands import app as config_app
from devdemon.cli.render import format_event, history_table, stats_lines, truncate
from devdemon.cli.roles_commands import app as roles_app
from devdemon.config.constants import MAX_TASK_PROMPT_LENGTH, PROGRESS_FILE_NAME
from devdemon.config.paths import (
    ensure_devdemon_dir,
    get_log_path,
    get_project_roles_dir,
    get_queue_path,
    get_state_path,
)
from devdemon.errors import CapacityExceededError, RoleValidationError

app = typer.Typer(
    name="devdemon",
    help="Always-on coding agent that keeps working on your repository.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.add_typer(roles_app, name="roles")
app.add_typer(config_app, name="config")
console = Console()

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_PROGRESS_TEMPLATE = """\
# Progress Notes

Notes the agent keeps between cycles: what was tried, what failed, what is next.
"""


@app.callback(invoke_without_command=True)
def version_callback(
    version: bool = typer.Option(False, "--version", help="Show version"),
):
    if version:
        console.print(f"devdemon [dim]v{__version__}[/dim]")
        raise typer.Exit()


@app.command()
def init(
    repo: Path = typer.Option(None, "--repo", help="Repository to work on (default: current directory)"),
):
    """Create the .devdemon directory with default roles and settings."""
    from devdemon.config.settings import Settings
    from devdemon.roles.loader import BUILTIN_ROLES_DIR

    repo = (repo or Path.cwd()).resolve()
    data_dir = ensure_devdemon_dir(repo)
    roles_dir = get_project_roles_dir(repo)
    roles_dir.mkdir(parents=True, exist_ok=True)

    copied = []
    for template in sorted(BUILTIN_ROLES_DIR.glob("*.md")):
        dest = roles_dir / template.name
        if not dest.exists():
            shutil.copy2(template, dest)
            copied.append(template.name)

    progress = data_dir / PROGRESS_FILE_NAME
    if not progress.exists():
        progress.write_text(_PROGRESS_TEMPLATE, encoding="utf-8")

    if not Settings.config_exists(repo):
        Settings(repo_path=repo).save()

    console.print(f"  [green]✓[/green] Initialized [bold]{data_dir}[/bold]")
    for name in copied:
        console.print(f"  [dim]Added role {name}[/dim]")
    console.print("  [dim]Run 'devdemon start' to begin.[/dim]")


@app.command()
def start(
    role: str = typer.Option(None, "--role", "-r", help="Role name or file stem"),
    repo: Path = typer.Option(None, "--repo", help="Repository to work on (default: current directory)"),
    interval: str = typer.Option(None, "--interval", "-i", help="Override tick interval (seconds)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would run, then exit"),
    no_input: bool = typer.Option(False, "--no-input", help="Don't read instructions from stdin"),
):
    """Start the work loop. Type an instruction and press Enter to queue it."""
    from devdemon.roles.loader import validate_interval_override, with_interval

    repo = (repo or Path.cwd()).resolve()
    selected = _select_role(role, repo)
    if interval is not None:
        try:
            selected = with_interval(selected, validate_interval_override(interval))
        except RoleValidationError as exc:
            console.print(f"[red]{escape(str(exc))}[/red]")
            raise typer.Exit(1)

    ensure_devdemon_dir(repo)
    daemon = _build_daemon(selected, repo)

    if dry_run:
        _show_dry_run(daemon)
        return

    _configure_logging(repo, verbose)
    console.print("[dim]Type an instruction and press Enter to queue it. Ctrl+C to stop.[/dim]")
    asyncio.run(_run_daemon(daemon, read_input=not no_input))


@app.command()
def status(
    repo: Path = typer.Option(None, "--repo", help="Repository to work on (default: current directory)"),
):
    """Show the current task, queue depth, and totals."""
    from devdemon.state.store import LifecycleStore
    from devdemon.tasks.queue import TaskQueue

    repo = (repo or Path.cwd()).resolve()
    if not get_state_path(repo).exists():
        console.print("[yellow]No state found.[/yellow] Run [bold]devdemon start[/bold] first.")
        raise typer.Exit(1)

    state = LifecycleStore(path=get_state_path(repo), repo_path=repo)
    queue = TaskQueue(path=get_queue_path(repo))
    role = state.current_role

    console.print()
    console.print(f"  [bold]Repository:[/bold]   {repo}")
    console.print(f"  [bold]Session:[/bold]      {state.session_id}")
    console.print(f"  [bold]Role:[/bold]         {role.name or '[dim]none[/dim]'}")
    current = state.current_task
    if current is not None:
        console.print(
            f"  [bold]Running:[/bold]      {current.id} ({current.kind}) since "
            f"{current.started_at:%Y-%m-%d %H:%M:%S}"
        )
    else:
        console.print("  [bold]Running:[/bold]      [dim]idle[/dim]")
    console.print(f"  [bold]Queued:[/bold]       {len(queue)}")
    for line in stats_lines(state.get_stats()):
        console.print(line)
    console.print()


@app.command()
def history(
    repo: Path = typer.Option(None, "--repo", help="Repository to work on (default: current directory)"),
    count: int = typer.Option(10, "--count", "-n", help="Number of entries to show"),
):
    """Show the most recent finished tasks."""
    from devdemon.state.store import LifecycleStore

    repo = (repo or Path.cwd()).resolve()
    state = LifecycleStore(path=get_state_path(repo), repo_path=repo)
    entries = state.get_recent_history(count)
    if not entries:
        console.print("[dim]No tasks have finished yet.[/dim]")
        raise typer.Exit()

    console.print(history_table(entries))
    console.print(f"\n  [dim]{len(entries)} of {state.history_size} entries.[/dim]\n")


# -- Helpers -------------------------------------------------------------------


def _select_role(name: str | None, repo: Path):
    """Resolve --role, or pick interactively when several roles exist."""
    from devdemon.roles.loader import load_grouped_roles, resolve_role

    if name:
        found = resolve_role(name, repo)
        if found is None:
            console.print(f"[red]Role '{name}' not found.[/red] See [bold]devdemon roles list[/bold].")
            raise typer.Exit(1)
        return found

    grouped = load_grouped_roles(repo)
    roles = grouped["project"] or grouped["builtin"]
    if not roles:
        console.print("[red]No roles found.[/red] Run [bold]devdemon init[/bold] first.")
        raise typer.Exit(1)
    if len(roles) == 1:
        console.print(f"Auto-selected role: [cyan]{roles[0].name}[/cyan]")
        return roles[0]

    console.print("\n[bold]Available roles:[/bold]")
    for index, candidate in enumerate(roles, start=1):
        description = candidate.frontmatter.description
        desc = f" - {escape(description)}" if description else ""
        console.print(f"  {index}. {candidate.name}{desc}")
    choice = typer.prompt("\nSelect a role (number)", type=int)
    if not 1 <= choice <= len(roles):
        console.print("[red]Invalid selection.[/red]")
        raise typer.Exit(1)
    return roles[choice - 1]


def _build_daemon(role, repo: Path):
    """Wire the stores, prompt builder, and executor for one repository."""
    from devdemon.agent.claude_cli import ClaudeCliExecutor
    from devdemon.agent.progress import ProgressNotes
    from devdemon.agent.prompt_builder import PromptBuilder
    from devdemon.config.paths import get_devdemon_dir
    from devdemon.config.settings import get_settings
    from devdemon.daemon.daemon import Daemon
    from devdemon.state.store import LifecycleStore
    from devdemon.tasks.queue import TaskQueue

    settings = get_settings(repo)
    queue = TaskQueue(path=get_queue_path(repo), max_size=settings.daemon.max_queue_size)
    state = LifecycleStore(path=get_state_path(repo), repo_path=repo)
    prompt_builder = PromptBuilder(role, state, ProgressNotes(get_devdemon_dir(repo)))
    executor = ClaudeCliExecutor(
        repo,
        command=settings.executor.command,
        model=settings.model,
        language=settings.language,
    )
    return Daemon(
        role=role,
        repo_path=repo,
        executor=executor,
        queue=queue,
        state=state,
        prompt_builder=prompt_builder,
        config=settings.daemon,
    )


def _show_dry_run(daemon) -> None:
    role = daemon.role
    console.print()
    console.print(f"  [bold]Role:[/bold]      {role.name} ({role.file_path})")
    console.print(f"  [bold]Interval:[/bold]  {daemon.interval}s")
    console.print(f"  [bold]Max turns:[/bold] {role.frontmatter.max_turns}")
    console.print(f"  [bold]Queued:[/bold]    {daemon.get_queue_depth()}")
    console.print(f"  [bold]Repo:[/bold]      {daemon.repo_path}")
    console.print("\n[dim]Dry run — nothing was executed.[/dim]\n")


def _configure_logging(repo: Path, verbose: bool) -> None:
    """Send devdemon logs to .devdemon/debug.log."""
    handler = logging.FileHandler(get_log_path(repo), encoding="utf-8")
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    root = logging.getLogger("devdemon")
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    # APScheduler is chatty at INFO about every one-shot tick job
    logging.getLogger("apscheduler").setLevel(logging.DEBUG if verbose else logging.WARNING)


async def _run_daemon(daemon, read_input: bool = True) -> None:
    """Run the daemon with live event output and stdin instructions."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, lambda: asyncio.create_task(daemon.stop()))

    helpers = [asyncio.create_task(_render_events(daemon), name="devdemon-render")]
    if read_input:
        helpers.append(asyncio.create_task(_read_instructions(daemon), name="devdemon-input"))

    try:
        await daemon.start()
    finally:
        for helper in helpers:
            helper.cancel()
        for helper in helpers:
            with contextlib.suppress(asyncio.CancelledError):
                await helper
        # Flush whatever the renderer did not get to
        while (event := daemon.events.get_nowait()) is not None:
            line = format_event(event)
            if line:
                console.print(line)


async def _render_events(daemon) -> None:
    async for event in daemon.events:
        line = format_event(event)
        if line:
            console.print(line)


async def _stdin_lines(stream=None):
    """Yield decoded lines from stdin until it closes.

    Pipes and terminals are read through a StreamReader. Regular files (as in
    ``devdemon start < instructions.txt``) cannot be registered with the event
    loop, so those are read line by line in the default executor.
    """
    stream = stream or sys.stdin
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    try:
        await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), stream)
    except ValueError:
        while line := await loop.run_in_executor(None, stream.readline):
            yield line
        return

    while raw := await reader.readline():
        yield raw.decode("utf-8", errors="replace")


async def _read_instructions(daemon, stream=None) -> None:
    """Queue each non-empty stdin line as a user instruction."""
    async for raw in _stdin_lines(stream):
        line = raw.strip()
        if not line:
            continue
        if line in ("/quit", "/exit"):
            await daemon.stop()
            return
        if line == "/status":
            for stats_line in stats_lines(daemon.get_stats()):
                console.print(stats_line)
            console.print(f"  [bold]Queued:[/bold]       {daemon.get_queue_depth()}")
            continue
        handle_instruction(daemon, line)


def handle_instruction(daemon, instruction: str) -> bool:
    """Queue one instruction, reporting a full queue instead of raising."""
    try:
        task = daemon.enqueue_user_task(instruction)
    except CapacityExceededError as exc:
        console.print(f"[red]{exc}.[/red] Instruction not queued.")
        return False
    if daemon.is_busy:
        console.print(
            f"  [dim]Queued {task.id} ({escape(truncate(instruction, MAX_TASK_PROMPT_LENGTH))}); "
            "it runs after the current task.[/dim]"
        )
    return True


if __name__ == "__main__":
    app()
