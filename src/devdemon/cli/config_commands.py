"""CLI commands for per-repository settings."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

app = typer.Typer(
    name="config",
    help="Show or change settings stored in .devdemon/settings.json.",
    no_args_is_help=True,
)
console = Console()


def _load(repo: Path | None):
    from devdemon.config.settings import get_settings

    return get_settings((repo or Path.cwd()).resolve())


@app.command("show")
def show_config(
    repo: Path = typer.Option(None, "--repo", help="Repository (default: current directory)"),
):
    """Print the effective settings."""
    settings = _load(repo)
    console.print(f"  [bold]Language:[/bold]  {settings.language or '[dim]default[/dim]'}")
    console.print(f"  [bold]Model:[/bold]     {settings.model or '[dim]default[/dim]'}")
    console.print(f"  [bold]Executor:[/bold]  {settings.executor.command}")
    console.print(f"  [bold]Queue max:[/bold] {settings.daemon.max_queue_size}")
    console.print(f"  [dim]{settings.settings_path}[/dim]")


@app.command("set")
def set_config(
    key: str = typer.Argument(help="Setting name (language, model)"),
    value: str = typer.Argument(help="New value"),
    repo: Path = typer.Option(None, "--repo", help="Repository (default: current directory)"),
):
    """Change a setting."""
    from devdemon.config.settings import EDITABLE_KEYS

    if key not in EDITABLE_KEYS:
        console.print(f"[red]Unknown setting '{key}'.[/red] Valid keys: {', '.join(EDITABLE_KEYS)}")
        raise typer.Exit(1)

    settings = _load(repo)
    setattr(settings, key, value)
    settings.save()
    console.print(f"  [green]✓[/green] Set [bold]{key}[/bold] = {escape(value)}")


@app.command("unset")
def unset_config(
    key: str = typer.Argument(help="Setting name (language, model)"),
    repo: Path = typer.Option(None, "--repo", help="Repository (default: current directory)"),
):
    """Reset a setting to its default."""
    from devdemon.config.settings import EDITABLE_KEYS

    if key not in EDITABLE_KEYS:
        console.print(f"[red]Unknown setting '{key}'.[/red] Valid keys: {', '.join(EDITABLE_KEYS)}")
        raise typer.Exit(1)

    settings = _load(repo)
    setattr(settings, key, None)
    settings.save()
    console.print(f"  [green]✓[/green] Reset [bold]{key}[/bold] to default")
