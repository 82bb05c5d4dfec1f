"""CLI commands for inspecting and creating roles."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

app = typer.Typer(
    name="roles",
    help="Inspect and create the roles the daemon can run as.",
    no_args_is_help=True,
)
console = Console()


@app.command("list")
def list_roles(
    repo: Path = typer.Option(None, "--repo", help="Repository to inspect (default: current directory)"),
):
    """List built-in and project roles."""
    from devdemon.roles.loader import load_grouped_roles

    grouped = load_grouped_roles((repo or Path.cwd()).resolve())
    if not grouped["builtin"] and not grouped["project"]:
        console.print("[dim]No roles found.[/dim]")
        raise typer.Exit()

    table = Table(title="Roles", show_lines=False)
    table.add_column("Name", style="bold")
    table.add_column("Source", style="dim")
    table.add_column("Interval", justify="right")
    table.add_column("Max turns", justify="right")
    table.add_column("Permissions")
    table.add_column("Description", max_width=40)

    for source in ("project", "builtin"):
        for role in grouped[source]:
            fm = role.frontmatter
            table.add_row(
                role.name,
                source,
                f"{fm.interval:g}s",
                str(fm.max_turns),
                fm.permission_mode,
                escape(fm.description or ""),
            )

    console.print(table)


@app.command("show")
def show_role(
    name: str = typer.Argument(help="Role name or file stem"),
    repo: Path = typer.Option(None, "--repo", help="Repository to inspect (default: current directory)"),
):
    """Print a role's settings and prompt body."""
    from devdemon.roles.loader import resolve_role

    role = resolve_role(name, (repo or Path.cwd()).resolve())
    if role is None:
        console.print(f"[red]Role '{escape(name)}' not found.[/red]")
        raise typer.Exit(1)

    fm = role.frontmatter
    console.print(f"[bold]{escape(role.name)}[/bold] [dim]({escape(str(role.file_path))})[/dim]")
    console.print(f"  Interval: {fm.interval:g}s  Max turns: {fm.max_turns}  "
                  f"Permissions: {fm.permission_mode}")
    if fm.tools:
        console.print(f"  Tools: {', '.join(fm.tools)}")
    if fm.tags:
        console.print(f"  Tags: {', '.join(fm.tags)}")
    console.print()
    console.print(role.body, markup=False)


def _split_list(raw: str) -> list[str] | None:
    items = [item.strip() for item in raw.split(",") if item.strip()]
    return items or None


@app.command("create")
def create_role(
    name: str = typer.Argument(help="Display name of the new role"),
    repo: Path = typer.Option(None, "--repo", help="Repository to add the role to (default: current directory)"),
):
    """Create a project role in .devdemon/roles from a few prompts."""
    from devdemon.config.constants import (
        DEFAULT_INTERVAL_SECONDS,
        DEFAULT_MAX_TURNS,
        DEFAULT_PERMISSION_MODE,
    )
    from devdemon.config.paths import get_project_roles_dir
    from devdemon.errors import RoleValidationError
    from devdemon.roles.loader import validate_frontmatter
    from devdemon.roles.writer import default_role_body, role_file_path, write_role

    roles_dir = get_project_roles_dir((repo or Path.cwd()).resolve())
    try:
        validate_frontmatter({"name": name})
    except RoleValidationError as exc:
        console.print(f"[red]Invalid role name:[/red] {escape(str(exc))}")
        raise typer.Exit(1)

    path = role_file_path(roles_dir, name)
    if path.exists():
        console.print(f"[red]Role file already exists:[/red] {escape(str(path))}")
        raise typer.Exit(1)

    console.print(f"Creating role [bold]{escape(name)}[/bold]\n")
    description = typer.prompt("Description (optional)", default="", show_default=False)
    interval = typer.prompt("Interval in seconds", default=str(DEFAULT_INTERVAL_SECONDS))
    max_turns = typer.prompt("Max turns", default=str(DEFAULT_MAX_TURNS))
    tools = typer.prompt("Tools (comma-separated, optional)", default="", show_default=False)
    permission_mode = typer.prompt(
        "Permission mode (default/acceptEdits/bypassPermissions)",
        default=DEFAULT_PERMISSION_MODE,
    )
    tags = typer.prompt("Tags (comma-separated, optional)", default="", show_default=False)

    data = {
        "name": name,
        "interval": interval.strip(),
        "maxTurns": max_turns.strip(),
        "tools": _split_list(tools),
        "permissionMode": permission_mode.strip(),
        "description": description.strip() or None,
        "tags": _split_list(tags),
    }
    try:
        frontmatter = validate_frontmatter(data)
    except RoleValidationError as exc:
        console.print(f"[red]Invalid role:[/red] {escape(str(exc))}")
        raise typer.Exit(1)

    try:
        path = write_role(roles_dir, frontmatter, default_role_body(frontmatter))
    except FileExistsError:
        console.print(f"[red]Role file already exists:[/red] {escape(str(path))}")
        raise typer.Exit(1)

    console.print(f"[green]Role created:[/green] {escape(str(path))}")
    console.print("[dim]Edit the prompt body to describe what this role should do.[/dim]")
