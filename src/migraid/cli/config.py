"""
CLI ``migraid config``: configuration inspection.
"""

from __future__ import annotations

import typer
from rich.table import Table

from migraid.cli.utils import console, fail, load_settings
from migraid.core.errors import MigraidError

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    ctx: typer.Context,
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json, env"),
) -> None:
    """Show current configuration."""
    try:
        settings = load_settings(ctx)
    except MigraidError as e:
        fail(e)

    if format == "json":
        console.print_json(settings.model_dump_json())
        return

    if format == "env":
        for key, value in sorted(settings.model_dump().items()):
            console.print(f"MIGRAID_{key.upper()}={value}", highlight=False)
        return

    console.print(f"[bold]Environment:[/bold] {settings.environment or '<unset>'}")
    console.print(f"[bold]Database:[/bold] {settings.mongo_uri}")
    artifacts = "required" if settings.requires_compiled_artifacts else "not required"
    console.print(f"[bold]Compiled artifacts:[/bold] {artifacts}")

    env_files = getattr(settings, "_env_files_loaded", [])
    if env_files:
        console.print("[bold]Env Files Loaded:[/bold]")
        for f in env_files:
            console.print(f"  • {f}")

    table = Table()
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in settings.model_dump().items():
        table.add_row(key, str(value))
    console.print(table)
