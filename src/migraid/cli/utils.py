"""
CLI utility helpers: consoles, settings resolution and error output.
"""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from migraid.core.config import MigraidSettings, get_settings
from migraid.core.errors import MigraidError

console = Console()
err_console = Console(stderr=True)


def load_settings(ctx: typer.Context | None = None, **overrides: Any) -> MigraidSettings:
    """Resolve settings for a command.  ``None`` overrides are ignored."""
    environment = None
    if ctx is not None and isinstance(ctx.obj, dict):
        environment = ctx.obj.get("environment")
    return get_settings(environment=environment, overrides=overrides)


def fail(error: MigraidError, *, as_json: bool = False) -> None:
    """Print *error* and exit with status 1."""
    if as_json:
        console.print_json(json.dumps(error.to_dict(), default=str))
    else:
        err_console.print(f"[bold red]Error[/bold red] ({error.code}): {error.message}")
        if error.cause is not None:
            err_console.print(f"  [dim]caused by {type(error.cause).__name__}: {error.cause}[/dim]")
    raise typer.Exit(code=1)


def print_table(rows: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table."""
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(str(v) if v is not None else "" for v in row.values()))
    console.print(table)
