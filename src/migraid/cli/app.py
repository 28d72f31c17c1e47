"""
Root Typer application for the migraid CLI.

Commands::

    migraid create [NAME]    scaffold a new migration file
    migraid up               run all pending migrations
    migraid status           list applied / pending migrations
    migraid config show      print the effective settings
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
from typer import Typer

from migraid.cli.config import app as config_app
from migraid.cli.utils import console, err_console, fail, load_settings, print_table
from migraid.core.config import MigraidSettings, check_environment, get_settings, is_beta_directory
from migraid.core.connection import connect
from migraid.core.errors import MigraidError, MissingMigrationNameError
from migraid.core.logging import configure_logging
from migraid.core.migrations import (
    AppliedSetStore,
    FileMigrationLoader,
    MigrationRunner,
    MigrationSource,
    MigrationStatus,
    create_migration_file,
)

app = Typer(
    name="migraid",
    help="migraid: ordered, resumable MongoDB migrations.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(config_app, name="config", help="Configuration inspection.")


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("migraid")
        except PackageNotFoundError:
            from migraid import __version__ as v
        typer.echo(f"migraid {v}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    environment: str | None = typer.Option(
        None, "--env", "-e", help="Environment name (overrides MIGRAID_ENV)."
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR"),
    log_format: str | None = typer.Option(None, "--log-format", help="console or json"),
) -> None:
    """migraid CLI: create and run migrations."""
    ctx.obj = {"environment": environment}
    try:
        settings = get_settings(environment=environment)
    except MigraidError as e:
        fail(e)
    configure_logging(
        level=log_level or settings.log_level,
        json_format=(log_format or settings.log_format) == "json",
    )

    cwd = Path.cwd()
    if is_beta_directory(cwd):
        err_console.print("Detected BETA directory. This is from where the scripts will be loaded.")
    try:
        check_environment(cwd, settings.environment)
    except MigraidError as e:
        fail(e)


# ── create ───────────────────────────────────────────────────────────────


@app.command()
def create(
    ctx: typer.Context,
    name: str | None = typer.Argument(None, help="Migration name, e.g. 'Add users'"),
    directory: str | None = typer.Option(None, "--directory", help="Target directory"),
) -> None:
    """Create a migration file."""
    try:
        settings = load_settings(ctx, sources_directory=directory)
        path = create_migration_file(name, settings.sources_directory)
    except MissingMigrationNameError as e:
        err_console.print(e.message)
        typer.echo(ctx.get_help())
        raise typer.Exit(code=1)
    except MigraidError as e:
        fail(e)
    console.print(f"Created migration file {path}.")


# ── up ───────────────────────────────────────────────────────────────────


def _print_progress(event: str, file_name: str) -> None:
    if event == "started":
        console.print(f"== Migrating '{file_name}'...")
    elif event == "applied":
        console.print(f"== Migrated '{file_name}'.")
    elif event == "failed":
        err_console.print(f"[bold red]== Failed '{file_name}'.[/bold red]")


def _build_runner(settings: MigraidSettings, conn) -> MigrationRunner:
    return MigrationRunner(
        MigrationSource(
            settings.dist_directory,
            source_suffix=settings.source_suffix,
            artifact_suffix=settings.artifact_suffix,
        ),
        AppliedSetStore.from_connection(conn, settings.collection),
        FileMigrationLoader(settings.dist_directory),
        conn.database,
        on_event=_print_progress,
    )


async def _run_up(settings: MigraidSettings) -> list[str]:
    conn = await connect(settings)
    try:
        runner = _build_runner(settings, conn)
        applied = await runner.reconcile()
        if not applied:
            console.print(
                "No new migration scripts found. The last added migration script "
                f"was '{runner.last_applied}'. Exiting."
            )
        return applied
    finally:
        await conn.close()


@app.command()
def up(
    ctx: typer.Context,
    database: str | None = typer.Option(None, "--database", "-d", help="Database name"),
    host: str | None = typer.Option(None, "--host", help="Database host"),
    port: int | None = typer.Option(None, "--port", help="Database port"),
    directory: str | None = typer.Option(None, "--directory", help="Migration directory"),
) -> None:
    """Execute all migrations that were not executed on this database."""
    try:
        settings = load_settings(
            ctx, database=database, host=host, port=port, dist_directory=directory
        )
        applied = asyncio.run(_run_up(settings))
    except MigraidError as e:
        if e.applied:
            err_console.print(f"Applied before the failure: {', '.join(e.applied)}")
        fail(e)

    if applied:
        console.print(f"Applied {len(applied)} migration(s).")


# ── status ───────────────────────────────────────────────────────────────


async def _run_status(settings: MigraidSettings) -> MigrationStatus:
    conn = await connect(settings)
    try:
        return await _build_runner(settings, conn).status()
    finally:
        await conn.close()


@app.command()
def status(
    ctx: typer.Context,
    database: str | None = typer.Option(None, "--database", "-d", help="Database name"),
    host: str | None = typer.Option(None, "--host", help="Database host"),
    port: int | None = typer.Option(None, "--port", help="Database port"),
    directory: str | None = typer.Option(None, "--directory", help="Migration directory"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show applied, pending and orphaned migrations."""
    try:
        settings = load_settings(
            ctx, database=database, host=host, port=port, dist_directory=directory
        )
        result = asyncio.run(_run_status(settings))
    except MigraidError as e:
        fail(e, as_json=json_out)

    rows = [
        {"migration": r.id, "state": "orphaned" if r.id in result.orphaned else "applied", "applied_at": r.applied_at}
        for r in result.applied
    ] + [{"migration": name, "state": "pending", "applied_at": None} for name in result.pending]

    if json_out:
        console.print_json(json.dumps({"up_to_date": result.up_to_date, "migrations": rows}, default=str))
        return

    print_table(rows, title="Migrations")
    if result.up_to_date:
        console.print("[green]Database is up to date.[/green]")
    else:
        console.print(f"[yellow]{len(result.pending)} pending migration(s).[/yellow]")
