"""rowshard CLI: console for inspecting and managing a rowshard database."""

from __future__ import annotations

import logging
from typing import Optional

import typer

from rowshard.cli import index, info, init_cmd, migrate, query, rows, table

app = typer.Typer(
    name="rowshard",
    help="rowshard CLI: inspect and manage a sharded flat-file record store.",
    no_args_is_help=True,
)


class _State:
    """Global CLI state shared across subcommands."""

    db: str = "rowshard.db"
    json_output: bool = False
    verbose: bool = False


state = _State()


def _version_callback(value: bool) -> None:
    if value:
        from rowshard import __version__

        print(f"rowshard {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    db: Optional[str] = typer.Option(
        None,
        "--db",
        envvar="ROWSHARD_DB",
        help="Database root directory (default: rowshard.db)",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output when supported"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging to stderr"),
    version: bool = typer.Option(
        False, "--version", help="Show version", is_eager=True, callback=_version_callback
    ),
) -> None:
    """Global options for all rowshard commands."""
    state.db = db or "rowshard.db"
    state.json_output = json_output
    state.verbose = verbose
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if ctx.invoked_subcommand is None and not version:
        print(ctx.get_help())
        raise typer.Exit()


# Register subcommand groups
app.add_typer(table.app, name="table", help="Table management commands")
app.add_typer(migrate.app, name="migrate", help="Generate, apply, and inspect migrations")

# Register top-level commands
app.command(name="init")(init_cmd.init_cmd)
app.command(name="insert")(rows.insert_cmd)
app.command(name="get")(rows.get_cmd)
app.command(name="delete")(rows.delete_cmd)
app.command(name="query")(query.query_cmd)
app.command(name="info")(info.info_cmd)
app.command(name="reindex")(index.reindex_cmd)


def main() -> None:
    """Entry point for the rowshard CLI."""
    app()
