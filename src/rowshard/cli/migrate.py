"""rowshard migrate: record and apply schema migrations."""

from __future__ import annotations

from typing import Any, Optional

import typer

from rowshard.cli import _exitcodes as ec
from rowshard.cli._filters import parse_json_arg
from rowshard.cli._output import print_error, print_object, print_table
from rowshard.cli._storage import fail, open_database
from rowshard.errors import MigrationPartialFailureError, RowshardError

app = typer.Typer(no_args_is_help=True)


@app.command(name="generate")
def migrate_generate_cmd(
    ops_json: str = typer.Argument(..., help="JSON list of ops, each tagged by 'op'"),
    name: Optional[str] = typer.Option(None, "--name", help="Migration name"),
) -> None:
    """Append a pending migration to the ledger."""
    from rowshard.cli import state

    try:
        ops = parse_json_arg(ops_json, "ops")
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(ec.USAGE_ERROR)
    if isinstance(ops, dict):
        ops = [ops]
    if not isinstance(ops, list):
        print_error("Ops must be a JSON object or list of objects")
        raise typer.Exit(ec.USAGE_ERROR)

    db = open_database()
    try:
        migration = db.generate_migration(ops, name or "")
    except RowshardError as e:
        fail(e)
    if state.json_output:
        print_object(migration.model_dump(mode="json"), json_mode=True)
    else:
        print(f"Generated migration {migration.id} ({len(migration.ops)} ops)")


@app.command(name="apply")
def migrate_apply_cmd() -> None:
    """Apply all pending migrations in id order."""
    from rowshard.cli import state

    db = open_database()
    try:
        result = db.apply_migrations()
    except MigrationPartialFailureError as e:
        print_error(str(e))
        raise typer.Exit(ec.DATABASE_ERROR)
    except RowshardError as e:
        fail(e)

    if state.json_output:
        print_object(
            {"applied": result.applied, "shards_rewritten": result.shards_rewritten},
            json_mode=True,
        )
        return
    if not result.applied:
        print("No pending migrations.")
        return
    ids = ", ".join(str(i) for i in result.applied)
    print(f"Applied migrations {ids} ({result.shards_rewritten} shards rewritten)")


@app.command(name="status")
def migrate_status_cmd() -> None:
    """List migrations in the ledger with their state."""
    from rowshard.cli import state

    db = open_database()
    try:
        migrations = db.list_migrations()
    except RowshardError as e:
        fail(e)

    rows: list[list[Any]] = [
        [
            m.id,
            m.name,
            len(m.ops),
            "applied" if m.applied else "pending",
            m.applied_at or "",
        ]
        for m in migrations
    ]
    if not rows and not state.json_output:
        print("No migrations.")
        return
    print_table(
        ["id", "name", "ops", "state", "applied_at"], rows, json_mode=state.json_output
    )
