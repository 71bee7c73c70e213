"""rowshard info: show database status and per-table statistics."""

from __future__ import annotations

from typing import Any

import typer

from rowshard.cli._output import print_object, print_table
from rowshard.cli._storage import fail, open_database
from rowshard.errors import RowshardError


def info_cmd() -> None:
    """Show tables with row and shard counts, plus pending migrations."""
    from rowshard.cli import state

    json_mode = state.json_output
    db = open_database()
    try:
        tables: list[list[Any]] = []
        for name in db.list_tables():
            tables.append(
                [
                    name,
                    len(db.shards.load_keys(name)),
                    len(db.shards.all_shards(name)),
                    db.shards.layout(name).max_rows_per_shard,
                ]
            )
        pending = [m.id for m in db.pending_migrations()]
    except RowshardError as e:
        fail(e)

    if json_mode:
        data: dict[str, Any] = {
            "root": str(db.root),
            "max_rows_per_shard": db.config.max_rows_per_shard,
            "tables": [
                {"table": t, "rows": r, "shards": s, "max_rows_per_shard": c}
                for t, r, s, c in tables
            ],
            "pending_migrations": pending,
        }
        print_object(data, json_mode=True)
        return

    print_object(
        {
            "root": str(db.root),
            "max_rows_per_shard": db.config.max_rows_per_shard,
            "pending_migrations": len(pending),
        }
    )
    if tables:
        typer.echo()
        print_table(["table", "rows", "shards", "capacity"], tables)
