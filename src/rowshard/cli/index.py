"""rowshard reindex: rebuild a table's key index from its shards."""

from __future__ import annotations

import typer

from rowshard.cli._output import print_object
from rowshard.cli._storage import fail, open_database
from rowshard.errors import RowshardError


def reindex_cmd(table: str = typer.Argument(..., help="Table name")) -> None:
    """Regenerate the row ID index of a table."""
    from rowshard.cli import state

    db = open_database()
    try:
        n = db.rebuild_index(table)
    except RowshardError as e:
        fail(e)
    if state.json_output:
        print_object({"table": table, "rows": n}, json_mode=True)
    else:
        print(f"Reindexed '{table}' ({n} rows)")
