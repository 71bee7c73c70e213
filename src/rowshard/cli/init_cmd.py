"""rowshard init: create a database root and its migration ledger."""

from __future__ import annotations

import typer

from rowshard.cli._output import print_object
from rowshard.cli._storage import fail, resolve_root
from rowshard.config import RowshardConfig
from rowshard.database import init
from rowshard.errors import RowshardError


def init_cmd() -> None:
    """Initialize the database directory selected by --db."""
    from rowshard.cli import state

    root = resolve_root()
    existed = root.is_dir()
    try:
        db = init(root, RowshardConfig.from_env())
    except (RowshardError, ValueError) as e:
        fail(e)
    data = {
        "root": str(db.root),
        "ledger": str(db.migrations.ledger_path),
        "status": "exists" if existed else "created",
    }
    if state.json_output:
        print_object(data, json_mode=True)
    else:
        typer.echo(f"Initialized rowshard database at {db.root} ({data['status']})")
