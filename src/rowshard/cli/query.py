"""rowshard query: filter, sort, and limit the rows of a table."""

from __future__ import annotations

from typing import Optional

import typer

from rowshard.cli import _exitcodes as ec
from rowshard.cli._filters import parse_cli_filters
from rowshard.cli._output import print_error, print_object, print_rows
from rowshard.cli._storage import fail, open_database
from rowshard.errors import RowshardError


def query_cmd(
    table: str = typer.Argument(..., help="Table name"),
    filter_args: Optional[list[str]] = typer.Option(
        None, "--filter", help="'FIELD OP VALUE_JSON' (repeatable, AND-combined)"
    ),
    sort: Optional[str] = typer.Option(None, "--sort", help="Sort field"),
    desc: bool = typer.Option(False, "--desc", help="Sort descending"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Max results"),
    count: bool = typer.Option(False, "--count", help="Print the match count only"),
) -> None:
    """Query the rows of a table."""
    from rowshard.cli import state

    json_mode = state.json_output

    try:
        filters = parse_cli_filters(filter_args)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(ec.USAGE_ERROR)
    if desc and sort is None:
        print_error("--desc requires --sort")
        raise typer.Exit(ec.USAGE_ERROR)

    db = open_database()
    try:
        q = db.query(table)
        for field, op, value in filters:
            q = q.where_(field, op, value)
        if sort is not None:
            q = q.sort_by(sort, ascending=not desc)
        if limit is not None:
            q = q.limit(limit)

        if count:
            n = q.count()
            if json_mode:
                print_object({"table": table, "count": n}, json_mode=True)
            else:
                print(n)
            return
        rows = q.execute()
    except RowshardError as e:
        fail(e)

    if not rows and not json_mode:
        print("No rows.")
        return
    print_rows(rows, json_mode=json_mode)
