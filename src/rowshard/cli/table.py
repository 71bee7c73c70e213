"""rowshard table: create, list, show, and drop tables."""

from __future__ import annotations

from typing import Any, Optional

import typer
import yaml

from rowshard.cli import _exitcodes as ec
from rowshard.cli._output import dumps, print_error, print_object, print_table
from rowshard.cli._storage import fail, open_database
from rowshard.errors import RowshardError

app = typer.Typer(no_args_is_help=True)


def parse_field_decl(text: str) -> tuple[str, tuple[str, str]]:
    """Parse 'name:TYPE[:PATTERN]'; the pattern may itself contain colons."""
    parts = text.split(":", 2)
    if len(parts) < 2 or not parts[0] or not parts[1]:
        raise ValueError(f"Invalid field '{text}' (expected name:TYPE[:PATTERN])")
    pattern = parts[2] if len(parts) == 3 else ""
    return parts[0], (parts[1], pattern)


@app.command(name="create")
def table_create_cmd(
    name: str = typer.Argument(..., help="Table name"),
    id_column: str = typer.Option(..., "--id", help="Primary key field"),
    field_args: Optional[list[str]] = typer.Option(
        None, "--field", help="name:TYPE[:PATTERN] (repeatable)"
    ),
) -> None:
    """Create a table."""
    from rowshard.cli import state

    if not field_args:
        print_error("At least one --field is required")
        raise typer.Exit(ec.USAGE_ERROR)
    try:
        fields = dict(parse_field_decl(f) for f in field_args)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(ec.USAGE_ERROR)

    db = open_database()
    try:
        schema = db.create_table(fields, id_column, name)
    except RowshardError as e:
        fail(e)
    if state.json_output:
        print_object(schema.model_dump(mode="json"), json_mode=True)
    else:
        print(f"Created table '{schema.name}' ({len(schema.fields)} fields)")


@app.command(name="list")
def table_list_cmd() -> None:
    """List tables with their row counts."""
    from rowshard.cli import state

    db = open_database()
    rows: list[list[Any]] = []
    try:
        for name in db.list_tables():
            schema = db.load_schema(name)
            rows.append([name, schema.id_column, len(schema.fields), len(db.shards.load_keys(name))])
    except RowshardError as e:
        fail(e)
    if not rows and not state.json_output:
        print("No tables.")
        return
    print_table(["table", "id_column", "fields", "rows"], rows, json_mode=state.json_output)


@app.command(name="show")
def table_show_cmd(
    name: str = typer.Argument(..., help="Table name"),
    fmt: str = typer.Option("json", "--format", help="Output format: json or yaml"),
) -> None:
    """Print a table's schema."""
    if fmt not in ("json", "yaml"):
        print_error("--format must be 'json' or 'yaml'")
        raise typer.Exit(ec.USAGE_ERROR)
    db = open_database()
    try:
        data = db.load_schema(name).model_dump(mode="json")
    except RowshardError as e:
        fail(e)
    if fmt == "yaml":
        print(yaml.dump(data, default_flow_style=False, sort_keys=False), end="")
    else:
        print(dumps(data))


@app.command(name="drop")
def table_drop_cmd(
    name: str = typer.Argument(..., help="Table name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a table with all of its shards."""
    from rowshard.cli import state

    if not yes and not typer.confirm(f"Drop table '{name}' and all of its rows?"):
        raise typer.Exit(ec.GENERAL_ERROR)
    db = open_database()
    try:
        db.delete_table(name)
    except RowshardError as e:
        fail(e)
    if state.json_output:
        print_object({"dropped": name}, json_mode=True)
    else:
        print(f"Dropped table '{name}'")
