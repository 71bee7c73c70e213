"""rowshard insert/get/delete: single-row commands."""

from __future__ import annotations

import typer

from rowshard.cli import _exitcodes as ec
from rowshard.cli._filters import parse_json_arg
from rowshard.cli._output import print_error, print_object
from rowshard.cli._storage import fail, open_database
from rowshard.errors import RowshardError


def _id_arg(text: str) -> object:
    # Bare numbers address NUMBER keys; anything else is a string key
    try:
        value = parse_json_arg(text, "id")
    except ValueError:
        return text
    return value if isinstance(value, (int, float, str)) and not isinstance(value, bool) else text


def insert_cmd(
    table: str = typer.Argument(..., help="Table name"),
    row_json: str = typer.Argument(..., help="Row as a JSON object"),
    auto_id: bool = typer.Option(False, "--auto-id", help="Generate a missing string key"),
) -> None:
    """Insert one row."""
    from rowshard.cli import state

    try:
        row = parse_json_arg(row_json, "row")
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(ec.USAGE_ERROR)
    if not isinstance(row, dict):
        print_error("Row must be a JSON object")
        raise typer.Exit(ec.USAGE_ERROR)

    db = open_database()
    try:
        row_id = db.insert(table, row, auto_id=auto_id)
    except RowshardError as e:
        fail(e)
    if state.json_output:
        print_object({"table": table, "id": row_id}, json_mode=True)
    else:
        print(row_id)


def get_cmd(
    table: str = typer.Argument(..., help="Table name"),
    row_id: str = typer.Argument(..., help="Row ID"),
) -> None:
    """Fetch one row by ID."""
    from rowshard.cli import state

    db = open_database()
    try:
        row = db.get_by_id(table, _id_arg(row_id))
    except RowshardError as e:
        fail(e)
    print_object(row, json_mode=state.json_output)


def delete_cmd(
    table: str = typer.Argument(..., help="Table name"),
    row_id: str = typer.Argument(..., help="Row ID"),
) -> None:
    """Delete one row by ID."""
    from rowshard.cli import state

    db = open_database()
    try:
        row = db.delete_row_by_id(table, _id_arg(row_id))
    except RowshardError as e:
        fail(e)
    if state.json_output:
        print_object({"deleted": row}, json_mode=True)
    else:
        print(f"Deleted '{row_id}' from '{table}'")
