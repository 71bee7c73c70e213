"""CLI helpers for opening the database selected by the global options."""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer

from rowshard.cli import _exitcodes as ec
from rowshard.cli._output import print_error
from rowshard.config import RowshardConfig
from rowshard.database import Database


def resolve_root() -> Path:
    """Return the database root from CLI state."""
    from rowshard.cli import state

    return Path(state.db)


def open_database() -> Database:
    """Open an existing database; exits with DATABASE_ERROR when it is missing."""
    root = resolve_root()
    if not root.is_dir():
        print_error(f"Database not found: {root} (run 'rowshard init')")
        raise typer.Exit(ec.DATABASE_ERROR)
    try:
        config = RowshardConfig.from_env()
    except ValueError as e:
        print_error(f"Invalid configuration: {e}")
        raise typer.Exit(ec.USAGE_ERROR)
    return Database(root, config)


def fail(e: Exception) -> NoReturn:
    """Report an error and exit with its mapped code."""
    print_error(str(e))
    raise typer.Exit(ec.for_error(e))
