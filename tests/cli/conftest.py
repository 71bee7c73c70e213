"""Shared fixtures for CLI tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

import rowshard
from rowshard.cli import app
from tests.conftest import USER_FIELDS, USERS

if TYPE_CHECKING:
    from click.testing import Result


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_db(tmp_path):
    """A temp database root path for the CLI."""
    return str(tmp_path / "cli_test.db")


@pytest.fixture
def seeded_db(cli_db):
    """A database with a populated 'users' table."""
    db = rowshard.init(cli_db)
    db.create_table(USER_FIELDS, "id", "users")
    db.insert_many("users", USERS)
    return cli_db


def invoke(runner: CliRunner, args: list[str], db_path: str | None = None) -> "Result":
    """Invoke CLI with proper state setup."""
    if db_path:
        # Inject --db before subcommand
        args = ["--db", db_path] + args
    result = runner.invoke(app, args, catch_exceptions=False)
    return result
