"""Shared test fixtures for rowshard tests."""

from __future__ import annotations

import pytest

import rowshard
from rowshard import FieldType, RowshardConfig

USER_FIELDS = {
    "id": FieldType.STRING,
    "name": FieldType.STRING,
    "age": FieldType.NUMBER_NULL,
    "email": (FieldType.STRING_NULL, r"[^@\s]+@[^@\s]+"),
    "tags": FieldType.ARRAY_NULL,
    "active": FieldType.BOOLEAN_NULL,
    "profile": FieldType.JSON_NULL,
}

USERS = [
    {"id": "u1", "name": "Alice", "age": 30, "email": "alice@example.com", "tags": ["admin"]},
    {"id": "u2", "name": "Bob", "age": 25, "email": None, "tags": ["dev", "ops"]},
    {"id": "u3", "name": "Carol", "age": 35, "active": True},
    {"id": "u4", "name": "Dave", "age": None, "active": False},
]


# --- Fixtures ---


@pytest.fixture
def db_path(tmp_path):
    """A temporary database root directory."""
    return tmp_path / "test.db"


@pytest.fixture
def db(db_path):
    """An empty database with default configuration."""
    return rowshard.init(db_path)


@pytest.fixture
def users_db(db):
    """A database with a populated 'users' table."""
    db.create_table(USER_FIELDS, "id", "users")
    for row in USERS:
        db.insert("users", row)
    return db


@pytest.fixture
def sharded_db(tmp_path):
    """A database with a tiny shard capacity and an 'items' table of 10 rows."""
    d = rowshard.init(tmp_path / "sharded.db", RowshardConfig(max_rows_per_shard=3))
    d.create_table({"n": FieldType.NUMBER, "label": FieldType.STRING_NULL}, "n", "items")
    for i in range(10):
        d.insert("items", {"n": i, "label": f"item-{i}"})
    return d
