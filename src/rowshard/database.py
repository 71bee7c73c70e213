"""Database facade: wires the schema store, shard manager, row, query, and migration engines."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from rowshard.config import RowshardConfig
from rowshard.errors import ShardIOError
from rowshard.filters import Operator
from rowshard.migration import Migration, MigrationEngine, MigrationResult
from rowshard.query import Query
from rowshard.rows import RowEngine
from rowshard.schema import FieldDecl, SchemaStore, TableSchema
from rowshard.shards import ShardManager

logger = logging.getLogger(__name__)


class Database:
    """An open rowshard database rooted at a directory."""

    def __init__(self, root: str | Path, config: RowshardConfig | None = None) -> None:
        self.root = Path(root)
        self.config = config or RowshardConfig()
        self.shards = ShardManager(self.root, self.config)
        self.schemas = SchemaStore(self.root, self.config, self.shards)
        self.rows = RowEngine(self.schemas, self.shards)
        self.migrations = MigrationEngine(self.root, self.config, self.schemas, self.shards)

    def __repr__(self) -> str:
        return f"Database({str(self.root)!r})"

    # --- Tables ---

    def create_table(
        self, fields: Mapping[str, FieldDecl], id_column: str, name: str
    ) -> TableSchema:
        return self.schemas.create_table(fields, id_column, name)

    def load_schema(self, name: str) -> TableSchema:
        return self.schemas.load_schema(name)

    def list_tables(self) -> list[str]:
        return self.schemas.list_tables()

    def delete_table(self, name: str) -> None:
        self.schemas.delete_table(name)

    # --- Rows ---

    def insert(
        self,
        table: str,
        row: Mapping[str, Any],
        *,
        patterns: Mapping[str, str] | None = None,
        auto_id: bool = False,
    ) -> str:
        return self.rows.insert(table, row, patterns=patterns, auto_id=auto_id)

    def insert_many(
        self,
        table: str,
        rows: Iterable[Mapping[str, Any]],
        *,
        patterns: Mapping[str, str] | None = None,
        auto_id: bool = False,
    ) -> list[str]:
        return self.rows.insert_many(table, rows, patterns=patterns, auto_id=auto_id)

    def get_all(self, table: str) -> list[dict[str, Any]]:
        return self.rows.get_all(table)

    def get_by_id(self, table: str, id_value: Any) -> dict[str, Any]:
        return self.rows.get_by_id(table, id_value)

    def update_field_where(
        self,
        table: str,
        match_field: str,
        match_value: Any,
        target_field: str,
        new_value: Any,
        match_null_as_match: bool = False,
        comparator: Operator | str = Operator.EQ,
        multi: bool = True,
    ) -> int:
        return self.rows.update_field_where(
            table,
            match_field,
            match_value,
            target_field,
            new_value,
            match_null_as_match=match_null_as_match,
            comparator=comparator,
            multi=multi,
        )

    def update_row_where(
        self,
        table: str,
        match_field: str,
        match_value: Any,
        changes: Mapping[str, Any],
        match_null_as_match: bool = False,
        comparator: Operator | str = Operator.EQ,
        multi: bool = True,
    ) -> int:
        return self.rows.update_row_where(
            table,
            match_field,
            match_value,
            changes,
            match_null_as_match=match_null_as_match,
            comparator=comparator,
            multi=multi,
        )

    def update_by_id(
        self,
        table: str,
        id_value: Any,
        changes: Mapping[str, Any],
        *,
        patterns: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        return self.rows.update_by_id(table, id_value, changes, patterns=patterns)

    def delete_row_by_id(self, table: str, id_value: Any) -> dict[str, Any]:
        return self.rows.delete_row_by_id(table, id_value)

    def delete_by_condition(
        self,
        table: str,
        field: str,
        operator: Operator | str,
        value: Any,
        multi: bool = True,
    ) -> int:
        return self.rows.delete_by_condition(table, field, operator, value, multi=multi)

    def rebuild_index(self, table: str) -> int:
        """Regenerate a table's key index from its shards; returns the row count."""
        self.schemas.load_schema(table)
        return len(self.shards.rebuild_keys(table))

    # --- Queries ---

    def query(self, table: str) -> Query:
        return Query(self.shards, self.schemas.load_schema(table), self.rows)

    # --- Migrations ---

    def generate_migration(self, ops: list[Any], name: str = "") -> Migration:
        return self.migrations.generate_migration(ops, name)

    def apply_migrations(self) -> MigrationResult:
        return self.migrations.apply_migrations()

    def list_migrations(self) -> list[Migration]:
        return self.migrations.list_migrations()

    def pending_migrations(self) -> list[Migration]:
        return self.migrations.pending_migrations()


def init(path: str | Path, config: RowshardConfig | None = None) -> Database:
    """Open (creating if needed) a database at path."""
    root = Path(path)
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ShardIOError("init", str(root), str(e)) from e
    db = Database(root, config)
    db.migrations.ensure_ledger()
    logger.debug("opened database at %s", root)
    return db
