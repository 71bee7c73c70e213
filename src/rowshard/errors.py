"""Structured error types for rowshard."""

from __future__ import annotations

from typing import Any

from rowshard.values import kind_of


class RowshardError(Exception):
    """Base error for all rowshard errors."""


# --- Schema errors ---


class SchemaError(RowshardError):
    """Raised for schema store failures."""


class SchemaNotFoundError(SchemaError):
    """Raised when a table has no stored schema."""

    def __init__(self, table: str) -> None:
        self.table = table
        super().__init__(f"Table '{table}' does not exist")


class SchemaExistsError(SchemaError):
    """Raised when creating a table whose schema is already stored."""

    def __init__(self, table: str) -> None:
        self.table = table
        super().__init__(f"Table '{table}' already exists")


class InvalidPrimaryKeyError(SchemaError):
    """Raised when the id column is missing from the fields or has an unusable type."""

    def __init__(self, table: str, id_column: str, reason: str = "not a declared field") -> None:
        self.table = table
        self.id_column = id_column
        super().__init__(f"Invalid id column '{id_column}' for table '{table}': {reason}")


class InvalidSchemaError(SchemaError):
    """Raised for malformed table definitions (bad name, type tag, or pattern)."""


# --- Validation errors ---


class ValidationError(RowshardError):
    """Raised when a row fails validation against its table schema."""

    def __init__(self, table: str, field: str, message: str) -> None:
        self.table = table
        self.field = field
        super().__init__(message)


class UnknownFieldError(ValidationError):
    """Raised when a row carries a field the schema does not declare."""

    def __init__(self, table: str, field: str) -> None:
        super().__init__(table, field, f"Unknown field '{field}' for table '{table}'")


class TypeMismatchError(ValidationError):
    """Raised when a value's shape does not match the declared field type."""

    def __init__(self, table: str, field: str, expected: str, value: Any) -> None:
        self.expected = expected
        self.value = value
        super().__init__(
            table,
            field,
            f"Field '{table}.{field}' expects {expected}, got {kind_of(value)} {value!r}",
        )


class PatternMismatchError(ValidationError):
    """Raised when a textual value does not fully match the field pattern."""

    def __init__(self, table: str, field: str, pattern: str, value: str) -> None:
        self.pattern = pattern
        self.value = value
        super().__init__(
            table, field, f"Field '{table}.{field}' value {value!r} does not match /{pattern}/"
        )


class MissingPrimaryKeyError(ValidationError):
    """Raised when a row is inserted without a non-null primary key."""

    def __init__(self, table: str, field: str) -> None:
        super().__init__(table, field, f"Row for table '{table}' is missing primary key '{field}'")


# --- Row errors ---


class DuplicateKeyError(RowshardError):
    """Raised when a row ID already exists in the table."""

    def __init__(self, table: str, row_id: str) -> None:
        self.table = table
        self.row_id = row_id
        super().__init__(f"Row '{row_id}' already exists in table '{table}'")


class RowNotFoundError(RowshardError):
    """Raised when a row ID is not present in the table."""

    def __init__(self, table: str, row_id: str) -> None:
        self.table = table
        self.row_id = row_id
        super().__init__(f"Row '{row_id}' not found in table '{table}'")


class ShardIOError(RowshardError):
    """Raised when a schema, shard, index, or ledger file cannot be read, written, or decoded."""

    def __init__(self, operation: str, path: str, detail: str) -> None:
        self.operation = operation
        self.path = path
        self.detail = detail
        super().__init__(f"Storage error during {operation} of '{path}': {detail}")


class InvalidQueryError(RowshardError):
    """Raised when a query is built with an unsupported operator or argument."""


# --- Migration errors ---


class MigrationError(RowshardError):
    """Raised when a migration operation fails."""


class MigrationOrderViolationError(MigrationError):
    """Raised when the ledger is not a prefix-ordered log of applied migrations."""

    def __init__(self, migration_id: int, detail: str) -> None:
        self.migration_id = migration_id
        super().__init__(f"Migration {migration_id} is out of order: {detail}")


class MigrationPartialFailureError(MigrationError):
    """Raised when an op fails mid-migration; earlier rewrites are not rolled back."""

    def __init__(self, migration_id: int, op_index: int, detail: str) -> None:
        self.migration_id = migration_id
        self.op_index = op_index
        super().__init__(
            f"Migration {migration_id} failed at op {op_index}: {detail}. "
            "Shards rewritten before the failure remain modified; the migration stays pending."
        )
