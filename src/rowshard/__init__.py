"""rowshard: embedded, schema-validated record store on sharded flat files."""

__version__ = "0.1.0"

from rowshard.config import RowshardConfig
from rowshard.database import Database, init
from rowshard.errors import (
    DuplicateKeyError,
    InvalidPrimaryKeyError,
    InvalidQueryError,
    InvalidSchemaError,
    MigrationError,
    MigrationOrderViolationError,
    MigrationPartialFailureError,
    MissingPrimaryKeyError,
    PatternMismatchError,
    RowNotFoundError,
    RowshardError,
    SchemaError,
    SchemaExistsError,
    SchemaNotFoundError,
    ShardIOError,
    TypeMismatchError,
    UnknownFieldError,
    ValidationError,
)
from rowshard.filters import Operator
from rowshard.migration import (
    AddColumn,
    CreateTable,
    DeleteTable,
    DropColumn,
    Migration,
    MigrationResult,
    RenameColumn,
)
from rowshard.query import Query
from rowshard.schema import FieldSpec, TableSchema
from rowshard.values import FieldType, Json

__all__ = [
    "__version__",
    "init",
    "Database",
    "RowshardConfig",
    "FieldType",
    "FieldSpec",
    "TableSchema",
    "Json",
    "Operator",
    "Query",
    "AddColumn",
    "DropColumn",
    "RenameColumn",
    "CreateTable",
    "DeleteTable",
    "Migration",
    "MigrationResult",
    "RowshardError",
    "SchemaError",
    "SchemaNotFoundError",
    "SchemaExistsError",
    "InvalidPrimaryKeyError",
    "InvalidSchemaError",
    "ValidationError",
    "UnknownFieldError",
    "TypeMismatchError",
    "PatternMismatchError",
    "MissingPrimaryKeyError",
    "DuplicateKeyError",
    "RowNotFoundError",
    "ShardIOError",
    "InvalidQueryError",
    "MigrationError",
    "MigrationOrderViolationError",
    "MigrationPartialFailureError",
]
