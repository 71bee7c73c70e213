"""Process exit codes for the rowshard CLI."""

from __future__ import annotations

from rowshard.errors import (
    RowNotFoundError,
    SchemaNotFoundError,
    ShardIOError,
)

SUCCESS = 0
GENERAL_ERROR = 1
USAGE_ERROR = 2
DATABASE_ERROR = 3
NOT_FOUND = 4


def for_error(e: BaseException) -> int:
    """Map a rowshard error to its exit code."""
    if isinstance(e, (SchemaNotFoundError, RowNotFoundError)):
        return NOT_FOUND
    if isinstance(e, ShardIOError):
        return DATABASE_ERROR
    return GENERAL_ERROR
