"""Row validation against a table schema. Pure: never touches storage."""

from __future__ import annotations

import re
from typing import Any, Mapping

from rowshard.errors import (
    MissingPrimaryKeyError,
    PatternMismatchError,
    TypeMismatchError,
    UnknownFieldError,
)
from rowshard.schema import TableSchema
from rowshard.values import matches_type


def check_value(
    schema: TableSchema, field: str, value: Any, pattern: str | None = None
) -> None:
    """Validate one value for one field.

    ``pattern`` overrides the schema pattern when not None; an empty pattern
    disables the check.
    """
    spec = schema.fields.get(field)
    if spec is None:
        raise UnknownFieldError(schema.name, field)
    if not matches_type(value, spec.type):
        raise TypeMismatchError(schema.name, field, spec.type.value, value)
    effective = spec.pattern if pattern is None else pattern
    if effective and isinstance(value, str) and re.fullmatch(effective, value) is None:
        raise PatternMismatchError(schema.name, field, effective, value)


def validate(
    schema: TableSchema,
    row: Mapping[str, Any],
    *,
    patterns: Mapping[str, str] | None = None,
    require_primary_key: bool = True,
) -> None:
    """Validate the fields present in row; raises a ValidationError subclass on failure."""
    overrides = patterns or {}
    for field in overrides:
        if field not in schema.fields:
            raise UnknownFieldError(schema.name, field)
    for field, value in row.items():
        check_value(schema, field, value, overrides.get(field))
    if require_primary_key and row.get(schema.id_column) is None:
        raise MissingPrimaryKeyError(schema.name, schema.id_column)
