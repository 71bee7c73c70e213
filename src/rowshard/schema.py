"""Table schemas and the schema store."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Mapping, Union

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from rowshard.config import RowshardConfig
from rowshard.errors import (
    InvalidPrimaryKeyError,
    InvalidSchemaError,
    SchemaExistsError,
    SchemaNotFoundError,
    ShardIOError,
)
from rowshard.shards import ShardManager
from rowshard.storage import read_document, remove_file, write_document
from rowshard.values import FieldType

logger = logging.getLogger(__name__)

SCHEMA_SUFFIX = ".schema.json"
RESERVED_NAMES = frozenset({"migrations"})

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_name(name: str, what: str = "table") -> None:
    """Validate a table or field name (identifier)."""
    if not isinstance(name, str) or not _NAME_RE.match(name):
        raise InvalidSchemaError(f"Invalid {what} name '{name}': must match [A-Za-z_][A-Za-z0-9_]*")


class FieldSpec(BaseModel):
    """Declared type and optional full-match pattern of one field."""

    type: FieldType
    pattern: str = ""


class TableSchema(BaseModel):
    """Persisted definition of a table."""

    name: str
    id_column: str
    fields: dict[str, FieldSpec]
    next_ordinal: int = Field(default=0, ge=0)

    @property
    def id_spec(self) -> FieldSpec:
        return self.fields[self.id_column]


FieldDecl = Union[FieldSpec, FieldType, str, tuple, list, dict]


def coerce_field_spec(name: str, decl: FieldDecl) -> FieldSpec:
    """Build a FieldSpec from a FieldSpec, a type tag, a (type, pattern) pair, or a {type, pattern} mapping."""
    validate_name(name, "field")
    if isinstance(decl, FieldSpec):
        spec = decl
    elif isinstance(decl, dict):
        try:
            spec = FieldSpec(type=FieldType.parse(decl["type"]), pattern=decl.get("pattern") or "")
        except (KeyError, ValueError) as e:
            raise InvalidSchemaError(f"Field '{name}': invalid declaration {decl!r}") from e
    else:
        pattern = ""
        if isinstance(decl, (tuple, list)):
            if len(decl) != 2:
                raise InvalidSchemaError(f"Field '{name}' must be declared as (type, pattern)")
            decl, pattern = decl
        try:
            spec = FieldSpec(type=FieldType.parse(decl), pattern=pattern or "")
        except ValueError as e:
            raise InvalidSchemaError(f"Field '{name}': {e}") from e
    if spec.pattern:
        try:
            re.compile(spec.pattern)
        except re.error as e:
            raise InvalidSchemaError(f"Field '{name}' has an invalid pattern: {e}") from e
    return spec


def build_schema(
    name: str, fields: Mapping[str, FieldDecl], id_column: str
) -> TableSchema:
    """Validate a table definition and build its schema (no I/O)."""
    validate_name(name)
    if name in RESERVED_NAMES:
        raise InvalidSchemaError(f"Table name '{name}' is reserved")
    specs = {fname: coerce_field_spec(fname, decl) for fname, decl in fields.items()}
    if id_column not in specs:
        raise InvalidPrimaryKeyError(name, id_column)
    if specs[id_column].type not in (FieldType.STRING, FieldType.NUMBER):
        raise InvalidPrimaryKeyError(
            name, id_column, f"type {specs[id_column].type.value} is not STRING or NUMBER"
        )
    return TableSchema(name=name, id_column=id_column, fields=specs)


class SchemaStore:
    """Persists one schema file per table at the database root."""

    def __init__(self, root: Path, config: RowshardConfig, shards: ShardManager) -> None:
        self.root = root
        self.config = config
        self.shards = shards

    def schema_path(self, name: str) -> Path:
        return self.root / f"{name}{SCHEMA_SUFFIX}"

    def exists(self, name: str) -> bool:
        return self.schema_path(name).is_file()

    def list_tables(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            p.name[: -len(SCHEMA_SUFFIX)]
            for p in self.root.iterdir()
            if p.is_file() and p.name.endswith(SCHEMA_SUFFIX)
        )

    def create_table(
        self, fields: Mapping[str, FieldDecl], id_column: str, name: str
    ) -> TableSchema:
        """Persist a new table schema and create its shard directory."""
        validate_name(name)
        if self.exists(name):
            raise SchemaExistsError(name)
        schema = build_schema(name, fields, id_column)
        self.save_schema(schema)
        self.shards.ensure_table(name)
        logger.info("created table %s (%d fields, id=%s)", name, len(schema.fields), id_column)
        return schema

    def load_schema(self, name: str) -> TableSchema:
        path = self.schema_path(name)
        if not path.is_file():
            raise SchemaNotFoundError(name)
        doc = read_document(path, operation="load_schema")
        try:
            return TableSchema.model_validate(doc)
        except PydanticValidationError as e:
            raise ShardIOError("load_schema", str(path), f"malformed schema: {e}") from e

    def save_schema(self, schema: TableSchema) -> None:
        doc: dict[str, Any] = schema.model_dump(mode="json")
        write_document(
            self.schema_path(schema.name), doc, indent=self.config.indent, operation="save_schema"
        )

    def delete_table(self, name: str) -> None:
        """Remove a table's schema and all of its shards."""
        if not self.exists(name):
            raise SchemaNotFoundError(name)
        self.shards.drop_table(name)
        remove_file(self.schema_path(name), operation="delete_schema")
        logger.info("deleted table %s", name)
