"""Schema migrations: op models, the ledger file, and the engine that replays pending ops."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Any, Callable, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_serializer, field_validator
from pydantic import ValidationError as PydanticValidationError

from rowshard.codec import tag_value, untag_value
from rowshard.config import RowshardConfig
from rowshard.errors import (
    InvalidPrimaryKeyError,
    MigrationError,
    MigrationOrderViolationError,
    MigrationPartialFailureError,
    RowshardError,
    SchemaNotFoundError,
    ShardIOError,
)
from rowshard.schema import FieldDecl, SchemaStore, coerce_field_spec
from rowshard.shards import ShardManager
from rowshard.storage import read_document_or_none, write_document
from rowshard.validation import check_value
from rowshard.values import FieldType

logger = logging.getLogger(__name__)

__all__ = [
    "AddColumn",
    "DropColumn",
    "RenameColumn",
    "CreateTable",
    "DeleteTable",
    "MigrationOp",
    "Migration",
    "MigrationLedger",
    "MigrationResult",
    "MigrationEngine",
    "parse_ops",
]

MIGRATIONS_DIR = "migrations"
LEDGER_FILE = "ledger.json"


# --- Operations ---


class AddColumn(BaseModel):
    op: Literal["add_column"] = "add_column"
    table: str
    field: str
    type: FieldType
    default: Any = None
    pattern: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, v: Any) -> FieldType:
        return FieldType.parse(v)

    @field_validator("default", mode="before")
    @classmethod
    def _untag_default(cls, v: Any) -> Any:
        return untag_value(v)

    @field_serializer("default")
    def _tag_default(self, v: Any) -> Any:
        return tag_value(v)


class DropColumn(BaseModel):
    op: Literal["drop_column"] = "drop_column"
    table: str
    field: str


class RenameColumn(BaseModel):
    op: Literal["rename_column"] = "rename_column"
    table: str
    old: str
    new: str


class CreateTable(BaseModel):
    op: Literal["create_table"] = "create_table"
    table: str
    id_column: str
    fields: dict[str, Any]


class DeleteTable(BaseModel):
    op: Literal["delete_table"] = "delete_table"
    table: str


MigrationOp = Annotated[
    Union[AddColumn, DropColumn, RenameColumn, CreateTable, DeleteTable],
    Field(discriminator="op"),
]

_OPS_ADAPTER: TypeAdapter[list[MigrationOp]] = TypeAdapter(list[MigrationOp])
_OP_TYPES = (AddColumn, DropColumn, RenameColumn, CreateTable, DeleteTable)


def parse_ops(data: Any) -> list[MigrationOp]:
    """Validate a list of op dicts (tagged by ``op``) into op models."""
    try:
        return _OPS_ADAPTER.validate_python(data)
    except PydanticValidationError as e:
        raise MigrationError(f"Invalid migration ops: {e}") from e


# --- Ledger ---


class Migration(BaseModel):
    id: int
    name: str = ""
    created_at: str
    ops: list[MigrationOp] = Field(default_factory=list)
    applied: bool = False
    applied_at: str | None = None


class MigrationLedger(BaseModel):
    migrations: list[Migration] = Field(default_factory=list)


@dataclass
class MigrationResult:
    """Result of apply_migrations()."""

    applied: list[int] = field(default_factory=list)
    shards_rewritten: int = 0


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class MigrationEngine:
    """Records migrations in the ledger and replays pending ones in id order."""

    def __init__(
        self,
        root: Path,
        config: RowshardConfig,
        schemas: SchemaStore,
        shards: ShardManager,
    ) -> None:
        self.root = root
        self.config = config
        self.schemas = schemas
        self.shards = shards

    @property
    def ledger_path(self) -> Path:
        return self.root / MIGRATIONS_DIR / LEDGER_FILE

    def load_ledger(self) -> MigrationLedger:
        path = self.ledger_path
        doc = read_document_or_none(path, operation="load_ledger")
        if doc is None:
            return MigrationLedger()
        try:
            return MigrationLedger.model_validate(doc)
        except PydanticValidationError as e:
            raise ShardIOError("load_ledger", str(path), f"malformed ledger: {e}") from e

    def save_ledger(self, ledger: MigrationLedger) -> None:
        write_document(
            self.ledger_path,
            ledger.model_dump(mode="json"),
            indent=self.config.indent,
            operation="save_ledger",
        )

    def ensure_ledger(self) -> None:
        if not self.ledger_path.exists():
            self.save_ledger(MigrationLedger())

    # --- Public API ---

    def generate_migration(self, ops: list[Any], name: str = "") -> Migration:
        """Append a pending migration. Touches neither schemas nor shards."""
        parsed = [o if isinstance(o, _OP_TYPES) else parse_ops([o])[0] for o in ops]
        ledger = self.load_ledger()
        next_id = max((m.id for m in ledger.migrations), default=0) + 1
        migration = Migration(id=next_id, name=name, created_at=_now(), ops=parsed)
        ledger.migrations.append(migration)
        self.save_ledger(ledger)
        logger.info("generated migration %d %r (%d ops)", next_id, name, len(parsed))
        return migration

    def list_migrations(self) -> list[Migration]:
        return self.load_ledger().migrations

    def pending_migrations(self) -> list[Migration]:
        return [m for m in self.load_ledger().migrations if not m.applied]

    def apply_migrations(self) -> MigrationResult:
        """Apply every pending migration in ascending id order.

        A failing op stops the run with MigrationPartialFailureError; shards
        rewritten before the failure are not restored and the migration stays
        pending.
        """
        ledger = self.load_ledger()
        self._check_order(ledger)
        result = MigrationResult()
        for migration in ledger.migrations:
            if migration.applied:
                continue
            rewritten = 0
            for index, op in enumerate(migration.ops):
                try:
                    rewritten += self._apply_op(op)
                except RowshardError as e:
                    logger.warning(
                        "migration %d failed at op %d (%s): %s", migration.id, index, op.op, e
                    )
                    raise MigrationPartialFailureError(migration.id, index, str(e)) from e
            migration.applied = True
            migration.applied_at = _now()
            self.save_ledger(ledger)
            result.applied.append(migration.id)
            result.shards_rewritten += rewritten
            logger.info(
                "applied migration %d (%d ops, %d shards rewritten)",
                migration.id,
                len(migration.ops),
                rewritten,
            )
        return result

    # --- Internals ---

    def _check_order(self, ledger: MigrationLedger) -> None:
        seen_pending = False
        previous: int | None = None
        for m in ledger.migrations:
            if previous is not None and m.id <= previous:
                raise MigrationOrderViolationError(
                    m.id, f"id does not increase after migration {previous}"
                )
            if m.applied and seen_pending:
                raise MigrationOrderViolationError(
                    m.id, "applied migration follows a pending one"
                )
            seen_pending = seen_pending or not m.applied
            previous = m.id

    def _apply_op(self, op: Any) -> int:
        """Run one op; returns the number of shards rewritten."""
        if isinstance(op, CreateTable):
            self.schemas.create_table(op.fields, op.id_column, op.table)
            return 0
        if isinstance(op, DeleteTable):
            self.schemas.delete_table(op.table)
            return 0
        if isinstance(op, AddColumn):
            return self._add_column(op)
        if isinstance(op, DropColumn):
            return self._drop_column(op)
        if isinstance(op, RenameColumn):
            return self._rename_column(op)
        raise MigrationError(f"Unsupported migration op {op!r}")

    def _add_column(self, op: AddColumn) -> int:
        schema = self.schemas.load_schema(op.table)
        if op.field in schema.fields:
            raise MigrationError(f"Column '{op.field}' already exists in table '{op.table}'")
        decl: FieldDecl = (op.type, op.pattern) if op.pattern else op.type
        schema.fields[op.field] = coerce_field_spec(op.field, decl)
        check_value(schema, op.field, op.default)
        self.schemas.save_schema(schema)

        def fill(row: dict[str, Any]) -> bool:
            if op.field in row:
                return False
            row[op.field] = op.default
            return True

        return self._rewrite(op.table, fill)

    def _drop_column(self, op: DropColumn) -> int:
        schema = self.schemas.load_schema(op.table)
        if op.field not in schema.fields:
            raise MigrationError(f"Column '{op.field}' does not exist in table '{op.table}'")
        if op.field == schema.id_column:
            raise InvalidPrimaryKeyError(op.table, op.field, "the primary key cannot be dropped")
        del schema.fields[op.field]
        self.schemas.save_schema(schema)

        def drop(row: dict[str, Any]) -> bool:
            if op.field not in row:
                return False
            del row[op.field]
            return True

        return self._rewrite(op.table, drop)

    def _rename_column(self, op: RenameColumn) -> int:
        schema = self.schemas.load_schema(op.table)
        if op.old not in schema.fields:
            raise MigrationError(f"Column '{op.old}' does not exist in table '{op.table}'")
        if op.new in schema.fields:
            raise MigrationError(f"Column '{op.new}' already exists in table '{op.table}'")
        coerce_field_spec(op.new, schema.fields[op.old])
        # Rebuild the mapping to keep declaration order
        schema.fields = {
            (op.new if name == op.old else name): spec for name, spec in schema.fields.items()
        }
        if schema.id_column == op.old:
            schema.id_column = op.new
        self.schemas.save_schema(schema)

        def rename(row: dict[str, Any]) -> bool:
            if op.old not in row:
                return False
            row[op.new] = row.pop(op.old)
            return True

        return self._rewrite(op.table, rename)

    def _rewrite(self, table: str, mutate: Callable[[dict[str, Any]], bool]) -> int:
        """Apply mutate to every row, saving each shard in which a row changed."""
        if not self.schemas.exists(table):
            raise SchemaNotFoundError(table)
        rewritten = 0
        for shard in self.shards.iter_shards(table):
            changed = False
            for row in shard.rows.values():
                changed = mutate(row) or changed
            if changed:
                self.shards.save(table, shard)
                rewritten += 1
        return rewritten
