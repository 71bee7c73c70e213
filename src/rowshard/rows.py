"""Row engine: insert, get, update, and delete built on the shard manager and validator."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping

from rowshard.errors import (
    DuplicateKeyError,
    MissingPrimaryKeyError,
    RowNotFoundError,
    TypeMismatchError,
)
from rowshard.filters import Operator, Predicate, check_operator, compare_values, matches_all
from rowshard.ids import new_id
from rowshard.schema import SchemaStore, TableSchema
from rowshard.shards import Shard, ShardManager
from rowshard.validation import check_value, validate
from rowshard.values import FieldType, row_id_for

logger = logging.getLogger(__name__)


def _key_of(schema: TableSchema, row: Mapping[str, Any]) -> str:
    value = row.get(schema.id_column)
    if value is None:
        raise MissingPrimaryKeyError(schema.name, schema.id_column)
    try:
        return row_id_for(value)
    except TypeError as e:
        raise TypeMismatchError(
            schema.name, schema.id_column, schema.id_spec.type.value, value
        ) from e


def _as_row_id(table: str, id_value: Any) -> str:
    try:
        return row_id_for(id_value)
    except TypeError as e:
        raise RowNotFoundError(table, repr(id_value)) from e


class RowEngine:
    """CRUD over sharded rows. Every mutation rewrites whole shards."""

    def __init__(self, schemas: SchemaStore, shards: ShardManager) -> None:
        self.schemas = schemas
        self.shards = shards

    # --- Inserts ---

    def _prepare(
        self,
        schema: TableSchema,
        row: Mapping[str, Any],
        patterns: Mapping[str, str] | None,
        auto_id: bool,
    ) -> dict[str, Any]:
        row = dict(row)
        if (
            auto_id
            and row.get(schema.id_column) is None
            and schema.id_spec.type is FieldType.STRING
        ):
            row[schema.id_column] = new_id()
        validate(schema, row, patterns=patterns)
        return row

    def insert(
        self,
        table: str,
        row: Mapping[str, Any],
        *,
        patterns: Mapping[str, str] | None = None,
        auto_id: bool = False,
    ) -> str:
        """Validate and store one row; returns its row ID."""
        schema = self.schemas.load_schema(table)
        row = self._prepare(schema, row, patterns, auto_id)
        row_id = _key_of(schema, row)
        keys = self.shards.load_keys(table)
        if row_id in keys:
            raise DuplicateKeyError(table, row_id)

        ordinal = schema.next_ordinal
        shard = self.shards.load(table, self.shards.key_for_ordinal(table, ordinal))
        shard.rows[row_id] = row
        self.shards.save(table, shard)

        keys[row_id] = ordinal
        self.shards.save_keys(table, keys)
        schema.next_ordinal = ordinal + 1
        self.schemas.save_schema(schema)
        logger.debug("inserted %s/%s at ordinal %d", table, row_id, ordinal)
        return row_id

    def insert_many(
        self,
        table: str,
        rows: Iterable[Mapping[str, Any]],
        *,
        patterns: Mapping[str, str] | None = None,
        auto_id: bool = False,
    ) -> list[str]:
        """Insert rows in order, flushing each shard once it is complete.

        Not atomic: on failure, shards flushed so far stay on disk with their
        index entries and the advanced counter.
        """
        schema = self.schemas.load_schema(table)
        keys = self.shards.load_keys(table)
        ids: list[str] = []
        pending: Shard | None = None

        def flush() -> None:
            if pending is None:
                return
            self.shards.save(table, pending)
            self.shards.save_keys(table, keys)
            self.schemas.save_schema(schema)

        for row in rows:
            row = self._prepare(schema, row, patterns, auto_id)
            row_id = _key_of(schema, row)
            if row_id in keys:
                raise DuplicateKeyError(table, row_id)
            ordinal = schema.next_ordinal
            key = self.shards.key_for_ordinal(table, ordinal)
            if pending is None or pending.key != key:
                flush()
                pending = self.shards.load(table, key)
            pending.rows[row_id] = row
            keys[row_id] = ordinal
            schema.next_ordinal = ordinal + 1
            ids.append(row_id)
        flush()
        logger.debug("inserted %d rows into %s", len(ids), table)
        return ids

    # --- Reads ---

    def get_by_id(self, table: str, id_value: Any) -> dict[str, Any]:
        self.schemas.load_schema(table)
        row_id = _as_row_id(table, id_value)
        key = self.shards.shard_for(table, row_id)
        row = self.shards.load(table, key).rows.get(row_id)
        if row is None:
            raise RowNotFoundError(table, row_id)
        return row

    def get_all(self, table: str) -> list[dict[str, Any]]:
        """All rows in shard bound order, stored order within a shard."""
        self.schemas.load_schema(table)
        rows: list[dict[str, Any]] = []
        for shard in self.shards.iter_shards(table):
            rows.extend(shard.rows.values())
        return rows

    # --- Updates ---

    def _update_matching(
        self,
        schema: TableSchema,
        hit: Callable[[Mapping[str, Any]], bool],
        changes: Mapping[str, Any],
        multi: bool,
    ) -> int:
        """Merge changes into rows selected by hit, rewriting each touched shard once."""
        table = schema.name
        for name, value in changes.items():
            check_value(schema, name, value)
        rekey = schema.id_column in changes
        if rekey and changes[schema.id_column] is None:
            raise MissingPrimaryKeyError(table, schema.id_column)
        keys = self.shards.load_keys(table) if rekey else {}

        updated = 0
        for shard in self.shards.iter_shards(table):
            changed = False
            for row_id, row in list(shard.rows.items()):
                if not hit(row):
                    continue
                new_row = {**row, **changes}
                validate(schema, new_row)
                target_id = _key_of(schema, new_row) if rekey else row_id
                if target_id != row_id:
                    if target_id in keys:
                        raise DuplicateKeyError(table, target_id)
                    keys[target_id] = keys.pop(row_id)
                    del shard.rows[row_id]
                shard.rows[target_id] = new_row
                changed = True
                updated += 1
                if not multi:
                    break
            if changed:
                self.shards.save(table, shard)
                if rekey:
                    self.shards.save_keys(table, keys)
            if updated and not multi:
                break
        return updated

    def _where(
        self,
        schema: TableSchema,
        match_field: str,
        match_value: Any,
        match_null_as_match: bool,
        comparator: Operator | str,
    ) -> Callable[[Mapping[str, Any]], bool]:
        op = check_operator(schema, match_field, comparator)

        def hit(row: Mapping[str, Any]) -> bool:
            current = row.get(match_field)
            if current is None and match_null_as_match and op is Operator.EQ:
                return True
            return compare_values(current, op, match_value)

        return hit

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
        """Set target_field on every row whose match_field satisfies the comparator.

        A null or missing match value counts as a match only when
        match_null_as_match is set and the comparator is EQ. With multi off,
        only the first matching row in bound order is updated.
        """
        schema = self.schemas.load_schema(table)
        hit = self._where(schema, match_field, match_value, match_null_as_match, comparator)
        updated = self._update_matching(schema, hit, {target_field: new_value}, multi)
        logger.debug("updated %d rows of %s (%s)", updated, table, match_field)
        return updated

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
        """Merge a partial row into every row selected as in update_field_where."""
        schema = self.schemas.load_schema(table)
        hit = self._where(schema, match_field, match_value, match_null_as_match, comparator)
        updated = self._update_matching(schema, hit, changes, multi)
        logger.debug("updated %d rows of %s (%s)", updated, table, match_field)
        return updated

    def update_where(
        self,
        table: str,
        predicates: Iterable[Predicate],
        changes: Mapping[str, Any],
        multi: bool = True,
    ) -> int:
        """Merge changes into every row satisfying all predicates."""
        schema = self.schemas.load_schema(table)
        predicates = list(predicates)
        return self._update_matching(schema, lambda r: matches_all(r, predicates), changes, multi)

    def update_by_id(
        self,
        table: str,
        id_value: Any,
        changes: Mapping[str, Any],
        *,
        patterns: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        """Merge changes into one row and rewrite its shard; returns the new row."""
        schema = self.schemas.load_schema(table)
        row_id = _as_row_id(table, id_value)
        key = self.shards.shard_for(table, row_id)
        shard = self.shards.load(table, key)
        row = shard.rows.get(row_id)
        if row is None:
            raise RowNotFoundError(table, row_id)
        new_row = {**row, **changes}
        validate(schema, new_row, patterns=patterns)
        target_id = _key_of(schema, new_row)
        if target_id != row_id:
            keys = self.shards.load_keys(table)
            if target_id in keys:
                raise DuplicateKeyError(table, target_id)
            keys[target_id] = keys.pop(row_id)
            del shard.rows[row_id]
            shard.rows[target_id] = new_row
            self.shards.save(table, shard)
            self.shards.save_keys(table, keys)
        else:
            shard.rows[row_id] = new_row
            self.shards.save(table, shard)
        return new_row

    # --- Deletes ---

    def delete_row_by_id(self, table: str, id_value: Any) -> dict[str, Any]:
        """Remove one row; returns it. The emptied slot's ordinal is not reused."""
        self.schemas.load_schema(table)
        row_id = _as_row_id(table, id_value)
        key = self.shards.shard_for(table, row_id)
        shard = self.shards.load(table, key)
        row = shard.rows.pop(row_id, None)
        if row is None:
            raise RowNotFoundError(table, row_id)
        self.shards.save(table, shard)
        keys = self.shards.load_keys(table)
        keys.pop(row_id, None)
        self.shards.save_keys(table, keys)
        return row

    def _delete_matching(
        self, table: str, hit: Callable[[Mapping[str, Any]], bool], multi: bool
    ) -> int:
        keys = self.shards.load_keys(table)
        removed = 0
        for shard in self.shards.iter_shards(table):
            doomed = [rid for rid, row in shard.rows.items() if hit(row)]
            if not multi:
                doomed = doomed[:1]
            if not doomed:
                continue
            for rid in doomed:
                del shard.rows[rid]
                keys.pop(rid, None)
            self.shards.save(table, shard)
            self.shards.save_keys(table, keys)
            removed += len(doomed)
            if not multi:
                break
        logger.debug("deleted %d rows from %s", removed, table)
        return removed

    def delete_by_condition(
        self,
        table: str,
        field: str,
        operator: Operator | str,
        value: Any,
        multi: bool = True,
    ) -> int:
        """Remove every row where ``row[field] <operator> value`` holds."""
        schema = self.schemas.load_schema(table)
        op = check_operator(schema, field, operator)
        return self._delete_matching(
            table, lambda r: compare_values(r.get(field), op, value), multi
        )

    def delete_where(self, table: str, predicates: Iterable[Predicate]) -> int:
        """Remove every row satisfying all predicates."""
        self.schemas.load_schema(table)
        predicates = list(predicates)
        return self._delete_matching(table, lambda r: matches_all(r, predicates), True)
