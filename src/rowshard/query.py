"""Query builder: conjunctive filters, a single sort key, and a limit over a table's shards.

A query can also drive writes: update_field, update_row, and delete act on
every row matching the predicates and ignore sort and limit.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

from rowshard.errors import InvalidQueryError, UnknownFieldError
from rowshard.filters import Operator, Predicate, check_operator, matches_all
from rowshard.schema import TableSchema
from rowshard.shards import ShardManager
from rowshard.values import is_number

if TYPE_CHECKING:
    from rowshard.rows import RowEngine


def _sort_key(value: Any) -> tuple[int, Any]:
    # numbers < strings < booleans < everything else (kept in scan order)
    if isinstance(value, bool):
        return (2, int(value))
    if is_number(value):
        return (0, value)
    if isinstance(value, str):
        return (1, value)
    return (3, 0)


def sort_rows(rows: list[dict[str, Any]], field: str, ascending: bool = True) -> list[dict[str, Any]]:
    """Stable sort on one field; null and missing values go last in either direction."""
    present = [r for r in rows if r.get(field) is not None]
    missing = [r for r in rows if r.get(field) is None]
    present.sort(key=lambda r: _sort_key(r[field]), reverse=not ascending)
    return present + missing


class Query:
    """Chainable query over one table."""

    def __init__(
        self, shards: ShardManager, schema: TableSchema, rows: RowEngine | None = None
    ) -> None:
        self._shards = shards
        self._schema = schema
        self._rows = rows
        self._predicates: list[Predicate] = []
        self._sort_field: str | None = None
        self._ascending: bool = True
        self._limit: int | None = None

    @property
    def table(self) -> str:
        return self._schema.name

    def _check_field(self, field: str) -> None:
        if field not in self._schema.fields:
            raise UnknownFieldError(self.table, field)

    def where_(self, field: str, operator: Operator | str, value: Any) -> Query:
        """Add a predicate; predicates combine with AND in the order added."""
        op = check_operator(self._schema, field, operator)
        self._predicates.append(Predicate(field, op, value))
        return self

    def and_(self, field: str, operator: Operator | str, value: Any) -> Query:
        return self.where_(field, operator, value)

    def sort_by(self, field: str, ascending: bool = True) -> Query:
        self._check_field(field)
        self._sort_field = field
        self._ascending = ascending
        return self

    def limit(self, n: int) -> Query:
        if isinstance(n, bool) or not isinstance(n, int) or n < 0:
            raise InvalidQueryError(f"limit must be a non-negative integer, got {n!r}")
        self._limit = n
        return self

    def _run(self, limit: int | None) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        for shard in self._shards.iter_shards(self.table):
            rows.extend(r for r in shard.rows.values() if matches_all(r, self._predicates))
        if self._sort_field is not None:
            rows = sort_rows(rows, self._sort_field, self._ascending)
        if limit is not None:
            rows = rows[:limit]
        return rows

    def execute(self) -> list[dict[str, Any]]:
        """Filter, sort, and truncate; returns a materialized list."""
        return self._run(self._limit)

    def count(self) -> int:
        return len(self.execute())

    def first(self) -> dict[str, Any] | None:
        limit = 1 if self._limit is None else min(self._limit, 1)
        results = self._run(limit)
        return results[0] if results else None

    def exists(self) -> bool:
        return self.first() is not None

    # --- Writes ---

    def _writer(self) -> RowEngine:
        if self._rows is None:
            raise InvalidQueryError(f"Query on {self.table} is read-only")
        return self._rows

    def update_field(self, field: str, value: Any) -> int:
        """Set one field on every matching row; returns the number updated."""
        return self._writer().update_where(self.table, self._predicates, {field: value})

    def update_row(self, changes: Mapping[str, Any]) -> int:
        """Merge a partial row into every matching row; returns the number updated."""
        return self._writer().update_where(self.table, self._predicates, changes)

    def delete(self) -> int:
        """Remove every matching row; returns the number removed."""
        return self._writer().delete_where(self.table, self._predicates)
