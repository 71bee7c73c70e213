"""Predicate types and type-directed value comparison for queries and conditional writes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from rowshard.errors import InvalidQueryError, UnknownFieldError
from rowshard.values import FieldType, Json, is_number

if TYPE_CHECKING:
    from rowshard.schema import TableSchema


class Operator(str, Enum):
    """Comparison operators. All but CONTAINS are relational."""

    EQ = "=="
    NEQ = "!="
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="
    CONTAINS = "CONTAINS"

    @classmethod
    def parse(cls, token: str | Operator) -> Operator:
        """Resolve an operator from a symbol ('>='), a token ('gte'), or a member name."""
        if isinstance(token, Operator):
            return token
        if not isinstance(token, str):
            raise ValueError(f"Unknown operator {token!r}")
        op = _OP_TOKENS.get(token.strip().lower())
        if op is None:
            raise ValueError(
                f"Unknown operator '{token}'. Valid operators: {', '.join(sorted(_OP_TOKENS))}"
            )
        return op


# Map CLI/text tokens to operators
_OP_TOKENS: dict[str, Operator] = {
    "eq": Operator.EQ,
    "==": Operator.EQ,
    "=": Operator.EQ,
    "ne": Operator.NEQ,
    "neq": Operator.NEQ,
    "!=": Operator.NEQ,
    "gt": Operator.GT,
    ">": Operator.GT,
    "gte": Operator.GTE,
    ">=": Operator.GTE,
    "lt": Operator.LT,
    "<": Operator.LT,
    "lte": Operator.LTE,
    "<=": Operator.LTE,
    "contains": Operator.CONTAINS,
}

_INCOMPARABLE = object()


def values_equal(left: Any, right: Any) -> bool:
    """Structural equality that keeps booleans, numbers, and Json blobs apart."""
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if is_number(left) and is_number(right):
        return left == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if isinstance(left, Json) and isinstance(right, Json):
        return left.text == right.text
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(values_equal(a, b) for a, b in zip(left, right))
    return False


def _order(left: Any, right: Any) -> int | object:
    """Three-way compare orderable values of the same kind; _INCOMPARABLE otherwise."""
    if isinstance(left, bool) or isinstance(right, bool):
        if not (isinstance(left, bool) and isinstance(right, bool)):
            return _INCOMPARABLE
    elif is_number(left) and is_number(right):
        pass
    elif not (isinstance(left, str) and isinstance(right, str)):
        return _INCOMPARABLE
    return (left > right) - (left < right)


def _contains(left: Any, right: Any) -> bool:
    if isinstance(left, list):
        return any(values_equal(item, right) for item in left)
    if isinstance(left, str) and isinstance(right, str):
        return right in left
    return False


def compare_values(left: Any, op: Operator, right: Any) -> bool:
    """Evaluate ``left <op> right`` under type-directed rules.

    Mismatched kinds are incomparable: false for EQ and ordering operators,
    true for NEQ. Arrays and Json blobs support only EQ/NEQ (and CONTAINS for
    arrays).
    """
    if op is Operator.EQ:
        return values_equal(left, right)
    if op is Operator.NEQ:
        return not values_equal(left, right)
    if op is Operator.CONTAINS:
        return _contains(left, right)
    order = _order(left, right)
    if order is _INCOMPARABLE:
        return False
    if op is Operator.GT:
        return order > 0
    if op is Operator.GTE:
        return order >= 0
    if op is Operator.LT:
        return order < 0
    if op is Operator.LTE:
        return order <= 0
    return False


@dataclass(frozen=True)
class Predicate:
    """A field/operator/value comparison; missing fields read as null."""

    field: str
    op: Operator
    value: Any = None

    def __hash__(self) -> int:
        v = self.value
        if isinstance(v, list):
            v = tuple(v)
        return hash((self.field, self.op, v))

    def matches(self, row: Mapping[str, Any]) -> bool:
        return compare_values(row.get(self.field), self.op, self.value)


def matches_all(row: Mapping[str, Any], predicates: Iterable[Predicate]) -> bool:
    """Implicit-AND evaluation of a predicate list."""
    return all(p.matches(row) for p in predicates)


CONTAINS_TYPES = frozenset({FieldType.STRING, FieldType.ARRAY})


def check_operator(schema: TableSchema, field: str, operator: Operator | str) -> Operator:
    """Resolve an operator for a comparison on schema's field.

    Raises UnknownFieldError for an undeclared field and InvalidQueryError for
    an unknown operator or CONTAINS on a field that is not a string or array.
    """
    if field not in schema.fields:
        raise UnknownFieldError(schema.name, field)
    try:
        op = Operator.parse(operator)
    except ValueError as e:
        raise InvalidQueryError(str(e)) from e
    spec = schema.fields[field]
    if op is Operator.CONTAINS and spec.type.base not in CONTAINS_TYPES:
        raise InvalidQueryError(
            f"CONTAINS is not supported on {schema.name}.{field} ({spec.type.value})"
        )
    return op
