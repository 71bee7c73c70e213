"""Value model: field types, the opaque Json blob, and shape checks."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class Json:
    """An opaque encoded JSON blob stored as-is.

    Distinct from a plain string: a ``JSON`` field only accepts ``Json`` values,
    and a ``STRING`` field never does.
    """

    text: str

    @classmethod
    def dumps(cls, obj: Any) -> Json:
        return cls(json.dumps(obj, sort_keys=True, separators=(",", ":")))

    def loads(self) -> Any:
        return json.loads(self.text)


class FieldType(str, Enum):
    """Declared type of a schema field."""

    STRING = "STRING"
    NUMBER = "NUMBER"
    ARRAY = "ARRAY"
    BOOLEAN = "BOOLEAN"
    JSON = "JSON"
    STRING_NULL = "STRING_NULL"
    NUMBER_NULL = "NUMBER_NULL"
    ARRAY_NULL = "ARRAY_NULL"
    BOOLEAN_NULL = "BOOLEAN_NULL"
    JSON_NULL = "JSON_NULL"

    @property
    def nullable(self) -> bool:
        return self.value.endswith("_NULL")

    @property
    def base(self) -> FieldType:
        """The non-nullable form of this type."""
        return FieldType(self.value.removesuffix("_NULL"))

    @classmethod
    def parse(cls, tag: str | FieldType) -> FieldType:
        """Parse a type tag, accepting 'STRING_NULL', 'stringnull', and 'string?' spellings."""
        if isinstance(tag, FieldType):
            return tag
        norm = tag.strip().upper().replace("_", "")
        if norm.endswith("?"):
            norm = norm[:-1] + "NULL"
        for member in cls:
            if member.value.replace("_", "") == norm:
                return member
        raise ValueError(f"Unknown field type '{tag}'")


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_finite_number(value: Any) -> bool:
    # NaN and infinities have no JSON encoding
    return is_number(value) and (isinstance(value, int) or math.isfinite(value))


def is_value(value: Any) -> bool:
    """Check that value is representable as a stored Value (recursively for arrays)."""
    if value is None or isinstance(value, (str, bool, Json)) or _is_finite_number(value):
        return True
    if isinstance(value, list):
        return all(is_value(v) for v in value)
    return False


def matches_type(value: Any, field_type: FieldType) -> bool:
    """Check a value's runtime shape against a declared field type."""
    if value is None:
        return field_type.nullable
    base = field_type.base
    if base is FieldType.STRING:
        return isinstance(value, str)
    if base is FieldType.NUMBER:
        return _is_finite_number(value)
    if base is FieldType.BOOLEAN:
        return isinstance(value, bool)
    if base is FieldType.JSON:
        return isinstance(value, Json)
    if base is FieldType.ARRAY:
        return isinstance(value, list) and all(is_value(v) for v in value)
    return False


def kind_of(value: Any) -> str:
    """Name the Value variant of a runtime value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, Json):
        return "json"
    return type(value).__name__


def row_id_for(value: Any) -> str:
    """Render a primary-key value as the row ID string.

    Strings pass through; numbers render canonically so 3 and 3.0 share an ID.
    """
    if isinstance(value, str):
        return value
    if is_number(value):
        if isinstance(value, float) and math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value) if isinstance(value, float) else str(value)
    raise TypeError(f"Primary key must be a string or number, got {type(value).__name__}")
