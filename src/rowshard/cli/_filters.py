"""CLI filter token parser: converts FIELD OP VALUE_JSON triples to query predicates."""

from __future__ import annotations

from typing import Any

from rowshard import codec
from rowshard.filters import Operator


def split_filter(arg: str) -> tuple[str, str, str]:
    """Split a 'FIELD OP VALUE_JSON' string; the value may contain spaces."""
    parts = arg.split(None, 2)
    if len(parts) != 3:
        raise ValueError(f"Invalid filter (expected 'FIELD OP VALUE_JSON'): {arg}")
    return parts[0], parts[1], parts[2]


def parse_cli_filters(args: list[str] | None) -> list[tuple[str, Operator, Any]]:
    """Parse --filter args into (field, operator, value) triples, AND-combined by the caller."""
    if not args:
        return []

    result: list[tuple[str, Operator, Any]] = []
    for arg in args:
        field, op_token, value_json = split_filter(arg)
        op = Operator.parse(op_token)
        try:
            value = codec.decode(value_json.encode("utf-8"))
        except ValueError as e:
            raise ValueError(f"Invalid filter value for '{field}': {value_json}") from e
        result.append((field, op, value))
    return result


def parse_json_arg(text: str, what: str = "value") -> Any:
    """Decode a JSON command-line argument ({"$json": ...} yields a Json blob)."""
    try:
        return codec.decode(text.encode("utf-8"))
    except ValueError as e:
        raise ValueError(f"Invalid JSON {what}: {e}") from e
