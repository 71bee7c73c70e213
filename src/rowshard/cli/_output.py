"""Output formatting helpers for the CLI."""

from __future__ import annotations

import json
import sys
from typing import Any

from rowshard.codec import JSON_TAG
from rowshard.values import Json


def _default(obj: Any) -> Any:
    if isinstance(obj, Json):
        return {JSON_TAG: obj.text}
    return str(obj)


def dumps(data: Any) -> str:
    return json.dumps(data, indent=2, default=_default)


def format_value(value: Any) -> str:
    """Render one stored value for text output."""
    if value is None:
        return "null"
    if isinstance(value, (bool, list, Json)):
        return json.dumps(value, default=_default)
    return str(value)


def print_table(headers: list[str], rows: list[list[Any]], *, json_mode: bool = False) -> None:
    """Print data as a table (text) or JSON array."""
    if json_mode:
        data = [dict(zip(headers, row)) for row in rows]
        print(dumps(data))
        return

    if not rows:
        return

    widths = [len(h) for h in headers]
    str_rows = [[format_value(v) for v in row] for row in rows]
    for row in str_rows:
        for i, val in enumerate(row):
            if i < len(widths):
                widths[i] = max(widths[i], len(val))

    print("  ".join(h.ljust(widths[i]) for i, h in enumerate(headers)))
    print("  ".join("-" * w for w in widths))
    for row in str_rows:
        print(
            "  ".join(val.ljust(widths[i]) if i < len(widths) else val for i, val in enumerate(row))
        )


def print_rows(rows: list[dict[str, Any]], *, json_mode: bool = False) -> None:
    """Print rows as a table over the union of their fields, or as a JSON array."""
    if json_mode:
        print(dumps(rows))
        return
    headers: list[str] = []
    for row in rows:
        headers.extend(k for k in row if k not in headers)
    print_table(headers, [[row.get(h) for h in headers] for row in rows])


def print_object(data: dict[str, Any] | list[Any], *, json_mode: bool = False) -> None:
    """Print a single object or list as JSON or key-value pairs."""
    if json_mode:
        print(dumps(data))
        return

    if isinstance(data, list):
        for item in data:
            if isinstance(item, dict):
                for k, v in item.items():
                    print(f"  {k}: {format_value(v)}")
                print()
            else:
                print(f"  {item}")
        return

    for k, v in data.items():
        print(f"{k}: {format_value(v)}")


def print_error(msg: str) -> None:
    """Print an error message to stderr."""
    print(f"Error: {msg}", file=sys.stderr)
