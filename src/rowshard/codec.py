"""JSON codec for values and on-disk documents.

Values are native JSON except ``Json`` blobs, which are tagged as
``{"$json": "<text>"}`` so they round-trip distinct from strings.
"""

from __future__ import annotations

import json
from typing import Any

from rowshard.values import Json

JSON_TAG = "$json"


def _default(obj: Any) -> Any:
    if isinstance(obj, Json):
        return {JSON_TAG: obj.text}
    raise TypeError(f"Object of type {type(obj).__name__} is not a storable value")


def _object_hook(obj: dict[str, Any]) -> Any:
    if len(obj) == 1 and JSON_TAG in obj and isinstance(obj[JSON_TAG], str):
        return Json(obj[JSON_TAG])
    return obj


def tag_value(value: Any) -> Any:
    """Replace Json blobs (also inside arrays) with their tagged mapping form."""
    if isinstance(value, Json):
        return {JSON_TAG: value.text}
    if isinstance(value, list):
        return [tag_value(v) for v in value]
    return value


def untag_value(value: Any) -> Any:
    """Inverse of tag_value."""
    if isinstance(value, dict):
        return _object_hook(value)
    if isinstance(value, list):
        return [untag_value(v) for v in value]
    return value


def encode(value: Any, *, indent: int | None = None) -> bytes:
    """Encode a value (or a document containing values) to UTF-8 JSON bytes."""
    if indent is None:
        text = json.dumps(value, default=_default, separators=(",", ":"), allow_nan=False)
    else:
        text = json.dumps(value, default=_default, indent=indent, allow_nan=False)
    return text.encode("utf-8")


def decode(data: bytes) -> Any:
    """Decode UTF-8 JSON bytes produced by encode()."""
    return json.loads(data.decode("utf-8"), object_hook=_object_hook)
