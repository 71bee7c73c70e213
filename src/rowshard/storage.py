"""File-backed document primitives shared by the schema, shard, and ledger stores."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any

from rowshard import codec
from rowshard.errors import ShardIOError

logger = logging.getLogger(__name__)


def read_document(path: Path, *, operation: str = "read") -> Any:
    """Read and decode a JSON document, raising ShardIOError on any failure."""
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ShardIOError(operation, str(path), str(e)) from e
    try:
        return codec.decode(data)
    except ValueError as e:
        raise ShardIOError(operation, str(path), f"undecodable content: {e}") from e


def read_document_or_none(path: Path, *, operation: str = "read") -> Any:
    """Like read_document, but return None when the file does not exist."""
    if not path.exists():
        return None
    return read_document(path, operation=operation)


def write_document(
    path: Path, doc: Any, *, indent: int | None = None, operation: str = "write"
) -> None:
    """Encode a document and overwrite the whole file."""
    try:
        body = codec.encode(doc, indent=indent)
    except (TypeError, ValueError) as e:
        raise ShardIOError(operation, str(path), f"unencodable content: {e}") from e
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(body)
    except OSError as e:
        raise ShardIOError(operation, str(path), str(e)) from e
    logger.debug("wrote %s (%d bytes)", path, len(body))


def remove_file(path: Path, *, operation: str = "delete") -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        raise ShardIOError(operation, str(path), str(e)) from e


def remove_tree(path: Path, *, operation: str = "delete") -> None:
    if not path.exists():
        return
    try:
        shutil.rmtree(path)
    except OSError as e:
        raise ShardIOError(operation, str(path), str(e)) from e
