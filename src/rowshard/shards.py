"""Shard manager: ordinal-range partitioning of table rows into flat files.

Layout under the database root::

    <root>/<table>/000000000000-000000000999.json   # rows with ordinals 0..999
    <root>/<table>/000000001000-000000001999.json
    <root>/<table>/_keys.json                       # row_id -> ordinal
    <root>/<table>/_layout.json                     # capacity and bound width

Invariants:
    - Shard ranges are fixed-size and never overlap; shard k covers
      [k * C, (k + 1) * C - 1] for the capacity C fixed when the table was
      created. The layout is stored with the table, so reopening with a
      different configuration never changes how existing ordinals map.
    - A row's ordinal is allocated once from the table's counter and never
      changes, so its owning shard never changes either.
    - Bounds are zero-padded in filenames, so lexical order is ordinal order.
    - Every mutation rewrites a whole shard file.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from rowshard.config import RowshardConfig
from rowshard.errors import RowNotFoundError, ShardIOError
from rowshard.storage import read_document_or_none, remove_tree, write_document

logger = logging.getLogger(__name__)

KEYS_FILE = "_keys.json"
LAYOUT_FILE = "_layout.json"
_SHARD_NAME_RE = re.compile(r"^(\d+)-(\d+)\.json$")


@dataclass(frozen=True, order=True)
class ShardKey:
    """Inclusive ordinal range owned by one shard file."""

    lo: int
    hi: int

    def contains(self, ordinal: int) -> bool:
        return self.lo <= ordinal <= self.hi

    def filename(self, width: int) -> str:
        return f"{self.lo:0{width}d}-{self.hi:0{width}d}.json"

    @classmethod
    def parse(cls, filename: str) -> ShardKey | None:
        """Parse a shard filename; returns None for files that are not shards."""
        m = _SHARD_NAME_RE.match(filename)
        if m is None:
            return None
        return cls(int(m.group(1)), int(m.group(2)))


class ShardLayout(BaseModel):
    """Per-table shard geometry, persisted when the table is created."""

    model_config = ConfigDict(frozen=True)

    max_rows_per_shard: int = Field(gt=0)
    bound_width: int = Field(gt=0)

    @classmethod
    def from_config(cls, config: RowshardConfig) -> ShardLayout:
        return cls(max_rows_per_shard=config.max_rows_per_shard, bound_width=config.bound_width)

    def key_for_ordinal(self, ordinal: int) -> ShardKey:
        if ordinal < 0:
            raise ValueError(f"Ordinal must be non-negative, got {ordinal}")
        cap = self.max_rows_per_shard
        lo = (ordinal // cap) * cap
        return ShardKey(lo, lo + cap - 1)


@dataclass
class Shard:
    """One bounded partition of a table's rows."""

    table: str
    key: ShardKey
    rows: dict[str, dict[str, Any]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.rows)

    def to_document(self) -> dict[str, Any]:
        return {"table": self.table, "lo": self.key.lo, "hi": self.key.hi, "rows": self.rows}


class ShardManager:
    """Maps rows to shard files and loads/saves whole shards."""

    def __init__(self, root: Path, config: RowshardConfig) -> None:
        self.root = root
        self.config = config
        self._layouts: dict[str, ShardLayout] = {}

    # --- Paths ---

    def table_dir(self, table: str) -> Path:
        return self.root / table

    def shard_path(self, table: str, key: ShardKey) -> Path:
        return self.table_dir(table) / key.filename(self.layout(table).bound_width)

    def _layout_path(self, table: str) -> Path:
        return self.table_dir(table) / LAYOUT_FILE

    def ensure_table(self, table: str) -> None:
        """Create the table directory and pin its layout to the current config."""
        try:
            self.table_dir(table).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ShardIOError("create_table_dir", str(self.table_dir(table)), str(e)) from e
        if self._layout_path(table).exists():
            return
        layout = ShardLayout.from_config(self.config)
        write_document(
            self._layout_path(table),
            layout.model_dump(),
            indent=self.config.indent,
            operation="save_layout",
        )
        self._layouts[table] = layout

    def drop_table(self, table: str) -> None:
        """Remove every shard, the key index, and the layout of a table."""
        remove_tree(self.table_dir(table), operation="drop_table")
        self._layouts.pop(table, None)

    # --- Range mapping ---

    def layout(self, table: str) -> ShardLayout:
        """The table's stored layout; the current config if none was stored."""
        cached = self._layouts.get(table)
        if cached is not None:
            return cached
        path = self._layout_path(table)
        doc = read_document_or_none(path, operation="load_layout")
        if doc is None:
            return ShardLayout.from_config(self.config)
        try:
            layout = ShardLayout.model_validate(doc)
        except PydanticValidationError as e:
            raise ShardIOError("load_layout", str(path), f"malformed layout: {e}") from e
        self._layouts[table] = layout
        return layout

    def key_for_ordinal(self, table: str, ordinal: int) -> ShardKey:
        return self.layout(table).key_for_ordinal(ordinal)

    def shard_for(self, table: str, row_id: str) -> ShardKey:
        """Resolve the shard owning an existing row via the key index."""
        ordinal = self.load_keys(table).get(row_id)
        if ordinal is None:
            raise RowNotFoundError(table, row_id)
        return self.key_for_ordinal(table, ordinal)

    # --- Shards ---

    def all_shards(self, table: str) -> list[ShardKey]:
        """List existing shard keys of a table in bound order."""
        tdir = self.table_dir(table)
        if not tdir.is_dir():
            return []
        try:
            names = [p.name for p in tdir.iterdir() if p.is_file()]
        except OSError as e:
            raise ShardIOError("list_shards", str(tdir), str(e)) from e
        keys = [k for k in (ShardKey.parse(n) for n in names) if k is not None]
        return sorted(keys)

    def load(self, table: str, key: ShardKey) -> Shard:
        """Load a shard; a shard that was never written loads empty."""
        path = self.shard_path(table, key)
        doc = read_document_or_none(path, operation="load_shard")
        if doc is None:
            return Shard(table=table, key=key)
        if not isinstance(doc, dict) or not isinstance(doc.get("rows"), dict):
            raise ShardIOError("load_shard", str(path), "missing 'rows' mapping")
        if (doc.get("lo"), doc.get("hi")) != (key.lo, key.hi):
            raise ShardIOError(
                "load_shard",
                str(path),
                f"bounds {doc.get('lo')}-{doc.get('hi')} do not match filename {key.lo}-{key.hi}",
            )
        shard = Shard(table=table, key=key, rows=doc["rows"])
        logger.debug("loaded shard %s/%s (%d rows)", table, path.name, len(shard))
        return shard

    def save(self, table: str, shard: Shard) -> None:
        """Overwrite the whole shard file."""
        path = self.shard_path(table, shard.key)
        write_document(path, shard.to_document(), indent=self.config.indent, operation="save_shard")
        logger.debug("saved shard %s/%s (%d rows)", table, path.name, len(shard))

    def iter_shards(self, table: str) -> Iterator[Shard]:
        for key in self.all_shards(table):
            yield self.load(table, key)

    # --- Key index ---

    def _keys_path(self, table: str) -> Path:
        return self.table_dir(table) / KEYS_FILE

    def load_keys(self, table: str) -> dict[str, int]:
        path = self._keys_path(table)
        doc = read_document_or_none(path, operation="load_keys")
        if doc is None:
            return {}
        if not isinstance(doc, dict):
            raise ShardIOError("load_keys", str(path), "expected a mapping of row id to ordinal")
        return doc

    def save_keys(self, table: str, keys: dict[str, int]) -> None:
        write_document(
            self._keys_path(table), keys, indent=self.config.indent, operation="save_keys"
        )

    def rebuild_keys(self, table: str) -> dict[str, int]:
        """Regenerate the key index by scanning every shard.

        Exact ordinals are not recoverable from shard contents; each row is
        assigned its shard's lower bound, which maps to the same shard.
        """
        logger.warning("rebuilding key index for table %s", table)
        keys: dict[str, int] = {}
        for shard in self.iter_shards(table):
            for row_id in shard.rows:
                keys[row_id] = shard.key.lo
        self.save_keys(table, keys)
        return keys
