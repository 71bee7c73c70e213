"""Configuration for the rowshard engine."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class RowshardConfig:
    """Configuration for a rowshard database."""

    max_rows_per_shard: int = 1000
    bound_width: int = 12
    indent: int | None = None

    def __post_init__(self) -> None:
        if self.max_rows_per_shard <= 0:
            raise ValueError(f"max_rows_per_shard must be positive, got {self.max_rows_per_shard}")
        if self.bound_width <= 0:
            raise ValueError(f"bound_width must be positive, got {self.bound_width}")

    @classmethod
    def from_env(cls) -> RowshardConfig:
        """Load configuration from ROWSHARD_* environment variables."""
        indent = os.getenv("ROWSHARD_INDENT")
        return cls(
            max_rows_per_shard=int(os.getenv("ROWSHARD_MAX_ROWS_PER_SHARD", "1000")),
            bound_width=int(os.getenv("ROWSHARD_BOUND_WIDTH", "12")),
            indent=int(indent) if indent else None,
        )
