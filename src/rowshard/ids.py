"""Row ID generation."""

from __future__ import annotations

import uuid


def new_id() -> str:
    """Return a fresh random row ID (32 hex chars)."""
    return uuid.uuid4().hex
