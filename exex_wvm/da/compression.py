"""
Brotli compression for block payloads bound for the settlement layer.

The settlement sender itself lives outside this package; these helpers only
turn a block into the compressed bytes it ships.
"""

from __future__ import annotations

import json
from typing import Any

import brotli
from pydantic_core import to_jsonable_python


def to_compressed(data: bytes) -> bytes:
    """One-shot Brotli compression of ``data`` with the library defaults."""
    return brotli.compress(bytes(data))


def process_block(block: Any) -> bytes:
    """
    Serialize a block to compact JSON and compress it.

    Accepts anything pydantic can render as JSON (models, dataclasses,
    mappings, sequences).
    """
    encoded = json.dumps(to_jsonable_python(block), separators=(",", ":")).encode("utf-8")
    return to_compressed(encoded)


__all__ = ["to_compressed", "process_block"]
