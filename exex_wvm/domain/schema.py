"""
Schema registry: table name to column layout.

The registry is built once at startup and handed to every component that needs
a table layout; nothing looks schemas up through module globals.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Tuple

from exex_wvm.domain.models import TableSchema

STATE_TABLE = "state"

# indexed_id is generated client side; BigQuery has no autogenerated keys.
COMMON_COLUMNS: Tuple[Tuple[str, str], ...] = (
    ("indexed_id", "string"),
    ("block_number", "int"),
    ("sealed_block_with_senders", "string"),
    ("arweave_id", "string"),
    ("timestamp", "int"),
    ("block_hash", "string"),
)


class SchemaRegistry:
    """Read-only lookup of table schemas by logical table name."""

    def __init__(self, tables: Mapping[str, TableSchema]) -> None:
        self._tables: Mapping[str, TableSchema] = MappingProxyType(dict(tables))

    def schema_for(self, table_name: str) -> Optional[TableSchema]:
        return self._tables.get(table_name)

    def tables(self) -> Iterator[Tuple[str, TableSchema]]:
        return iter(self._tables.items())

    def __contains__(self, table_name: object) -> bool:
        return table_name in self._tables

    def __len__(self) -> int:
        return len(self._tables)


def prepare_blockstate_table_config() -> Dict[str, TableSchema]:
    """Column layout of every table written by the block state sink."""
    return {STATE_TABLE: TableSchema(COMMON_COLUMNS)}


def default_registry() -> SchemaRegistry:
    return SchemaRegistry(prepare_blockstate_table_config())


__all__ = [
    "STATE_TABLE",
    "COMMON_COLUMNS",
    "SchemaRegistry",
    "default_registry",
    "prepare_blockstate_table_config",
]
