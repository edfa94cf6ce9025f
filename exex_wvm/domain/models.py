"""
Domain models for the ExEx BigQuery sink.

Defines the logical column types, the immutable table schema, the row record
shape sent over the wire and the execution tip state written once per
committed block.
"""
from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Tuple, Union

from pydantic import BaseModel, Field

from exex_wvm.errors import UnsupportedTypeError

U64_MAX = 2**64 - 1

WireValue = Union[int, str, None]
RowRecord = Dict[str, WireValue]


class LogicalType(str, Enum):
    """Closed set of column types a table schema may declare."""

    INT = "int"
    STRING = "string"

    @classmethod
    def parse(cls, tag: Union[str, "LogicalType"]) -> "LogicalType":
        try:
            return cls(tag)
        except ValueError:
            raise UnsupportedTypeError(tag) from None

    @property
    def field_type(self) -> str:
        """BigQuery standard field type for this logical type."""
        return _FIELD_TYPES[self]


_FIELD_TYPES = {
    LogicalType.INT: "INTEGER",
    LogicalType.STRING: "STRING",
}


class TableSchema(Mapping[str, LogicalType]):
    """
    Immutable, ordered mapping of column name to logical type.

    Column order is the declaration order and is preserved when the remote
    table is created.
    """

    __slots__ = ("_columns",)

    def __init__(self, columns: Union[Mapping[str, str], Iterable[Tuple[str, str]]]) -> None:
        pairs = columns.items() if isinstance(columns, Mapping) else columns
        ordered: Dict[str, LogicalType] = {}
        for name, tag in pairs:
            if name in ordered:
                raise ValueError(f"Duplicate column '{name}' in table schema")
            ordered[name] = LogicalType.parse(tag)
        self._columns = MappingProxyType(ordered)

    def __getitem__(self, name: str) -> LogicalType:
        return self._columns[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __repr__(self) -> str:
        body = ", ".join(f"{name}={kind.value}" for name, kind in self._columns.items())
        return f"TableSchema({body})"


class ExecutionTipState(BaseModel):
    """
    State of the most recently committed block, written once per block.
    """

    block_number: int = Field(..., ge=0, le=U64_MAX, description="Committed block height.")
    arweave_id: str = Field(..., description="Arweave transaction id of the archived block.")
    sealed_block_with_senders_serialized: str = Field(
        ..., description="Opaque serialized sealed block payload."
    )
    block_hash: str = Field(..., description="Hash of the committed block.")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }


__all__ = [
    "U64_MAX",
    "WireValue",
    "RowRecord",
    "LogicalType",
    "TableSchema",
    "ExecutionTipState",
]
