"""
Row materialization: polars DataFrame to BigQuery row records.
"""

from __future__ import annotations

from typing import List

import polars as pl

from exex_wvm.domain.coercion import coerce
from exex_wvm.domain.models import LogicalType, RowRecord, TableSchema
from exex_wvm.errors import UnknownColumnError


def resolve_column_types(frame: pl.DataFrame, schema: TableSchema) -> List[LogicalType]:
    """Logical type of each frame column, in the frame's column order."""
    types: List[LogicalType] = []
    for name in frame.columns:
        if name not in schema:
            raise UnknownColumnError(name)
        types.append(schema[name])
    return types


def materialize(frame: pl.DataFrame, schema: TableSchema) -> List[RowRecord]:
    """
    Build one row record per frame row, keyed by column name.

    Row order follows the frame; within a record, keys follow the frame's
    native column order. Every column must be declared in ``schema``.
    """
    column_types = resolve_column_types(frame, schema)
    columns = frame.columns

    records: List[RowRecord] = []
    for row in frame.iter_rows():
        record: RowRecord = {}
        for name, logical_type, value in zip(columns, column_types, row):
            record[name] = coerce(value, logical_type)
        records.append(record)
    return records


__all__ = ["materialize", "resolve_column_types"]
