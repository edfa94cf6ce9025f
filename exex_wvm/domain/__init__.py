"""
Domain package for the ExEx BigQuery sink.

Exports the schema types, the schema registry and the pure row-building
helpers (coercion and materialization). Nothing in this package talks to
BigQuery.
"""

from exex_wvm.domain.coercion import coerce
from exex_wvm.domain.models import (
    ExecutionTipState,
    LogicalType,
    RowRecord,
    TableSchema,
    WireValue,
)
from exex_wvm.domain.rows import materialize
from exex_wvm.domain.schema import (
    COMMON_COLUMNS,
    STATE_TABLE,
    SchemaRegistry,
    default_registry,
    prepare_blockstate_table_config,
)

__all__ = [
    "COMMON_COLUMNS",
    "STATE_TABLE",
    "ExecutionTipState",
    "LogicalType",
    "RowRecord",
    "SchemaRegistry",
    "TableSchema",
    "WireValue",
    "coerce",
    "default_registry",
    "materialize",
    "prepare_blockstate_table_config",
]
