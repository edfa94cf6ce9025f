"""
ExEx BigQuery sink - block execution state persisted to Google BigQuery.

The package sits between a blockchain execution-extension pipeline and a
BigQuery dataset:

- Static schema registry for the sink tables
- Coercion of dataset cells into BigQuery JSON values
- Idempotent table provisioning
- Bulk row inserts from polars DataFrames
- Execution tip state inserts and point lookups by block number
- Brotli compression of block payloads for the settlement layer
"""

from __future__ import annotations

__version__ = "0.1.0"

# Public API exports
from exex_wvm.config import BigQueryConfig, Settings, get_settings
from exex_wvm.da.compression import process_block, to_compressed
from exex_wvm.domain import (
    ExecutionTipState,
    LogicalType,
    SchemaRegistry,
    TableSchema,
    coerce,
    default_registry,
    materialize,
)
from exex_wvm.errors import (
    ClientInitError,
    InsertError,
    InvalidCredentialsError,
    MissingCredentialsError,
    ProvisionError,
    QueryError,
    WarehouseError,
)
from exex_wvm.infrastructure import BigQueryClient, build_bigquery_client, init_bigquery_db
from exex_wvm.repository import StateRepository, save_block
from exex_wvm.utils.logging import configure_logging, get_logger

__all__ = [
    "__version__",
    # Configuration
    "BigQueryConfig",
    "Settings",
    "get_settings",
    # Domain
    "ExecutionTipState",
    "LogicalType",
    "SchemaRegistry",
    "TableSchema",
    "coerce",
    "default_registry",
    "materialize",
    # Persistence
    "BigQueryClient",
    "StateRepository",
    "build_bigquery_client",
    "init_bigquery_db",
    "save_block",
    # Errors
    "ClientInitError",
    "InsertError",
    "InvalidCredentialsError",
    "MissingCredentialsError",
    "ProvisionError",
    "QueryError",
    "WarehouseError",
    # Compression
    "process_block",
    "to_compressed",
    # Logging
    "configure_logging",
    "get_logger",
]
