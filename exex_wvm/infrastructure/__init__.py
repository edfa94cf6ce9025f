"""
Infrastructure package for the ExEx BigQuery sink.

Centralizes BigQuery concerns: client construction from credentials and the
typed-row persistence adapter. Keep this layer focused on I/O, decoupled from
the pipeline that produces block state.
"""

from exex_wvm.infrastructure.bigquery import BigQueryClient, init_bigquery_db
from exex_wvm.infrastructure.client_factory import build_bigquery_client

__all__ = [
    "BigQueryClient",
    "build_bigquery_client",
    "init_bigquery_db",
]
