"""
BigQuery persistence adapter for the ExEx sink.

Wraps a ``google.cloud.bigquery.Client`` with the operations the pipeline
needs: idempotent table provisioning, bulk row inserts, the execution tip
state insert and point lookups by block number.

All public operations are coroutines; the blocking client calls run in a
worker thread via ``asyncio.to_thread``. Nothing here retries or caches: every
client call passes ``retry=None`` to switch off the library defaults, and one
RPC failure is logged and surfaced to the caller immediately.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import polars as pl
from google.api_core.exceptions import NotFound
from google.cloud import bigquery
from pydantic_core import PydanticSerializationError, to_jsonable_python

from exex_wvm.config import BigQueryConfig
from exex_wvm.domain.models import ExecutionTipState, RowRecord, TableSchema
from exex_wvm.domain.rows import materialize
from exex_wvm.domain.schema import STATE_TABLE, SchemaRegistry, default_registry
from exex_wvm.errors import (
    InsertError,
    ProvisionError,
    QueryError,
    SchemaError,
    WarehouseError,
)
from exex_wvm.infrastructure.client_factory import REMOTE_ERRORS, build_bigquery_client
from exex_wvm.utils.logging import get_logger

log = get_logger(__name__)

BlockId = Union[str, int]


def table_field_schema(schema: TableSchema) -> List[bigquery.SchemaField]:
    """BigQuery field list for ``schema``, in declaration order."""
    return [bigquery.SchemaField(name, kind.field_type) for name, kind in schema.items()]


def state_row(state: ExecutionTipState, now: Optional[float] = None) -> Dict[str, Any]:
    """
    Row written to the state table for one committed block.

    ``indexed_id`` and ``timestamp`` are generated here since BigQuery does not
    autogenerate them.
    """
    return {
        "indexed_id": uuid.uuid4().hex,
        "block_number": state.block_number,
        "sealed_block_with_senders": state.sealed_block_with_senders_serialized,
        "arweave_id": state.arweave_id,
        "timestamp": int(now if now is not None else time.time()),
        "block_hash": state.block_hash,
    }


def parse_block_number(block_id: BlockId) -> int:
    """Plain decimal block number; signs, separators and non-ASCII digits are rejected."""
    text = str(block_id).strip()
    if not (text.isascii() and text.isdigit()):
        raise QueryError(f"Invalid block id {block_id!r}: expected an integer")
    return int(text)


class BigQueryClient:
    """
    Typed-row adapter bound to one project and dataset.

    Parameters
    ----------
    client : google.cloud.bigquery.Client
        Authenticated client; see ``build_bigquery_client``.
    project_id : str
        Project that owns the dataset and runs query jobs.
    dataset_id : str
        Dataset holding the sink tables.
    registry : SchemaRegistry, optional
        Table layouts; defaults to the block state registry.
    """

    def __init__(
        self,
        client: bigquery.Client,
        project_id: str,
        dataset_id: str,
        registry: Optional[SchemaRegistry] = None,
    ) -> None:
        self.client = client
        self.project_id = project_id
        self.dataset_id = dataset_id
        self.registry = registry or default_registry()

    @classmethod
    async def from_config(
        cls, cfg: BigQueryConfig, registry: Optional[SchemaRegistry] = None
    ) -> "BigQueryClient":
        client = await asyncio.to_thread(build_bigquery_client, cfg)
        return cls(client, cfg.project_id, cfg.dataset_id, registry)

    @property
    def dataset_ref(self) -> str:
        return f"{self.project_id}.{self.dataset_id}"

    def table_ref(self, table_name: str) -> str:
        return f"{self.project_id}.{self.dataset_id}.{table_name}"

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    async def ensure_table(self, table_name: str, schema: TableSchema) -> bool:
        """
        Create ``table_name`` with ``schema`` unless it already exists.

        Existing tables are never dropped or altered, so earlier data and any
        schema drift are left as they are.

        Returns
        -------
        bool
            True if the table was created, False if it already existed.

        Raises
        ------
        ProvisionError
            Dataset lookup, table lookup or table creation failed.
        """
        table_ref = self.table_ref(table_name)
        try:
            await asyncio.to_thread(self.client.get_dataset, self.dataset_ref, retry=None)
        except REMOTE_ERRORS as exc:
            log.exception("Dataset lookup failed", extra={"dataset": self.dataset_ref})
            raise ProvisionError(table_name, f"dataset {self.dataset_ref}: {exc}") from exc

        try:
            await asyncio.to_thread(self.client.get_table, table_ref, retry=None)
        except NotFound:
            pass
        except REMOTE_ERRORS as exc:
            log.exception("Table lookup failed", extra={"table": table_ref})
            raise ProvisionError(table_name, str(exc)) from exc
        else:
            log.info(
                f"Table {table_name} already exists, skipping creation",
                extra={"table": table_ref},
            )
            return False

        table = bigquery.Table(table_ref, schema=table_field_schema(schema))
        try:
            await asyncio.to_thread(self.client.create_table, table, retry=None)
        except REMOTE_ERRORS as exc:
            log.exception("Table creation failed", extra={"table": table_ref})
            raise ProvisionError(table_name, str(exc)) from exc

        log.info(
            f"Created table {table_name}",
            extra={"table": table_ref, "columns": list(schema)},
        )
        return True

    async def ensure_tables(self) -> None:
        """Ensure every table in the registry, stopping at the first failure."""
        for table_name, schema in self.registry.tables():
            await self.ensure_table(table_name, schema)

    async def create_state_table(self) -> None:
        schema = self.registry.schema_for(STATE_TABLE)
        if schema is None:
            raise ProvisionError(STATE_TABLE, "no schema registered")
        await self.ensure_table(STATE_TABLE, schema)

    # ------------------------------------------------------------------
    # Inserts
    # ------------------------------------------------------------------

    def build_rows(self, frame: pl.DataFrame, table_name: str) -> List[RowRecord]:
        """Materialize ``frame`` against the registered schema of ``table_name``."""
        schema = self.registry.schema_for(table_name)
        if schema is None:
            raise SchemaError(f"No schema registered for table '{table_name}'")
        return materialize(frame, schema)

    async def _insert_all(
        self,
        table_name: str,
        rows: Sequence[Mapping[str, Any]],
        row_ids: Sequence[Optional[str]],
    ) -> None:
        table_ref = self.table_ref(table_name)
        try:
            errors = await asyncio.to_thread(
                self.client.insert_rows_json,
                table_ref,
                list(rows),
                row_ids=list(row_ids),
                retry=None,
            )
        except (*REMOTE_ERRORS, TypeError, ValueError) as exc:
            log.exception("insertAll request rejected", extra={"table": table_ref})
            raise InsertError(table_name, str(exc)) from exc

        if errors:
            log.error(
                "insertAll returned row errors",
                extra={"table": table_ref, "rows": len(rows), "insert_errors": errors},
            )
            raise InsertError(table_name, f"{len(errors)} row error(s)", row_errors=errors)

        log.info("Inserted rows", extra={"table": table_ref, "rows": len(rows)})

    async def insert_rows(self, table_name: str, rows: Sequence[RowRecord]) -> None:
        """
        Append ``rows`` to ``table_name`` in a single insertAll request.

        No insert ids are sent, so BigQuery does not deduplicate. Any per-row
        error fails the whole batch.
        """
        if not rows:
            log.debug("No rows to insert", extra={"table": table_name})
            return
        await self._insert_all(table_name, rows, [None] * len(rows))

    async def write_frame(self, table_name: str, frame: pl.DataFrame) -> int:
        rows = self.build_rows(frame, table_name)
        await self.insert_rows(table_name, rows)
        return len(rows)

    async def insert_state(self, table_name: str, state: ExecutionTipState) -> None:
        await self._insert_all(table_name, [state_row(state)], [None])

    async def insert_generic(
        self, table_name: str, insert_id: Optional[str], data: Any
    ) -> None:
        """
        Insert one arbitrary payload, optionally with an explicit insert id.

        ``data`` may be a pydantic model, dataclass or mapping; it must render
        as a JSON object.
        """
        try:
            row = to_jsonable_python(data)
        except PydanticSerializationError as exc:
            raise InsertError(table_name, f"payload is not serializable: {exc}") from exc
        if not isinstance(row, dict):
            raise InsertError(table_name, f"payload must be an object, got {type(row).__name__}")
        await self._insert_all(table_name, [row], [insert_id])

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _query_rows(
        self, sql: str, parameters: Sequence[bigquery.ScalarQueryParameter]
    ) -> List[bigquery.Row]:
        job_config = bigquery.QueryJobConfig(query_parameters=list(parameters))
        job = self.client.query(
            sql,
            job_config=job_config,
            project=self.project_id,
            retry=None,
            job_retry=None,
        )
        return list(job.result(retry=None, job_retry=None))

    async def run_query(
        self,
        sql: str,
        parameters: Optional[Sequence[bigquery.ScalarQueryParameter]] = None,
    ) -> List[bigquery.Row]:
        """
        Run ``sql`` as a query job and return every result row.

        Raises
        ------
        QueryError
            The job could not be created or failed.
        """
        try:
            return await asyncio.to_thread(self._query_rows, sql, parameters or [])
        except REMOTE_ERRORS as exc:
            log.exception("Query failed", extra={"sql": sql})
            raise QueryError(f"Query failed: {exc}") from exc

    async def query_block(self, block_id: BlockId) -> Optional[bigquery.Row]:
        """First state row for ``block_id``, or None when there is none."""
        block_number = parse_block_number(block_id)
        sql = (
            f"SELECT * FROM `{self.table_ref(STATE_TABLE)}` "
            "WHERE block_number = @block_number"
        )
        rows = await self.run_query(
            sql, [bigquery.ScalarQueryParameter("block_number", "INT64", block_number)]
        )
        return rows[0] if rows else None

    async def fetch_state(self, block_id: BlockId) -> Optional[str]:
        """
        Serialized sealed block stored for ``block_id``.

        Returns None only when no row matches; failures raise QueryError.
        """
        row = await self.query_block(block_id)
        if row is None:
            return None
        value = row.get("sealed_block_with_senders")
        return value if isinstance(value, str) else None

    async def query_state(self, block_id: BlockId) -> Optional[str]:
        """
        Like ``fetch_state`` but a failed query is logged and reported as None.
        """
        try:
            return await self.fetch_state(block_id)
        except QueryError as exc:
            log.warning(
                "State lookup failed, reporting no result",
                extra={"block_id": str(block_id), "error": str(exc)},
            )
            return None

    def close(self) -> None:
        self.client.close()


async def init_bigquery_db(
    cfg: BigQueryConfig, registry: Optional[SchemaRegistry] = None
) -> BigQueryClient:
    """
    Build the adapter from config and ensure the registry tables exist.

    Raises
    ------
    MissingCredentialsError, InvalidCredentialsError, ClientInitError
        Client construction failed.
    ProvisionError
        A table could not be provisioned.
    """
    client = await BigQueryClient.from_config(cfg, registry)
    if cfg.drop_tables:
        log.warning(
            "dropTableBeforeSync is set but table deletion is not supported; ignoring",
            extra={"dataset": client.dataset_ref},
        )
    try:
        await client.ensure_tables()
    except WarehouseError:
        client.close()
        raise
    return client


__all__ = [
    "BigQueryClient",
    "init_bigquery_db",
    "parse_block_number",
    "state_row",
    "table_field_schema",
]
