"""
Pytest configuration for the ExEx BigQuery sink.

Provides fixtures for:
- An in-memory stand-in for ``google.cloud.bigquery.Client``
- A BigQueryClient adapter bound to that stand-in
- Settings isolation between tests
- Live BigQuery configuration for integration tests
"""

from __future__ import annotations

import os
import re
from typing import Any, Dict, List, Optional, Sequence

import pytest
from google.api_core.exceptions import NotFound
from google.cloud import bigquery

from exex_wvm.config import BigQueryConfig, get_settings
from exex_wvm.domain.schema import SchemaRegistry, default_registry
from exex_wvm.infrastructure.bigquery import BigQueryClient, table_field_schema

TEST_PROJECT = "test-project"
TEST_DATASET = "exex"

_TABLE_IN_SQL = re.compile(r"`([^`]+)`")

# Default for retry kwargs the adapter did not pass.
DEFAULT_RETRY = object()


class FakeQueryJob:
    def __init__(
        self,
        rows: List[Dict[str, Any]],
        error: Optional[Exception] = None,
        retry_log: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        self._rows = rows
        self._error = error
        self._retry_log = retry_log if retry_log is not None else []

    def result(
        self, retry: Any = DEFAULT_RETRY, job_retry: Any = DEFAULT_RETRY
    ) -> List[Dict[str, Any]]:
        self._retry_log.append({"call": "result", "retry": retry, "job_retry": job_retry})
        if self._error is not None:
            raise self._error
        return list(self._rows)


class FakeBigQuery:
    """
    Minimal in-memory BigQuery: datasets, tables with schemas, appended rows.

    Mirrors the client methods the adapter calls and records every call so
    tests can assert on RPC counts, payloads and the retry policy passed in.
    Failure hooks accept any exception, not only API errors.
    """

    def __init__(self, datasets: Sequence[str] = (f"{TEST_PROJECT}.{TEST_DATASET}",)) -> None:
        self.datasets = set(datasets)
        self.tables: Dict[str, Any] = {}
        self.rows: Dict[str, List[Dict[str, Any]]] = {}
        self.create_calls: List[Any] = []
        self.insert_calls: List[Dict[str, Any]] = []
        self.queries: List[Dict[str, Any]] = []
        self.insert_errors: List[Dict[str, Any]] = []
        self.retry_log: List[Dict[str, Any]] = []
        self.fail_get_dataset: Optional[Exception] = None
        self.fail_get_table: Optional[Exception] = None
        self.fail_create: Optional[Exception] = None
        self.fail_insert: Optional[Exception] = None
        self.fail_query: Optional[Exception] = None
        self.closed = False

    def get_dataset(self, dataset_ref: str, retry: Any = DEFAULT_RETRY) -> str:
        self.retry_log.append({"call": "get_dataset", "retry": retry})
        if self.fail_get_dataset is not None:
            raise self.fail_get_dataset
        if dataset_ref not in self.datasets:
            raise NotFound(f"Not found: Dataset {dataset_ref}")
        return dataset_ref

    def get_table(self, table_ref: str, retry: Any = DEFAULT_RETRY) -> Any:
        self.retry_log.append({"call": "get_table", "retry": retry})
        if self.fail_get_table is not None:
            raise self.fail_get_table
        if table_ref not in self.tables:
            raise NotFound(f"Not found: Table {table_ref}")
        return self.tables[table_ref]

    def create_table(self, table: Any, retry: Any = DEFAULT_RETRY) -> Any:
        self.retry_log.append({"call": "create_table", "retry": retry})
        self.create_calls.append(table)
        if self.fail_create is not None:
            raise self.fail_create
        table_ref = f"{table.project}.{table.dataset_id}.{table.table_id}"
        self.tables[table_ref] = table
        self.rows.setdefault(table_ref, [])
        return table

    def insert_rows_json(
        self,
        table_ref: str,
        json_rows: List[Dict[str, Any]],
        row_ids: Any = None,
        retry: Any = DEFAULT_RETRY,
    ) -> List[Dict[str, Any]]:
        self.retry_log.append({"call": "insert_rows_json", "retry": retry})
        self.insert_calls.append({"table": table_ref, "rows": json_rows, "row_ids": row_ids})
        if self.fail_insert is not None:
            raise self.fail_insert
        if table_ref not in self.tables:
            raise NotFound(f"Not found: Table {table_ref}")
        if self.insert_errors:
            return list(self.insert_errors)

        known = {field.name for field in self.tables[table_ref].schema}
        errors = [
            {"index": index, "errors": [{"reason": "invalid", "message": f"no such field: {key}"}]}
            for index, row in enumerate(json_rows)
            for key in row
            if key not in known
        ]
        if not errors:
            self.rows[table_ref].extend(json_rows)
        return errors

    def query(
        self,
        sql: str,
        job_config: Any = None,
        project: Optional[str] = None,
        retry: Any = DEFAULT_RETRY,
        job_retry: Any = DEFAULT_RETRY,
    ) -> FakeQueryJob:
        self.retry_log.append({"call": "query", "retry": retry, "job_retry": job_retry})
        params = {p.name: p.value for p in getattr(job_config, "query_parameters", [])}
        self.queries.append({"sql": sql, "params": params, "project": project})
        if self.fail_query is not None:
            return FakeQueryJob([], error=self.fail_query, retry_log=self.retry_log)

        match = _TABLE_IN_SQL.search(sql)
        rows = self.rows.get(match.group(1), []) if match else []
        if "block_number" in params:
            rows = [row for row in rows if row.get("block_number") == params["block_number"]]
        return FakeQueryJob(rows, retry_log=self.retry_log)

    def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Drop cached Settings so env overrides apply per test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_bq() -> FakeBigQuery:
    return FakeBigQuery()


@pytest.fixture
def registry() -> SchemaRegistry:
    return default_registry()


@pytest.fixture
def adapter(fake_bq: FakeBigQuery, registry: SchemaRegistry) -> BigQueryClient:
    return BigQueryClient(fake_bq, TEST_PROJECT, TEST_DATASET, registry)


@pytest.fixture
def provisioned_adapter(adapter: BigQueryClient, fake_bq: FakeBigQuery) -> BigQueryClient:
    """Adapter whose registered tables already exist in the fake."""
    for table_name, schema in adapter.registry.tables():
        table_ref = adapter.table_ref(table_name)
        fake_bq.create_table(bigquery.Table(table_ref, schema=table_field_schema(schema)))
    fake_bq.create_calls.clear()
    fake_bq.retry_log.clear()
    return adapter


@pytest.fixture
def bq_config() -> BigQueryConfig:
    return BigQueryConfig(
        project_id=TEST_PROJECT,
        dataset_id=TEST_DATASET,
        credentials_path="",
        credentials_json="",
    )


@pytest.fixture(scope="session")
def live_config() -> BigQueryConfig:
    """
    BigQuery configuration for integration tests, read from the environment.

    Skips when the project, dataset or credentials are not provided.
    """
    project = os.getenv("BIGQUERY_PROJECT_ID", "")
    dataset = os.getenv("BIGQUERY_DATASET_ID", "")
    path = os.getenv("BIGQUERY_CREDENTIALS_PATH", "")
    inline = os.getenv("BIGQUERY_CREDENTIALS_JSON", "")
    if not project or not dataset or not (path or inline):
        pytest.skip("BigQuery project, dataset and credentials are required")
    return BigQueryConfig(
        project_id=project,
        dataset_id=dataset,
        credentials_path=path,
        credentials_json=inline,
    )
