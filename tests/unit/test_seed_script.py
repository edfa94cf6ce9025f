from __future__ import annotations

import json

import polars as pl
import pytest
from typer.testing import CliRunner

from exex_wvm.domain.rows import materialize
from exex_wvm.domain.schema import STATE_TABLE, default_registry
from scripts import seed_state

STATE_COLUMNS = list(default_registry().schema_for(STATE_TABLE))


def test_state_frame_matches_registered_schema():
    frame = seed_state._build_state_frame(5, start_block=100, seed=7)

    assert frame.columns == STATE_COLUMNS
    assert frame.height == 5
    assert frame["block_number"].dtype == pl.UInt64
    assert frame["block_number"].to_list() == [100, 101, 102, 103, 104]


def test_state_frame_is_deterministic_for_a_seed():
    first = seed_state._build_state_frame(20, start_block=1, seed=123)
    second = seed_state._build_state_frame(20, start_block=1, seed=123)
    other = seed_state._build_state_frame(20, start_block=1, seed=124)

    assert first.drop("timestamp").equals(second.drop("timestamp"))
    assert not first.drop("timestamp").equals(other.drop("timestamp"))


def test_state_frame_materializes_to_wire_rows():
    frame = seed_state._build_state_frame(3, start_block=9, seed=1)

    records = materialize(frame, default_registry().schema_for(STATE_TABLE))

    assert [record["block_number"] for record in records] == [9, 10, 11]
    for record in records:
        payload = json.loads(record["sealed_block_with_senders"])
        assert payload["hash"] == record["block_hash"]
        assert isinstance(record["timestamp"], int)


def test_no_load_skips_bigquery(monkeypatch):
    monkeypatch.setattr(seed_state, "configure_logging", lambda **kwargs: None)

    def _unexpected(*args, **kwargs):
        pytest.fail("BigQuery must not be touched with --no-load")

    monkeypatch.setattr(seed_state, "init_bigquery_db", _unexpected)

    result = CliRunner().invoke(seed_state.app, ["--rows", "4", "--no-load"])

    assert result.exit_code == 0
    assert "Materialized 4 records" in result.output


@pytest.mark.asyncio
async def test_insert_frame_batches_requests(monkeypatch, provisioned_adapter, fake_bq):
    async def _init(cfg, registry=None):
        return provisioned_adapter

    monkeypatch.setattr(seed_state, "init_bigquery_db", _init)
    monkeypatch.setenv("BIGQUERY_PROJECT_ID", "test-project")
    monkeypatch.setenv("BIGQUERY_DATASET_ID", "exex")
    monkeypatch.delenv("BIGQUERY_CONFIG_FILE", raising=False)
    frame = seed_state._build_state_frame(5, start_block=1, seed=3)

    inserted = await seed_state._insert_frame(frame, batch_size=2)

    assert inserted == 5
    assert [len(call["rows"]) for call in fake_bq.insert_calls] == [2, 2, 1]
    assert fake_bq.closed is True
