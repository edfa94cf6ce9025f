"""
Synthetic state seeding script for the ExEx BigQuery sink.

Builds deterministic pseudo-random execution tip rows as a polars DataFrame,
materializes them against the registered state schema and bulk-inserts them in
one insertAll request per batch.
"""

from __future__ import annotations

import asyncio
import json
import random
import sys
import time

import polars as pl
import typer

from exex_wvm.config import get_settings
from exex_wvm.domain.rows import materialize
from exex_wvm.domain.schema import STATE_TABLE, default_registry
from exex_wvm.errors import WarehouseError
from exex_wvm.infrastructure.bigquery import init_bigquery_db
from exex_wvm.utils.logging import configure_logging

app = typer.Typer(help="Generate synthetic state rows and insert them into BigQuery.")


def _build_state_frame(rows: int, start_block: int, seed: int) -> pl.DataFrame:
    rng = random.Random(seed)
    now = int(time.time())

    indexed_ids: list[str] = []
    block_numbers: list[int] = []
    payloads: list[str] = []
    arweave_ids: list[str] = []
    timestamps: list[int] = []
    block_hashes: list[str] = []

    for offset in range(rows):
        block_number = start_block + offset
        block_hash = "0x" + rng.getrandbits(256).to_bytes(32, "big").hex()
        senders = [f"0x{rng.getrandbits(160):040x}" for _ in range(rng.randint(0, 3))]
        indexed_ids.append(f"{rng.getrandbits(128):032x}")
        block_numbers.append(block_number)
        payloads.append(
            json.dumps(
                {
                    "number": block_number,
                    "hash": block_hash,
                    "senders": senders,
                }
            )
        )
        arweave_ids.append(rng.getrandbits(256).to_bytes(32, "big").hex()[:43])
        timestamps.append(now + offset)
        block_hashes.append(block_hash)

    return pl.DataFrame(
        {
            "indexed_id": indexed_ids,
            "block_number": pl.Series(block_numbers, dtype=pl.UInt64),
            "sealed_block_with_senders": payloads,
            "arweave_id": arweave_ids,
            "timestamp": pl.Series(timestamps, dtype=pl.Int64),
            "block_hash": block_hashes,
        }
    )


async def _insert_frame(frame: pl.DataFrame, batch_size: int) -> int:
    settings = get_settings()
    client = await init_bigquery_db(settings.bigquery_config(), default_registry())
    inserted = 0
    try:
        for batch in frame.iter_slices(n_rows=batch_size):
            inserted += await client.write_frame(STATE_TABLE, batch)
    finally:
        client.close()
    return inserted


@app.command()
def main(
    rows: int = typer.Option(
        100,
        "--rows",
        "-r",
        help="Number of state rows to generate.",
    ),
    start_block: int = typer.Option(
        1,
        "--start-block",
        help="Block number of the first generated row.",
    ),
    batch_size: int = typer.Option(
        500,
        "--batch-size",
        "-b",
        help="Rows per insertAll request.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    no_load: bool = typer.Option(
        False,
        "--no-load",
        help="Only build and materialize the rows; skip BigQuery.",
    ),
) -> None:
    """
    Generate synthetic state rows and optionally insert them into BigQuery.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    start = time.perf_counter()
    frame = _build_state_frame(rows, start_block=start_block, seed=seed)
    typer.echo(f"Generated {frame.height:,} rows (seed={seed}, first block={start_block})")

    if no_load:
        schema = default_registry().schema_for(STATE_TABLE)
        records = materialize(frame, schema)
        typer.echo(f"Materialized {len(records):,} records; skipping load (no-load flag set).")
        return

    try:
        inserted = asyncio.run(_insert_frame(frame, batch_size))
    except WarehouseError as exc:
        typer.echo(f"Load failed: {exc}", err=True)
        raise typer.Exit(code=2) from exc

    duration = time.perf_counter() - start
    typer.echo(f"Inserted {inserted:,} rows into {STATE_TABLE} in {duration:.2f}s.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
