from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Optional

import typer

from exex_wvm.config import BigQueryConfig, get_settings
from exex_wvm.da.compression import to_compressed
from exex_wvm.domain.models import ExecutionTipState
from exex_wvm.domain.schema import default_registry
from exex_wvm.errors import QueryError, WarehouseError
from exex_wvm.infrastructure.bigquery import BigQueryClient, init_bigquery_db
from exex_wvm.reporter import describe_config, print_schema
from exex_wvm.repository import StateRepository
from exex_wvm.utils.logging import configure_logging

app = typer.Typer(help="ExEx BigQuery sink CLI.")


def _bootstrap() -> BigQueryConfig:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    try:
        return settings.bigquery_config()
    except (OSError, ValueError) as exc:
        typer.echo(f"Invalid configuration: {exc}", err=True)
        raise typer.Exit(code=2) from exc


async def _connect(cfg: BigQueryConfig) -> BigQueryClient:
    try:
        return await BigQueryClient.from_config(cfg, default_registry())
    except WarehouseError as exc:
        typer.echo(f"Client init failed: {exc}", err=True)
        raise typer.Exit(code=2) from exc


@app.command()
def info() -> None:
    """
    Show effective configuration values (secrets masked).
    """
    cfg = _bootstrap()
    typer.echo(" | ".join(f"{key}={value}" for key, value in describe_config(cfg).items()))


@app.command()
def schema() -> None:
    """
    Show the column layout of every registered table.
    """
    cfg = _bootstrap()
    print_schema(default_registry(), cfg)


@app.command()
def init() -> None:
    """
    Connect to BigQuery and create any missing registered tables.
    """
    cfg = _bootstrap()

    async def _run() -> None:
        client = await init_bigquery_db(cfg, default_registry())
        client.close()

    try:
        asyncio.run(_run())
    except WarehouseError as exc:
        typer.echo(f"Initialization failed: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    typer.echo(f"Tables ready in {cfg.project_id}.{cfg.dataset_id}.")


@app.command("get-block")
def get_block(block_id: str = typer.Argument(..., help="Block number to look up.")) -> None:
    """
    Print the serialized sealed block stored for a block number.
    """
    cfg = _bootstrap()

    async def _run() -> Optional[str]:
        client = await _connect(cfg)
        try:
            return await StateRepository(client).fetch_by_block_id(block_id)
        finally:
            client.close()

    try:
        payload = asyncio.run(_run())
    except QueryError as exc:
        typer.echo(f"Query failed: {exc}", err=True)
        raise typer.Exit(code=2) from exc

    if payload is None:
        typer.echo(f"No state stored for block {block_id}.", err=True)
        raise typer.Exit(code=1)
    typer.echo(payload)


@app.command("save-state")
def save_state(
    block_number: int = typer.Option(..., "--block-number", "-n", min=0, help="Block height."),
    arweave_id: str = typer.Option(..., "--arweave-id", help="Arweave transaction id."),
    block_hash: str = typer.Option(..., "--block-hash", help="Block hash."),
    payload: Path = typer.Option(
        ...,
        "--payload",
        "-p",
        exists=True,
        dir_okay=False,
        help="File holding the serialized sealed block.",
    ),
) -> None:
    """
    Insert one execution tip state row into the state table.
    """
    cfg = _bootstrap()
    state = ExecutionTipState(
        block_number=block_number,
        arweave_id=arweave_id,
        sealed_block_with_senders_serialized=payload.read_text(encoding="utf-8"),
        block_hash=block_hash,
    )

    async def _run() -> None:
        client = await _connect(cfg)
        try:
            await StateRepository(client).save(state)
        finally:
            client.close()

    try:
        asyncio.run(_run())
    except WarehouseError as exc:
        typer.echo(f"Insert failed: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    typer.echo(f"Saved state for block {block_number}.")


@app.command()
def compress(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to compress."),
    destination: Path = typer.Argument(..., dir_okay=False, help="Output file."),
) -> None:
    """
    Brotli-compress a file, e.g. a serialized block bound for settlement.
    """
    data = source.read_bytes()
    compressed = to_compressed(data)
    destination.write_bytes(compressed)
    typer.echo(f"{source} -> {destination}: {len(data):,} -> {len(compressed):,} bytes")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
