from __future__ import annotations

from typing import Dict, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from exex_wvm.config import BigQueryConfig
from exex_wvm.domain.schema import SchemaRegistry


def mask_secret(value: str, keep: int = 4) -> str:
    """
    Hide all but the last ``keep`` characters of a secret.

    Empty values render as "<unset>" so operators can tell them apart.
    """
    value = value.strip()
    if not value:
        return "<unset>"
    if len(value) <= keep:
        return "*" * len(value)
    return "*" * 8 + value[-keep:]


def describe_config(cfg: BigQueryConfig) -> Dict[str, str]:
    return {
        "project": cfg.project_id or "<unset>",
        "dataset": cfg.dataset_id or "<unset>",
        "credentials_path": cfg.credentials_path or "<unset>",
        "credentials_json": mask_secret(cfg.credentials_json),
        "drop_tables": str(cfg.drop_tables).lower(),
    }


def print_schema(
    registry: SchemaRegistry,
    cfg: Optional[BigQueryConfig] = None,
    console: Optional[Console] = None,
) -> None:
    """
    Render every registered table as a rich table of columns.

    When ``cfg`` is given, titles carry the fully qualified table id.
    """
    console = console or Console()

    if not len(registry):
        console.print("[yellow]No tables registered.[/yellow]")
        return

    for table_name, schema in registry.tables():
        title = table_name
        if cfg is not None:
            title = f"{cfg.project_id}.{cfg.dataset_id}.{table_name}"

        table = Table(title=title, box=box.ROUNDED)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Column", style="cyan", no_wrap=True)
        table.add_column("Logical type", style="magenta")
        table.add_column("BigQuery type", style="green")

        for position, (column, kind) in enumerate(schema.items(), start=1):
            table.add_row(str(position), column, kind.value, kind.field_type)

        console.print(table)
