"""
Error taxonomy for the BigQuery sink.

Remote failures (credentials, client setup, provisioning, inserts, queries) and
schema configuration faults share one base class so callers can catch
``WarehouseError`` at the pipeline boundary.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence


class WarehouseError(Exception):
    """Base class for every error raised by this package."""


class InvalidCredentialsError(WarehouseError):
    """Inline credentials JSON could not be parsed into a service account key."""


class ClientInitError(WarehouseError):
    """The BigQuery client or its transport could not be constructed."""


class MissingCredentialsError(WarehouseError):
    """Both credentials_path and credentials_json are empty."""

    def __init__(self) -> None:
        super().__init__(
            "Missing credentials in config: both credentials_path and credentials_json are empty"
        )


class ProvisionError(WarehouseError):
    """Dataset lookup or table creation failed."""

    def __init__(self, table_name: str, message: str) -> None:
        super().__init__(f"Failed to provision table '{table_name}': {message}")
        self.table_name = table_name


class InsertError(WarehouseError):
    """
    A bulk insert was rejected, either by the RPC itself or by per-row errors.

    ``row_errors`` carries the insertAll error payload verbatim when the request
    reached BigQuery.
    """

    def __init__(
        self,
        table_name: str,
        message: str,
        row_errors: Optional[Sequence[Any]] = None,
    ) -> None:
        super().__init__(f"Failed to insert data into BigQuery table '{table_name}': {message}")
        self.table_name = table_name
        self.row_errors = list(row_errors or [])


class QueryError(WarehouseError):
    """A query job failed or its parameters could not be built."""


class SchemaError(WarehouseError):
    """Schema configuration fault; never recovered from at runtime."""


class UnsupportedTypeError(SchemaError, ValueError):
    """A logical type tag outside the supported set."""

    def __init__(self, type_tag: Any) -> None:
        super().__init__(f"Unsupported db type: {type_tag!r}")
        self.type_tag = type_tag


class UnknownColumnError(SchemaError, KeyError):
    """A dataset column has no entry in the table schema."""

    def __init__(self, column: str) -> None:
        super().__init__(f"Column '{column}' is not defined in the table schema")
        self.column = column

    def __str__(self) -> str:
        return str(self.args[0])


__all__ = [
    "WarehouseError",
    "InvalidCredentialsError",
    "ClientInitError",
    "MissingCredentialsError",
    "ProvisionError",
    "InsertError",
    "QueryError",
    "SchemaError",
    "UnsupportedTypeError",
    "UnknownColumnError",
]
