"""
BigQuery client factory for the ExEx sink.

Turns a BigQueryConfig into an authenticated ``google.cloud.bigquery.Client``.
Inline service-account JSON takes priority over a key file path; with neither
set, construction fails with MissingCredentialsError. No retries: a failure
here aborts startup.
"""

from __future__ import annotations

import json

import requests
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import bigquery
from google.oauth2 import service_account

from exex_wvm.config import BigQueryConfig
from exex_wvm.errors import ClientInitError, InvalidCredentialsError, MissingCredentialsError
from exex_wvm.utils.logging import get_logger

log = get_logger(__name__)

# Failures a remote call can surface: API errors, token refresh, raw transport.
REMOTE_ERRORS = (GoogleAPIError, GoogleAuthError, requests.exceptions.RequestException)


def credentials_from_json(raw: str) -> service_account.Credentials:
    """
    Parse inline service-account JSON into credentials.

    Raises
    ------
    InvalidCredentialsError
        If the text is not JSON or not a usable service account key.
    """
    try:
        info = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidCredentialsError(f"Invalid credentials JSON: {exc}") from exc
    if not isinstance(info, dict):
        raise InvalidCredentialsError("Invalid credentials JSON: expected an object")
    try:
        return service_account.Credentials.from_service_account_info(info)
    except (ValueError, KeyError) as exc:
        raise InvalidCredentialsError(f"Invalid credentials JSON: {exc}") from exc


def credentials_from_file(path: str) -> service_account.Credentials:
    """
    Load credentials from a service-account key file.

    Raises
    ------
    ClientInitError
        If the file is missing, unreadable or not a service account key.
    """
    try:
        return service_account.Credentials.from_service_account_file(path)
    except (OSError, ValueError, KeyError) as exc:
        raise ClientInitError(f"Failed to load credentials file {path}: {exc}") from exc


def resolve_credentials(cfg: BigQueryConfig) -> service_account.Credentials:
    if cfg.credentials_json.strip():
        log.debug("Using inline service account credentials")
        return credentials_from_json(cfg.credentials_json)
    if cfg.credentials_path.strip():
        log.debug("Using service account key file", extra={"path": cfg.credentials_path})
        return credentials_from_file(cfg.credentials_path.strip())
    raise MissingCredentialsError()


def build_bigquery_client(cfg: BigQueryConfig) -> bigquery.Client:
    """
    Build an authenticated BigQuery client scoped to the configured project.

    Returns
    -------
    google.cloud.bigquery.Client
        Client whose default project is ``cfg.project_id``.

    Raises
    ------
    MissingCredentialsError
        Both credential fields are blank.
    InvalidCredentialsError
        Inline JSON could not be parsed.
    ClientInitError
        Key file or transport setup failed.
    """
    credentials = resolve_credentials(cfg)
    try:
        client = bigquery.Client(project=cfg.project_id, credentials=credentials)
    except (*REMOTE_ERRORS, ValueError) as exc:
        log.exception("BigQuery client construction failed", extra={"project": cfg.project_id})
        raise ClientInitError(f"Failed to initialize BigQuery client: {exc}") from exc

    log.info(
        "BigQuery client ready",
        extra={"project": cfg.project_id, "dataset": cfg.dataset_id},
    )
    return client


__all__ = [
    "REMOTE_ERRORS",
    "build_bigquery_client",
    "credentials_from_file",
    "credentials_from_json",
    "resolve_credentials",
]
