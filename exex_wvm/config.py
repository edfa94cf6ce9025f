"""
Configuration settings for the ExEx BigQuery sink.

Uses Pydantic Settings to load environment variables for the BigQuery target,
credentials and logging. A JSON config file in the ExEx layout (camelCase keys)
can be pointed to with ``BIGQUERY_CONFIG_FILE`` and takes precedence over the
individual ``BIGQUERY_*`` variables.
"""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class BigQueryConfig(BaseModel):
    """
    BigQuery sink configuration as consumed by the execution extension.

    Exactly one of ``credentials_path`` / ``credentials_json`` is expected to be
    non-empty; ``credentials_json`` wins when both are set.
    """

    drop_tables: bool = Field(False, alias="dropTableBeforeSync")
    project_id: str = Field(..., alias="projectId")
    dataset_id: str = Field(..., alias="datasetId")
    credentials_path: str = Field("", alias="credentialsPath")
    credentials_json: str = Field("", alias="credentialsJson")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }


class Settings(BaseSettings):
    # BigQuery target
    bigquery_project_id: str = Field("", alias="BIGQUERY_PROJECT_ID")
    bigquery_dataset_id: str = Field("", alias="BIGQUERY_DATASET_ID")
    bigquery_credentials_path: str = Field("", alias="BIGQUERY_CREDENTIALS_PATH")
    bigquery_credentials_json: str = Field("", alias="BIGQUERY_CREDENTIALS_JSON")
    bigquery_drop_tables: bool = Field(False, alias="BIGQUERY_DROP_TABLES")
    bigquery_config_file: Optional[str] = Field(None, alias="BIGQUERY_CONFIG_FILE")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def bigquery_config(self) -> BigQueryConfig:
        """
        Build the effective BigQueryConfig, preferring the JSON config file when set.
        """
        if self.bigquery_config_file:
            return load_bigquery_config(self.bigquery_config_file)
        return BigQueryConfig(
            drop_tables=self.bigquery_drop_tables,
            project_id=self.bigquery_project_id,
            dataset_id=self.bigquery_dataset_id,
            credentials_path=self.bigquery_credentials_path,
            credentials_json=self.bigquery_credentials_json,
        )


def load_bigquery_config(path: Path | str) -> BigQueryConfig:
    """
    Parse a JSON config file in the camelCase ExEx layout.

    Raises
    ------
    ValueError
        If the file cannot be read, is not valid JSON or misses required keys.
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
        return BigQueryConfig.model_validate(json.loads(raw))
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        raise ValueError(f"Invalid BigQuery config file {path}: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["BigQueryConfig", "Settings", "get_settings", "load_bigquery_config"]
