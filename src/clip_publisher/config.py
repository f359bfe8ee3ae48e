"""Pipeline configuration loading.

Values come from (lowest to highest precedence) defaults, an optional YAML
file and ``CLIP_PUBLISHER_*`` environment variables (``.env`` is loaded).
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    MAX_CONCURRENT_UPLOADS,
    MAX_UPLOAD_BYTES,
    PROCESSING_POLL_SECONDS,
    PUBLISH_TIMEOUT_SECONDS,
    SESSION_TTL_SECONDS,
    TOKEN_REFRESH_THRESHOLD_SECONDS,
)

# Load .env file
load_dotenv()

DEFAULT_CONFIG_FILE = Path("clip-publisher.yaml")


class PipelineSettings(BaseSettings):
    """Settings for the transfer server, publish drivers and CLI."""

    model_config = SettingsConfigDict(env_prefix="CLIP_PUBLISHER_", extra="ignore")

    # Storage
    data_dir: Path = Path("data")
    blob_dir: Path = Path("data/blobs")
    blob_base_url: str = "http://localhost:8000/blobs"
    log_dir: Path = Path("logs")

    # Transfer
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    session_ttl_seconds: int = SESSION_TTL_SECONDS
    scheduler_concurrency: int = Field(default=MAX_CONCURRENT_UPLOADS, ge=1)

    # Publish
    token_refresh_threshold_seconds: int = TOKEN_REFRESH_THRESHOLD_SECONDS
    poll_interval_seconds: float = PROCESSING_POLL_SECONDS
    publish_timeout_seconds: float = PUBLISH_TIMEOUT_SECONDS

    # Client
    api_base_url: str = "http://localhost:8000"
    user_id: str = "local-user"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Platform credentials
    x_consumer_key: str = ""
    x_consumer_secret: str = ""
    google_client_id: str = ""
    google_client_secret: str = ""
    facebook_app_id: str = ""
    facebook_app_secret: str = ""
    graph_api_version: str = "v21.0"

    @property
    def records_path(self) -> Path:
        return self.data_dir / "records"


def _read_yaml(config_path: Path) -> dict[str, Any]:
    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")
    return data


def load_settings(config_path: Path | None = None) -> PipelineSettings:
    """Load settings, overlaying a YAML file when one exists.

    Environment variables still win over YAML values: YAML only fills in
    fields the environment leaves unset.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_FILE

    if not config_path.exists():
        return PipelineSettings()

    overlay = _read_yaml(config_path)
    env_values = PipelineSettings().model_dump(exclude_unset=True)
    return PipelineSettings(**{**overlay, **env_values})


@lru_cache
def get_settings() -> PipelineSettings:
    """Process-wide settings, loaded once."""
    return load_settings()
