"""
Application configuration models and helpers.

Centralizes settings management so both the FastAPI app and the retry queue
worker can share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class AlphaVantageSettings(BaseSettings):
    """Configuration for the upstream market-data API."""

    model_config = SettingsConfigDict(populate_by_name=True)

    api_key: str = Field(..., validation_alias="ALPHA_VANTAGE_API_KEY")
    query_url: str = Field(
        "https://www.alphavantage.co/query", validation_alias="ALPHA_VANTAGE_QUERY_URL"
    )
    request_timeout_seconds: float = Field(
        30.0,
        gt=0,
        validation_alias="ALPHA_VANTAGE_REQUEST_TIMEOUT",
        description="Client-side timeout; a timed out call is a transport failure.",
    )


class SlackSettings(BaseSettings):
    """Slash command verification and reply settings."""

    model_config = SettingsConfigDict(populate_by_name=True)

    signing_secret: str = Field(..., validation_alias="SLACK_SIGNING_SECRET")
    request_max_age_seconds: int = Field(300, validation_alias="SLACK_REQUEST_MAX_AGE")
    response_deadline_ms: int = Field(
        2500,
        validation_alias="SLACK_RESPONSE_DEADLINE_MS",
        description="Time budget for the upstream call before replying; Slack gives up at 3000ms.",
    )
    callback_timeout_seconds: float = Field(10.0, validation_alias="SLACK_CALLBACK_TIMEOUT")


class AWSSettings(BaseSettings):
    """Settings for the SQS queue backing deferred requests."""

    model_config = SettingsConfigDict(populate_by_name=True)

    region_name: str = Field("us-east-1", validation_alias="AWS_REGION")
    sqs_queue_url: str = Field(..., validation_alias="RETRY_QUEUE_URL")
    sqs_endpoint_url: Optional[str] = Field(
        None,
        validation_alias="SQS_ENDPOINT_URL",
        description="Override for SQS-compatible servers such as ElasticMQ.",
    )
    send_delay_seconds: int = Field(0, ge=0, le=900, validation_alias="SQS_SEND_DELAY_SECONDS")


class RetryQueueSettings(BaseSettings):
    """Polling and backoff knobs for the retry queue worker."""

    model_config = SettingsConfigDict(populate_by_name=True)

    enabled: bool = Field(True, validation_alias="RETRY_WORKER_ENABLED")
    poll_interval_ms: int = Field(30000, gt=0, validation_alias="RETRY_POLL_INTERVAL_MS")
    batch_size: int = Field(10, ge=1, le=10, validation_alias="RETRY_BATCH_SIZE")
    receive_visibility_timeout_seconds: int = Field(
        60, ge=0, le=43200, validation_alias="RETRY_RECEIVE_VISIBILITY_TIMEOUT"
    )
    receive_wait_time_seconds: int = Field(
        0, ge=0, le=20, validation_alias="RETRY_RECEIVE_WAIT_TIME"
    )
    visibility_extension_seconds: int = Field(
        300, ge=0, le=43200, validation_alias="RETRY_VISIBILITY_EXTENSION"
    )
    stale_after_seconds: int = Field(
        1800,
        validation_alias="RETRY_STALE_AFTER_SECONDS",
        description="Slack response URLs expire after 30 minutes.",
    )
    max_in_flight: int = Field(20, ge=1, validation_alias="RETRY_MAX_IN_FLIGHT")

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    alpha_vantage: AlphaVantageSettings = Field(default_factory=AlphaVantageSettings)
    slack: SlackSettings = Field(default_factory=SlackSettings)
    aws: AWSSettings = Field(default_factory=AWSSettings)
    retry: RetryQueueSettings = Field(default_factory=RetryQueueSettings)

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.upper()


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AlphaVantageSettings",
    "AppSettings",
    "AWSSettings",
    "RetryQueueSettings",
    "SlackSettings",
    "get_settings",
]
