"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_alpha_vantage_client,
    get_deferral_queue_service,
    get_market_quote_service,
    get_slack_request_verifier,
    get_sqs_client,
)
from .config import SettingsDependency, get_app_settings, get_slack_settings

__all__ = [
    "SettingsDependency",
    "get_alpha_vantage_client",
    "get_app_settings",
    "get_deferral_queue_service",
    "get_market_quote_service",
    "get_slack_request_verifier",
    "get_slack_settings",
    "get_sqs_client",
]
