"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from app.clients import AlphaVantageClient, SQSClient
from app.dependencies.config import get_app_settings, get_slack_settings
from app.services import (
    DeferralQueueService,
    MarketQuoteService,
    SlackRequestVerifier,
)


@lru_cache()
def get_alpha_vantage_client() -> AlphaVantageClient:
    """Provide the upstream market-data client."""
    return AlphaVantageClient(get_app_settings().alpha_vantage)


@lru_cache()
def get_sqs_client() -> SQSClient:
    """Provide the SQS client for the retry queue."""
    return SQSClient(get_app_settings().aws)


@lru_cache()
def get_slack_request_verifier() -> SlackRequestVerifier:
    """Provide the signing-secret verifier for inbound slash commands."""
    return SlackRequestVerifier(get_slack_settings())


@lru_cache()
def get_deferral_queue_service() -> DeferralQueueService:
    """Shared so background enqueues can be awaited on shutdown."""
    return DeferralQueueService(get_sqs_client())


def get_market_quote_service() -> MarketQuoteService:
    """Build the synchronous slash command handler."""
    return MarketQuoteService(
        quote_client=get_alpha_vantage_client(),
        deferrals=get_deferral_queue_service(),
        settings=get_slack_settings(),
    )


__all__ = [
    "get_alpha_vantage_client",
    "get_deferral_queue_service",
    "get_market_quote_service",
    "get_slack_request_verifier",
    "get_sqs_client",
]
