"""Service layer exports."""

from .deferral_queue import DeferralQueueService
from .market_quote import MarketQuoteService
from .response_classifier import (
    ClassifiedResponse,
    MarketQuote,
    ResponseKind,
    classify_response,
)
from .slack_verification import SlackRejection, SlackRequestVerifier

__all__ = [
    "ClassifiedResponse",
    "DeferralQueueService",
    "MarketQuote",
    "MarketQuoteService",
    "ResponseKind",
    "SlackRejection",
    "SlackRequestVerifier",
    "classify_response",
]
