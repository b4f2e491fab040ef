"""Expose constructed client wrappers."""

from .alpha_vantage import AlphaVantageClient, UpstreamResponse, UpstreamTransportError
from .aws_sqs import QueueError, QueueStaleError, ReceivedMessage, SQSClient
from .slack import CallbackGoneError, CallbackTransientError, SlackResponseClient

__all__ = [
    "AlphaVantageClient",
    "CallbackGoneError",
    "CallbackTransientError",
    "QueueError",
    "QueueStaleError",
    "ReceivedMessage",
    "SQSClient",
    "SlackResponseClient",
    "UpstreamResponse",
    "UpstreamTransportError",
]
