"""Public schema exports."""

from .alpha_vantage import (
    RATE_LIMIT_NOTE,
    ErrorResponse,
    RateLimitResponse,
    TimeSeriesDailyResponse,
)
from .slack import SlackAttachment, SlackMessage, SlackSlashCommand

__all__ = [
    "ErrorResponse",
    "RATE_LIMIT_NOTE",
    "RateLimitResponse",
    "SlackAttachment",
    "SlackMessage",
    "SlackSlashCommand",
    "TimeSeriesDailyResponse",
]
