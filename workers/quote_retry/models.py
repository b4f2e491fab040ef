"""
Data models shared across the quote retry worker package.
"""

from __future__ import annotations

from enum import Enum


class RetryOutcome(str, Enum):
    """How a single delivery of a deferred request was resolved."""

    DELIVERED = "delivered"
    CALLBACK_GONE = "callback_gone"
    EXPIRED = "expired"
    MALFORMED = "malformed"
    EXTENDED = "extended"
    UPSTREAM_UNREACHABLE = "upstream_unreachable"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Terminal outcomes remove the message from the queue."""
        return self in {
            RetryOutcome.DELIVERED,
            RetryOutcome.CALLBACK_GONE,
            RetryOutcome.EXPIRED,
            RetryOutcome.MALFORMED,
        }


__all__ = ["RetryOutcome"]
