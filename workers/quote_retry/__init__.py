"""Retry queue worker package.

Drains deferred slash commands from SQS and replies through Slack response
URLs once a quote is available.
"""

from __future__ import annotations

from typing import Any


def __getattr__(name: str) -> Any:
    if name == "QuoteRetryWorker":
        from .worker import QuoteRetryWorker as loaded_worker

        return loaded_worker
    raise AttributeError(name)


__all__ = ["QuoteRetryWorker"]
