"""
Service helpers for deferring slash commands to the retry queue.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from app.clients.aws_sqs import QueueError, SQSClient
from app.schemas import SlackSlashCommand

logger = logging.getLogger(__name__)


class DeferralQueueService:
    """Queue slash commands that could not be answered synchronously.

    No deduplication happens here: two failed requests for the same symbol
    produce two independent queue messages.
    """

    def __init__(self, queue_client: SQSClient) -> None:
        self._queue = queue_client
        self._pending: set[asyncio.Task] = set()

    async def enqueue(self, command: SlackSlashCommand) -> Optional[str]:
        """Send the original payload to the queue; failures are logged, not raised."""
        try:
            message_id = await self._queue.send_message(command.to_queue_payload())
        except QueueError as exc:
            logger.error(
                "Failed to defer market quote request for %s: %s",
                command.ticker_symbol,
                exc,
                extra={"symbol": command.ticker_symbol, "operation": exc.operation},
            )
            return None

        logger.info(
            "Deferred market quote request for %s",
            command.ticker_symbol,
            extra={"symbol": command.ticker_symbol, "message_id": message_id},
        )
        return message_id

    def defer(self, command: SlackSlashCommand) -> asyncio.Task:
        """Enqueue in the background so the caller can reply immediately."""
        task = asyncio.create_task(self.enqueue(command))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def wait_for_pending(self) -> None:
        """Wait for background enqueues started by ``defer``."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)


__all__ = ["DeferralQueueService"]
