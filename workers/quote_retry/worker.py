"""Worker that drains the retry queue and sends delayed market quotes."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from pydantic import ValidationError

from app.clients import (
    AlphaVantageClient,
    CallbackGoneError,
    CallbackTransientError,
    QueueError,
    QueueStaleError,
    ReceivedMessage,
    SlackResponseClient,
    SQSClient,
    UpstreamTransportError,
)
from app.core.config import AppSettings, RetryQueueSettings, get_settings
from app.core.logging import configure_logging
from app.schemas import SlackSlashCommand
from app.services import ResponseKind, classify_response
from app.services.market_quote import delayed_quote_message
from workers.quote_retry.models import RetryOutcome

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuoteRetryWorker:
    """Poll the retry queue on a fixed interval and resolve deferred requests.

    Each tick claims a batch and processes every message in its own task.
    Ticks do not wait for the previous batch, so ``max_in_flight`` caps how
    many messages are worked on at once. A message still in flight after its
    receive visibility window no longer holds a slot: SQS has already made it
    visible again, and a hung upstream call must not stall the other items.
    """

    def __init__(
        self,
        queue_client: SQSClient,
        quote_client: AlphaVantageClient,
        reply_client: SlackResponseClient,
        settings: RetryQueueSettings,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._queue = queue_client
        self._quotes = quote_client
        self._replies = reply_client
        self._settings = settings
        self._clock = clock
        self._stale_after = timedelta(seconds=settings.stale_after_seconds)
        self._claim_window = timedelta(seconds=settings.receive_visibility_timeout_seconds)
        # Task -> time its message was claimed.
        self._in_flight: dict[asyncio.Task, datetime] = {}
        self._running = False
        self._wake = asyncio.Event()
        self._loop_done: Optional[asyncio.Event] = None

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def run_forever(self) -> None:
        if self._running:
            logger.warning("Quote retry worker already running")
            return

        self._running = True
        self._wake.clear()
        self._loop_done = asyncio.Event()
        interval = self._settings.poll_interval_seconds
        loop = asyncio.get_running_loop()
        logger.info(
            "Quote retry worker started (poll_interval=%ss, batch_size=%s, max_in_flight=%s)",
            interval,
            self._settings.batch_size,
            self._settings.max_in_flight,
        )
        try:
            while self._running:
                started = loop.time()
                await self._tick()
                if not self._running:
                    break
                remaining = max(0.0, interval - (loop.time() - started))
                try:
                    await asyncio.wait_for(self._wake.wait(), timeout=remaining)
                except asyncio.TimeoutError:
                    pass
        finally:
            self._running = False
            self._loop_done.set()
            logger.info("Quote retry worker stopped")

    async def stop(self, timeout: float = 30.0) -> None:
        """Stop ticking, then give in-flight messages a chance to finish.

        Waits for a poll that is already underway so that messages it claims
        are included in the shutdown wait.
        """
        self._running = False
        self._wake.set()
        if self._loop_done is not None and not self._loop_done.is_set():
            try:
                await asyncio.wait_for(self._loop_done.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("Quote retry worker poll did not finish within %ss", timeout)

        if not self._in_flight:
            return

        logger.info("Waiting for %s in-flight deferred requests", len(self._in_flight))
        pending = list(self._in_flight)
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning(
                "Cancelled %s deferred requests on shutdown; they will be redelivered",
                len(still_running),
            )

    async def run_once(self) -> List[Optional[RetryOutcome]]:
        """Claim one batch and wait until every message in it is resolved."""
        tasks = await self._tick()
        if not tasks:
            return []
        return list(await asyncio.gather(*tasks))

    def _occupied_slots(self) -> int:
        now = self._clock()
        occupied = sum(
            1 for claimed_at in self._in_flight.values() if now - claimed_at < self._claim_window
        )
        overdue = len(self._in_flight) - occupied
        if overdue:
            logger.warning(
                "%s deferred requests are still in flight past their visibility window",
                overdue,
            )
        return occupied

    async def _tick(self) -> List[asyncio.Task]:
        occupied = self._occupied_slots()
        capacity = self._settings.max_in_flight - occupied
        if capacity <= 0:
            logger.warning(
                "Skipping retry queue poll; %s deferred requests still in flight",
                occupied,
            )
            return []

        try:
            messages = await self._queue.receive_messages(
                max_messages=min(self._settings.batch_size, capacity),
                visibility_timeout=self._settings.receive_visibility_timeout_seconds,
                wait_time_seconds=self._settings.receive_wait_time_seconds,
            )
        except QueueError as exc:
            logger.error("Error caught attempting to receive messages from SQS: %s", exc)
            return []

        claimed_at = self._clock()
        tasks = []
        for message in messages:
            task = asyncio.create_task(self._process_guarded(message))
            self._in_flight[task] = claimed_at
            task.add_done_callback(self._release)
            tasks.append(task)
        return tasks

    def _release(self, task: asyncio.Task) -> None:
        self._in_flight.pop(task, None)

    async def _process_guarded(self, message: ReceivedMessage) -> Optional[RetryOutcome]:
        try:
            outcome = await self.process_message(message)
            logger.debug(
                "Deferred request %s %s (%s)",
                message.message_id,
                "removed from the queue" if outcome.is_terminal else "left on the queue",
                outcome.value,
                extra={"message_id": message.message_id, "outcome": outcome.value},
            )
            return outcome
        except asyncio.CancelledError:
            raise
        except Exception:  # pragma: no cover - keep one bad message from killing the loop
            logger.exception(
                "Unexpected failure processing deferred request",
                extra={"message_id": message.message_id},
            )
            return RetryOutcome.FAILED

    async def process_message(self, message: ReceivedMessage) -> RetryOutcome:
        """Resolve one delivery: deliver, extend or abandon it."""
        age = self._clock() - message.sent_at
        if age > self._stale_after:
            # Slack rejects response URLs older than 30 minutes.
            logger.error(
                "Slack request older than %s was detected and will be deleted: %s",
                self._stale_after,
                message.body,
                extra={"message_id": message.message_id},
            )
            await self._delete(message)
            return RetryOutcome.EXPIRED

        try:
            command = SlackSlashCommand.model_validate_json(message.body)
        except ValidationError as exc:
            logger.error(
                "Deferred request body is not a slash command and will be deleted: %s",
                exc.errors(),
                extra={"message_id": message.message_id},
            )
            await self._delete(message)
            return RetryOutcome.MALFORMED

        symbol = command.ticker_symbol
        try:
            upstream = await self._quotes.fetch_quote(symbol)
        except UpstreamTransportError as exc:
            # Leave the message alone; it becomes visible again on its own.
            logger.error(
                "Error caught attempting to communicate with Alpha Vantage: %s",
                exc,
                extra={"symbol": symbol, "message_id": message.message_id},
            )
            return RetryOutcome.UPSTREAM_UNREACHABLE

        classified = classify_response(upstream.body, symbol=symbol)
        if classified.kind is not ResponseKind.PASSING or classified.quote is None:
            logger.error(
                "Alpha Vantage responded with a %s response for %s: %s",
                classified.kind.value,
                symbol,
                upstream.body,
                extra={"symbol": symbol, "message_id": message.message_id},
            )
            await self._extend(message)
            return RetryOutcome.EXTENDED

        try:
            await self._replies.send_delayed_response(
                str(command.response_url), delayed_quote_message(classified.quote)
            )
        except CallbackGoneError as exc:
            logger.error(
                "Slack response URL is no longer valid; deleting message: %s",
                exc,
                extra={"symbol": symbol, "message_id": message.message_id},
            )
            await self._delete(message)
            return RetryOutcome.CALLBACK_GONE
        except CallbackTransientError as exc:
            logger.error(
                "Error caught attempting to send delayed response to Slack: %s",
                exc,
                extra={"symbol": symbol, "message_id": message.message_id},
            )
            await self._extend(message)
            return RetryOutcome.EXTENDED

        logger.info(
            "Delayed market quote for %s delivered",
            symbol,
            extra={"symbol": symbol, "message_id": message.message_id},
        )
        await self._delete(message)
        return RetryOutcome.DELIVERED

    async def _delete(self, message: ReceivedMessage) -> None:
        try:
            await self._queue.delete_message(message.receipt_handle)
        except QueueStaleError as exc:
            logger.warning(
                "Receipt handle expired before delete; message may be redelivered: %s",
                exc,
                extra={"receipt_handle": message.receipt_handle},
            )
        except QueueError as exc:
            logger.error(
                "SQS deleteMessage failed: %s",
                exc,
                extra={"receipt_handle": message.receipt_handle},
            )
        else:
            logger.info("SQS deleteMessage succeeded", extra={"message_id": message.message_id})

    async def _extend(self, message: ReceivedMessage) -> None:
        try:
            await self._queue.change_message_visibility(
                message.receipt_handle, self._settings.visibility_extension_seconds
            )
        except QueueStaleError as exc:
            logger.warning(
                "Receipt handle expired before visibility change: %s",
                exc,
                extra={"receipt_handle": message.receipt_handle},
            )
        except QueueError as exc:
            logger.error(
                "SQS changeMessageVisibility failed: %s",
                exc,
                extra={"receipt_handle": message.receipt_handle},
            )
        else:
            logger.info(
                "SQS changeMessageVisibility succeeded",
                extra={"message_id": message.message_id},
            )


def create_worker(settings: AppSettings) -> QuoteRetryWorker:
    return QuoteRetryWorker(
        queue_client=SQSClient(settings.aws),
        quote_client=AlphaVantageClient(settings.alpha_vantage),
        reply_client=SlackResponseClient(settings.slack),
        settings=settings.retry,
    )


async def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    worker = create_worker(settings)
    try:
        await worker.run_forever()
    finally:
        await worker.stop()


if __name__ == "__main__":  # pragma: no cover - manual execution path
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Quote retry worker stopped")


__all__ = ["QuoteRetryWorker", "create_worker", "main"]
