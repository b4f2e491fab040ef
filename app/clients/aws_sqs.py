"""
Amazon SQS client wrapper for the deferred quote request queue.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import AWSSettings

logger = logging.getLogger(__name__)

# Error codes SQS returns when a receipt handle outlived its delivery.
_STALE_RECEIPT_CODES = frozenset(
    {
        "ReceiptHandleIsInvalid",
        "AWS.SimpleQueueService.MessageNotInflight",
        "MessageNotInflight",
    }
)


def _is_stale_receipt(code: str, message: str) -> bool:
    if code in _STALE_RECEIPT_CODES:
        return True
    # Also sent for out-of-range parameters, so only the receipt handle case counts.
    return code == "InvalidParameterValue" and "receipthandle" in message.lower()


class QueueError(RuntimeError):
    """Raised when an SQS call fails."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation


class QueueStaleError(QueueError):
    """Raised when a receipt handle is no longer valid for its message."""


@dataclass(slots=True)
class ReceivedMessage:
    """A single delivery of a queued message."""

    message_id: str
    receipt_handle: str
    body: str
    sent_at: datetime


class SQSClient:
    """Thin async facade over the blocking boto3 SQS client."""

    def __init__(self, settings: AWSSettings, *, client: Any | None = None) -> None:
        self._settings = settings
        self._client = client or boto3.client(
            "sqs",
            region_name=settings.region_name,
            endpoint_url=settings.sqs_endpoint_url,
        )

    @property
    def queue_url(self) -> str:
        return self._settings.sqs_queue_url

    async def send_message(self, payload: Dict[str, Any]) -> str:
        """Push a JSON payload onto the queue and return its message id."""
        response = await self._call(
            "send_message",
            QueueUrl=self.queue_url,
            MessageBody=json.dumps(payload),
            DelaySeconds=self._settings.send_delay_seconds,
        )
        return response["MessageId"]

    async def receive_messages(
        self,
        *,
        max_messages: int,
        visibility_timeout: int,
        wait_time_seconds: int = 0,
    ) -> List[ReceivedMessage]:
        """Claim up to ``max_messages`` visible messages."""
        response = await self._call(
            "receive_message",
            QueueUrl=self.queue_url,
            AttributeNames=["All"],
            MaxNumberOfMessages=max_messages,
            VisibilityTimeout=visibility_timeout,
            WaitTimeSeconds=wait_time_seconds,
        )
        return [self._to_received(raw) for raw in response.get("Messages", [])]

    async def delete_message(self, receipt_handle: str) -> None:
        await self._call(
            "delete_message",
            QueueUrl=self.queue_url,
            ReceiptHandle=receipt_handle,
        )

    async def change_message_visibility(
        self, receipt_handle: str, visibility_timeout: int
    ) -> None:
        await self._call(
            "change_message_visibility",
            QueueUrl=self.queue_url,
            ReceiptHandle=receipt_handle,
            VisibilityTimeout=visibility_timeout,
        )

    async def _call(self, operation: str, **params: Any) -> Dict[str, Any]:
        method = getattr(self._client, operation)
        try:
            response = await asyncio.to_thread(method, **params)
        except ClientError as exc:
            error = exc.response.get("Error", {})
            code = error.get("Code", "")
            if "ReceiptHandle" in params and _is_stale_receipt(code, error.get("Message", "")):
                raise QueueStaleError(operation, code) from exc
            raise QueueError(operation, code or str(exc)) from exc
        except BotoCoreError as exc:
            raise QueueError(operation, str(exc)) from exc
        logger.debug("SQS %s succeeded", operation)
        return response

    @staticmethod
    def _to_received(raw: Dict[str, Any]) -> ReceivedMessage:
        attributes = raw.get("Attributes") or {}
        sent_ms = int(attributes.get("SentTimestamp", "0"))
        return ReceivedMessage(
            message_id=raw["MessageId"],
            receipt_handle=raw["ReceiptHandle"],
            body=raw["Body"],
            sent_at=datetime.fromtimestamp(sent_ms / 1000, tz=timezone.utc),
        )


__all__ = ["QueueError", "QueueStaleError", "ReceivedMessage", "SQSClient"]
