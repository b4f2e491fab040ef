try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from app.clients import QueueError
from app.services import DeferralQueueService

try:
    from ._payloads import SLACK_FORM, slack_command
except ImportError:  # pragma: no cover - fallback for direct execution
    from _payloads import SLACK_FORM, slack_command  # type: ignore

pytestmark = pytest.mark.anyio("asyncio")


class StubQueue:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.payloads: list[dict] = []

    async def send_message(self, payload: dict) -> str:
        if self.error is not None:
            raise self.error
        self.payloads.append(payload)
        return f"msg-{len(self.payloads)}"


async def test_enqueue_sends_original_payload() -> None:
    queue = StubQueue()

    message_id = await DeferralQueueService(queue).enqueue(slack_command())

    assert message_id == "msg-1"
    assert queue.payloads == [SLACK_FORM]


async def test_same_symbol_is_not_deduplicated() -> None:
    queue = StubQueue()
    service = DeferralQueueService(queue)

    service.defer(slack_command())
    service.defer(slack_command())
    await service.wait_for_pending()

    assert len(queue.payloads) == 2


async def test_enqueue_failure_is_logged_not_raised(caplog) -> None:
    queue = StubQueue(error=QueueError("send_message", "AccessDenied"))

    message_id = await DeferralQueueService(queue).enqueue(slack_command())

    assert message_id is None
    assert any("Failed to defer" in record.getMessage() for record in caplog.records)


async def test_wait_for_pending_without_work() -> None:
    await DeferralQueueService(StubQueue()).wait_for_pending()
