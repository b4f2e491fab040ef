try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import asyncio
import time

import pytest

from app.clients import UpstreamResponse, UpstreamTransportError
from app.core.config import SlackSettings
from app.services import MarketQuoteService

try:
    from ._payloads import AV_ERROR, AV_RATE_LIMIT, av_success, slack_command
except ImportError:  # pragma: no cover - fallback for direct execution
    from _payloads import AV_ERROR, AV_RATE_LIMIT, av_success, slack_command  # type: ignore

pytestmark = pytest.mark.anyio("asyncio")


class StubQuoteClient:
    def __init__(self, body=None, *, delay: float = 0.0, error: Exception | None = None) -> None:
        self.body = body
        self.delay = delay
        self.error = error
        self.symbols: list[str] = []

    async def fetch_quote(self, symbol: str) -> UpstreamResponse:
        self.symbols.append(symbol)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return UpstreamResponse(status_code=200, body=self.body)


class RecordingDeferrals:
    def __init__(self) -> None:
        self.commands = []

    def defer(self, command):
        self.commands.append(command)


def _service(quote_client, deferrals, deadline_ms: int = 200) -> MarketQuoteService:
    settings = SlackSettings(signing_secret="secret", response_deadline_ms=deadline_ms)
    return MarketQuoteService(quote_client, deferrals, settings)


async def test_passing_quote_is_answered_immediately() -> None:
    deferrals = RecordingDeferrals()
    service = _service(StubQuoteClient(av_success()), deferrals)

    message = await service.handle_command(slack_command())

    assert message.text == "Here is your market quote for BTCUSD"
    assert message.attachments[0].text == "$8293.4497 USD as of 2019-05-31"
    assert "8293.4497 USD as of 2019-05-31" in message.attachments[0].text
    assert deferrals.commands == []


async def test_error_response_is_not_retried() -> None:
    deferrals = RecordingDeferrals()
    service = _service(StubQuoteClient(AV_ERROR), deferrals)

    message = await service.handle_command(slack_command(text="NOPE"))

    assert "valid ticker symbol" in message.text
    assert "NOPE" in message.text
    assert deferrals.commands == []


async def test_rate_limit_defers_original_request() -> None:
    deferrals = RecordingDeferrals()
    service = _service(StubQuoteClient(AV_RATE_LIMIT), deferrals)
    command = slack_command()

    message = await service.handle_command(command)

    assert message.text.startswith("Circuits are busy!")
    assert deferrals.commands == [command]
    assert deferrals.commands[0].ticker_symbol == "BTCUSD"


async def test_unknown_shape_defers() -> None:
    deferrals = RecordingDeferrals()
    service = _service(StubQuoteClient({"Information": "changed"}), deferrals)

    message = await service.handle_command(slack_command())

    assert message.text.startswith("Things got really weird")
    assert len(deferrals.commands) == 1


async def test_transport_failure_defers() -> None:
    deferrals = RecordingDeferrals()
    client = StubQuoteClient(error=UpstreamTransportError("BTCUSD", "connection reset"))
    service = _service(client, deferrals)

    message = await service.handle_command(slack_command())

    assert message.text.startswith("I had a problem trying to fetch market data for BTCUSD")
    assert len(deferrals.commands) == 1


async def test_slow_upstream_replies_before_deadline_and_defers() -> None:
    deferrals = RecordingDeferrals()
    client = StubQuoteClient(av_success(), delay=0.3)
    service = _service(client, deferrals, deadline_ms=50)

    started = time.monotonic()
    message = await service.handle_command(slack_command())
    elapsed = time.monotonic() - started

    assert message.text.startswith("It's taking me longer to fetch market data for BTCUSD")
    assert elapsed < 0.25
    assert len(deferrals.commands) == 1

    # Let the abandoned upstream call settle before the loop closes.
    await asyncio.sleep(0.35)
