"""Answer market quote slash commands inside Slack's response deadline."""

from __future__ import annotations

import logging

from app.clients.alpha_vantage import AlphaVantageClient, UpstreamTransportError
from app.core.config import SlackSettings
from app.schemas import SlackMessage, SlackSlashCommand
from app.services.deferral_queue import DeferralQueueService
from app.services.response_classifier import MarketQuote, ResponseKind, classify_response
from app.utils.deadline import DEADLINE_EXCEEDED, race_deadline

logger = logging.getLogger(__name__)


def _quote_line(quote: MarketQuote) -> str:
    return f"${quote.close_price} USD as of {quote.as_of}"


def quote_message(quote: MarketQuote) -> SlackMessage:
    return SlackMessage.ephemeral(
        f"Here is your market quote for {quote.symbol}", _quote_line(quote)
    )


def delayed_quote_message(quote: MarketQuote) -> SlackMessage:
    return SlackMessage.ephemeral(
        f"Sorry for the delay! Here is your market quote for {quote.symbol}",
        _quote_line(quote),
    )


def invalid_symbol_message(symbol: str) -> SlackMessage:
    return SlackMessage.ephemeral(
        f"I had trouble fetching the latest market data for {symbol}. "
        "Make sure it's a valid ticker symbol and try again later."
    )


def rate_limited_message(symbol: str) -> SlackMessage:
    return SlackMessage.ephemeral(
        f"Circuits are busy! Hang tight while I fetch market data for {symbol}..."
    )


def timeout_message(symbol: str) -> SlackMessage:
    return SlackMessage.ephemeral(
        f"It's taking me longer to fetch market data for {symbol} than usual... Hang tight!"
    )


def unknown_response_message(symbol: str) -> SlackMessage:
    return SlackMessage.ephemeral(
        f"Things got really weird fetching market data for {symbol}. "
        "I'll try again later and report back."
    )


def transport_failure_message(symbol: str) -> SlackMessage:
    return SlackMessage.ephemeral(
        f"I had a problem trying to fetch market data for {symbol}. "
        "I'll try again later and report back."
    )


class MarketQuoteService:
    """Reply to a slash command once, deferring to the retry queue when needed."""

    def __init__(
        self,
        quote_client: AlphaVantageClient,
        deferrals: DeferralQueueService,
        settings: SlackSettings,
    ) -> None:
        self._quotes = quote_client
        self._deferrals = deferrals
        self._deadline_seconds = settings.response_deadline_ms / 1000

    async def handle_command(self, command: SlackSlashCommand) -> SlackMessage:
        symbol = command.ticker_symbol
        try:
            outcome = await race_deadline(
                self._quotes.fetch_quote(symbol),
                self._deadline_seconds,
                label=f"Alpha Vantage request for {symbol}",
            )
        except UpstreamTransportError as exc:
            logger.error(
                "Error caught attempting to communicate with Alpha Vantage: %s",
                exc,
                extra={"symbol": symbol},
            )
            self._deferrals.defer(command)
            return transport_failure_message(symbol)
        except Exception:  # pragma: no cover - the caller must always get a reply
            logger.exception(
                "Unexpected failure fetching market data", extra={"symbol": symbol}
            )
            self._deferrals.defer(command)
            return transport_failure_message(symbol)

        if outcome is DEADLINE_EXCEEDED:
            logger.info(
                "Alpha Vantage took longer than %sms for %s",
                int(self._deadline_seconds * 1000),
                symbol,
                extra={"symbol": symbol},
            )
            self._deferrals.defer(command)
            return timeout_message(symbol)

        classified = classify_response(outcome.body, symbol=symbol)
        if classified.kind is ResponseKind.PASSING and classified.quote is not None:
            logger.info("Market quote request for %s was satisfied", symbol)
            return quote_message(classified.quote)

        if classified.kind is ResponseKind.ERROR:
            logger.error(
                "Alpha Vantage returned an error response for %s: %s",
                symbol,
                outcome.body,
                extra={"symbol": symbol, "status_code": outcome.status_code},
            )
            return invalid_symbol_message(symbol)

        if classified.kind is ResponseKind.RATE_LIMITED:
            logger.info("Alpha Vantage rate limit hit for %s", symbol, extra={"symbol": symbol})
            self._deferrals.defer(command)
            return rate_limited_message(symbol)

        logger.error(
            "Alpha Vantage response shape is not recognized for %s: %s",
            symbol,
            outcome.body,
            extra={"symbol": symbol, "status_code": outcome.status_code},
        )
        self._deferrals.defer(command)
        return unknown_response_message(symbol)


__all__ = [
    "MarketQuoteService",
    "delayed_quote_message",
    "invalid_symbol_message",
    "quote_message",
    "rate_limited_message",
    "timeout_message",
    "transport_failure_message",
    "unknown_response_message",
]
