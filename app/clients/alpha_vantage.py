"""Client for the Alpha Vantage daily time series endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from app.core.config import AlphaVantageSettings

logger = logging.getLogger(__name__)


class UpstreamTransportError(RuntimeError):
    """Raised when the quote API cannot be reached or returns a non-JSON body."""

    def __init__(self, symbol: str, message: str) -> None:
        super().__init__(message)
        self.symbol = symbol


@dataclass(slots=True)
class UpstreamResponse:
    """Raw upstream reply, classified by shape rather than by status."""

    status_code: int
    body: Any


class AlphaVantageClient:
    """Fetch daily market quotes for a ticker symbol.

    The client performs exactly one request per call. Deadlines and retries
    belong to the callers.
    """

    def __init__(
        self,
        settings: AlphaVantageSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    async def fetch_quote(self, symbol: str) -> UpstreamResponse:
        params = {
            "function": "TIME_SERIES_DAILY",
            "symbol": symbol,
            "apikey": self._settings.api_key,
            "outputsize": "compact",
            "datatype": "json",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.request_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(self._settings.query_url, params=params)
        except httpx.HTTPError as exc:
            raise UpstreamTransportError(
                symbol, f"Alpha Vantage request failed: {exc!r}"
            ) from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamTransportError(
                symbol,
                f"Alpha Vantage returned a non-JSON body (status {response.status_code})",
            ) from exc

        logger.debug(
            "Alpha Vantage responded with status %s for %s", response.status_code, symbol
        )
        return UpstreamResponse(status_code=response.status_code, body=body)


__all__ = ["AlphaVantageClient", "UpstreamResponse", "UpstreamTransportError"]
