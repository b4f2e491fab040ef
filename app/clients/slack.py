"""Client for posting delayed replies to Slack response URLs."""

from __future__ import annotations

import logging
from http import HTTPStatus

import httpx

from app.core.config import SlackSettings
from app.schemas import SlackMessage

logger = logging.getLogger(__name__)

_GONE_STATUSES = frozenset({HTTPStatus.NOT_FOUND, HTTPStatus.GONE})


class CallbackGoneError(RuntimeError):
    """The response URL no longer accepts replies; retrying cannot help."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"Slack response URL answered with {status_code}")
        self.status_code = status_code


class CallbackTransientError(RuntimeError):
    """The reply could not be delivered right now but may succeed later."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SlackResponseClient:
    """Deliver out-of-band replies through a slash command's response URL."""

    def __init__(
        self,
        settings: SlackSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    async def send_delayed_response(self, response_url: str, message: SlackMessage) -> None:
        """POST ``message`` to ``response_url``.

        Returns only when Slack answered 200. A 404/410 raises
        ``CallbackGoneError``; every other outcome raises
        ``CallbackTransientError``.
        """
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.callback_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    response_url, json=message.model_dump(exclude_none=True)
                )
        except httpx.HTTPError as exc:
            raise CallbackTransientError(f"Slack response URL unreachable: {exc!r}") from exc

        if response.status_code == HTTPStatus.OK:
            return
        if response.status_code in _GONE_STATUSES:
            raise CallbackGoneError(response.status_code)
        raise CallbackTransientError(
            f"Slack response URL answered with {response.status_code}",
            status_code=response.status_code,
        )


__all__ = ["CallbackGoneError", "CallbackTransientError", "SlackResponseClient"]
