"""
Slack request verification.

Implements Slack's signing secret scheme: ``v0=`` followed by the hex
HMAC-SHA256 of ``v0:{timestamp}:{raw body}``. Requests whose timestamp is
outside the allowed window are treated as possible replays.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from enum import Enum
from typing import Mapping, Optional, Union
from urllib.parse import parse_qsl

from pydantic import ValidationError

from app.core.config import SlackSettings
from app.schemas import SlackMessage, SlackSlashCommand

logger = logging.getLogger(__name__)


class SlackRejection(str, Enum):
    """Reasons a slash command is refused before any work is done."""

    REPLAY = "101"
    INVALID_SIGNATURE = "102"
    MALFORMED_PAYLOAD = "103"
    MISSING_ARGUMENT = "missing_argument"

    def reply(self) -> SlackMessage:
        if self is SlackRejection.MISSING_ARGUMENT:
            return SlackMessage.ephemeral(
                "You forgot to include your slash command argument! See examples below:",
                "Getting a market quote: /marketquote BTCUSD",
            )
        return SlackMessage.ephemeral(
            f"There was a communication error with the bot. (code: {self.value})"
        )


class SlackRequestVerifier:
    """Check signatures and payload shape of incoming slash commands."""

    def __init__(self, settings: SlackSettings) -> None:
        self._secret = settings.signing_secret.encode("utf-8")
        self._max_age = settings.request_max_age_seconds

    def compute_signature(self, timestamp: str, body: bytes) -> str:
        base = b"v0:" + timestamp.encode("utf-8") + b":" + body
        digest = hmac.new(self._secret, base, hashlib.sha256).hexdigest()
        return f"v0={digest}"

    def verify_signature(
        self,
        *,
        timestamp: Optional[str],
        signature: Optional[str],
        body: bytes,
        now: Optional[float] = None,
    ) -> Optional[SlackRejection]:
        """Return ``None`` for an authentic request, otherwise the rejection."""
        current = time.time() if now is None else now
        try:
            sent_at = int(timestamp or "")
        except ValueError:
            return SlackRejection.REPLAY
        if abs(current - sent_at) > self._max_age:
            return SlackRejection.REPLAY

        expected = self.compute_signature(str(timestamp), body)
        if not signature or not hmac.compare_digest(
            expected.encode("utf-8"), signature.encode("utf-8")
        ):
            return SlackRejection.INVALID_SIGNATURE
        return None

    def parse_command(
        self, body: bytes
    ) -> Union[SlackSlashCommand, SlackRejection]:
        form: Mapping[str, str] = dict(
            parse_qsl(body.decode("utf-8", errors="replace"), keep_blank_values=True)
        )
        try:
            return SlackSlashCommand.model_validate(form)
        except ValidationError as exc:
            errors = exc.errors()
            if any(
                error["loc"] == ("text",) and error["type"] == "string_too_short"
                for error in errors
            ):
                return SlackRejection.MISSING_ARGUMENT
            logger.error(
                "Improperly formed Slack slash command payload detected: %s",
                errors,
            )
            return SlackRejection.MALFORMED_PAYLOAD


__all__ = ["SlackRejection", "SlackRequestVerifier"]
