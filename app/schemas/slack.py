"""
Pydantic models for Slack slash command payloads and replies.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl


class SlackSlashCommand(BaseModel):
    """Form payload Slack posts when a user runs a slash command.

    Unknown fields are kept so the payload can be re-queued exactly as
    received.
    """

    model_config = ConfigDict(extra="allow", frozen=True, str_strip_whitespace=True)

    token: Optional[str] = Field(
        None, description="Deprecated verification token; never trusted."
    )
    team_id: str
    team_domain: str
    channel_id: str
    channel_name: str
    user_id: str
    user_name: str
    command: str
    text: str = Field(..., min_length=1, description="Arguments typed after the command.")
    response_url: HttpUrl = Field(
        ..., description="One-time URL for delayed replies, valid for 30 minutes."
    )
    trigger_id: str

    @property
    def ticker_symbol(self) -> str:
        return self.text.strip()

    def to_queue_payload(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class SlackAttachment(BaseModel):
    text: str


class SlackMessage(BaseModel):
    """Message body understood by both slash command responses and response URLs."""

    response_type: Literal["ephemeral", "in_channel"] = "ephemeral"
    text: str
    attachments: Optional[List[SlackAttachment]] = None

    @classmethod
    def ephemeral(cls, text: str, *attachments: str) -> "SlackMessage":
        return cls(
            text=text,
            attachments=[SlackAttachment(text=item) for item in attachments] or None,
        )


__all__ = ["SlackAttachment", "SlackMessage", "SlackSlashCommand"]
