"""
FastAPI routes for the market quote bot.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.core.config import AppSettings
from app.dependencies import (
    SettingsDependency,
    get_market_quote_service,
    get_slack_request_verifier,
)
from app.schemas import SlackMessage
from app.services import MarketQuoteService, SlackRejection, SlackRequestVerifier

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck(settings: AppSettings = SettingsDependency) -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok", "environment": settings.environment}


@router.post(
    "/integrations/slack/market-quote",
    status_code=HTTPStatus.OK,
    response_model=SlackMessage,
    response_model_exclude_none=True,
)
async def slack_market_quote(
    request: Request,
    verifier: Annotated[SlackRequestVerifier, Depends(get_slack_request_verifier)],
    quote_service: Annotated[MarketQuoteService, Depends(get_market_quote_service)],
) -> SlackMessage:
    """Handle the ``/marketquote`` slash command.

    Slack treats anything other than a 200 within three seconds as a failure,
    so every outcome, including rejections, is an ephemeral 200 reply.
    """
    body = await request.body()

    rejection = verifier.verify_signature(
        timestamp=request.headers.get("X-Slack-Request-Timestamp"),
        signature=request.headers.get("X-Slack-Signature"),
        body=body,
    )
    if rejection is SlackRejection.REPLAY:
        logger.warning(
            "Possible replay attack detected while validating Slack request",
            extra={"headers": dict(request.headers)},
        )
        return rejection.reply()
    if rejection is not None:
        logger.warning(
            "Invalid signature detected while validating Slack request",
            extra={"headers": dict(request.headers)},
        )
        return rejection.reply()

    parsed = verifier.parse_command(body)
    if isinstance(parsed, SlackRejection):
        return parsed.reply()

    return await quote_service.handle_command(parsed)


__all__ = ["router"]
