"""
FastAPI application entrypoint for the market quote bot.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api.routes import router as api_router
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.dependencies import get_deferral_queue_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the retry queue worker alongside the API when enabled."""
    settings = get_settings()
    worker = None
    worker_task = None
    if settings.retry.enabled:
        from workers.quote_retry.worker import create_worker

        worker = create_worker(settings)
        worker_task = asyncio.create_task(worker.run_forever())
    else:
        logger.info("Retry queue worker disabled; run workers.quote_retry.worker separately")

    yield

    if worker is not None and worker_task is not None:
        await worker.stop()
        worker_task.cancel()
        await asyncio.gather(worker_task, return_exceptions=True)
    await get_deferral_queue_service().wait_for_pending()


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Market Quote Slack Bot",
        version="0.1.0",
        description="Slash command endpoint for market quotes with deferred retries.",
        lifespan=lifespan,
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
