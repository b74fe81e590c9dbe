"""Webhook for external systems to control the sync scheduler.

Callers authenticate with the shared ``WEBHOOK_API_KEY`` carried in the
request body as ``apiKey``.  Supported actions:

- ``trigger_sync``:    start a manual sync (one account if ``userId`` is set)
- ``start_scheduler``: arm the daily sweep
- ``stop_scheduler``:  disarm the daily sweep
"""

from __future__ import annotations

import hmac
import logging

from fastapi import APIRouter, HTTPException

from src.dependencies import AppSettings, Scheduler
from src.models.base import ErrorDetail
from src.models.sync import WebhookAction, WebhookRequest

router = APIRouter(prefix="/webhook", tags=["webhooks"])
logger = logging.getLogger("reviewsync.webhooks")


def _verify_api_key(provided: str, expected: str) -> bool:
    """Constant-time comparison. An unconfigured secret never matches."""
    if not expected:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


@router.post(
    "/sync",
    responses={400: {"model": ErrorDetail}, 401: {"model": ErrorDetail}},
)
async def sync_webhook(
    body: WebhookRequest, scheduler: Scheduler, settings: AppSettings
) -> dict:
    if not _verify_api_key(body.api_key, settings.webhook_api_key):
        logger.warning("Rejected sync webhook with invalid API key")
        raise HTTPException(status_code=401, detail="Unauthorized")

    logger.info("Sync webhook received: action=%s userId=%s", body.action, body.user_id)

    if body.action == WebhookAction.trigger_sync.value:
        scheduler.trigger_manual_sync(body.user_id)
        return {"message": "Sync triggered"}
    if body.action == WebhookAction.start_scheduler.value:
        scheduler.start()
        return {"message": "Scheduler started"}
    if body.action == WebhookAction.stop_scheduler.value:
        scheduler.stop()
        return {"message": "Scheduler stopped"}

    raise HTTPException(status_code=400, detail="Invalid action")
