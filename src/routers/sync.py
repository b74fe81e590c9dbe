"""Sync scheduler management endpoints: status, manual trigger, start, stop."""

from __future__ import annotations

from fastapi import APIRouter

from src.dependencies import Scheduler
from src.models.sync import SyncStatus, TriggerRequest

router = APIRouter(prefix="/sync", tags=["sync"])


@router.get("/status", response_model=SyncStatus)
async def get_sync_status(scheduler: Scheduler) -> SyncStatus:
    return await scheduler.get_status()


@router.post("/trigger")
async def trigger_manual_sync(
    scheduler: Scheduler, body: TriggerRequest | None = None
) -> dict:
    """Start a manual sync in the background and return immediately."""
    body = body or TriggerRequest()
    scheduler.trigger_manual_sync(body.user_id, full_history=body.full_history)
    return {
        "message": (
            "Manual sync triggered for user"
            if body.user_id
            else "Manual sync triggered for all accounts"
        ),
        "userId": str(body.user_id) if body.user_id else None,
    }


@router.post("/start")
async def start_scheduler(scheduler: Scheduler) -> dict:
    scheduler.start()
    return {"message": "Sync scheduler started"}


@router.post("/stop")
async def stop_scheduler(scheduler: Scheduler) -> dict:
    scheduler.stop()
    return {"message": "Sync scheduler stopped"}
