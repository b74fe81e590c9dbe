"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from src.config import Settings, get_settings
from src.sync.scheduler import SyncScheduler


def get_sync_scheduler(request: Request) -> SyncScheduler:
    """Return the scheduler built by the app lifespan."""
    scheduler: SyncScheduler | None = getattr(request.app.state, "sync_scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Sync scheduler not initialized")
    return scheduler


# Annotated shortcuts for route signatures
Scheduler = Annotated[SyncScheduler, Depends(get_sync_scheduler)]
AppSettings = Annotated[Settings, Depends(get_settings)]
