"""Health and debug endpoints: public, no auth required."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException

from src.dependencies import AppSettings
from src.services.supabase import ping

router = APIRouter(tags=["system"])
logger = logging.getLogger("reviewsync.health")

_STARTED_AT = time.monotonic()


def _uptime() -> float:
    return round(time.monotonic() - _STARTED_AT, 3)


@router.get("/health")
async def health_check(settings: AppSettings) -> dict:
    """Liveness probe. Returns 200 if the process is up.

    Also performs a lightweight DB connectivity check.
    """
    db_ok = False
    try:
        db_ok = await ping()
    except Exception as exc:
        logger.warning("Health check DB probe failed: %s", exc)

    return {
        "status": "healthy" if db_ok else "degraded",
        "service": "review-sync-scheduler",
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected" if db_ok else "unreachable",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": _uptime(),
    }


@router.get("/debug")
async def debug_info(settings: AppSettings) -> dict:
    """Report which settings are present, without their values."""
    return {
        "environment": settings.environment,
        "port": settings.port,
        "uptime": _uptime(),
        "config": {
            "supabaseDbUrl": "SET" if settings.supabase_db_url else "MISSING",
            "workerApiUrl": settings.worker_api_url,
            "workerApiKey": "SET" if settings.worker_api_key else "MISSING",
            "webhookApiKey": "SET" if settings.webhook_api_key else "MISSING",
            "autoStart": settings.should_auto_start,
        },
    }


@router.get("/debug/db")
async def debug_db() -> dict:
    """Round-trip the database and report the error if it fails."""
    try:
        await ping()
    except Exception as exc:
        logger.error("Database connection test failed: %s", exc)
        raise HTTPException(
            status_code=500, detail=f"Database connection failed: {exc}"
        ) from exc
    return {"status": "success", "timestamp": datetime.now(timezone.utc).isoformat()}
