"""Review Sync Scheduler: FastAPI application entry point.

Run locally:
    uvicorn src.main:app --reload --port 3001
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.config import Settings, get_settings
from src.routers import health, sync, webhooks
from src.services.accounts import AccountStore
from src.services.supabase import close_pool, init_pool
from src.services.worker import WorkerClient
from src.sync.dispatcher import BatchDispatcher
from src.sync.ledger import JobLedger
from src.sync.scheduler import SyncScheduler
from src.sync.status import StatusReporter, describe_schedule

# ---------- Logging ----------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("reviewsync")


def build_sync_scheduler(settings: Settings, worker: WorkerClient) -> SyncScheduler:
    """Wire the store, ledger, dispatcher and reporter into one controller."""
    accounts = AccountStore()
    ledger = JobLedger(platform=settings.sync_platform)
    dispatcher = BatchDispatcher(
        accounts,
        ledger,
        worker,
        batch_size=settings.sync_batch_size,
        batch_delay=settings.sync_batch_delay_seconds,
    )
    reporter = StatusReporter(
        accounts,
        ledger,
        dispatcher,
        schedule_description=describe_schedule(
            settings.sync_hour, settings.sync_minute, settings.sync_timezone
        ),
    )
    return SyncScheduler(
        dispatcher,
        accounts,
        reporter,
        hour=settings.sync_hour,
        minute=settings.sync_minute,
        timezone=settings.sync_timezone,
    )


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    logger.info(
        "Starting Review Sync Scheduler v%s [%s]",
        settings.app_version,
        settings.environment,
    )
    await init_pool(settings)
    worker = WorkerClient(
        settings.worker_api_url,
        settings.worker_api_key,
        timeout=settings.worker_timeout_seconds,
    )
    scheduler = build_sync_scheduler(settings, worker)
    app.state.sync_scheduler = scheduler

    if settings.should_auto_start:
        scheduler.start()
        logger.info("Automated sync scheduler started")

    yield

    await scheduler.aclose()
    await worker.aclose()
    await close_pool()
    logger.info("Review Sync Scheduler shut down")


# ---------- App factory ----------

def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Review Sync Scheduler",
        description="Daily dispatch of review sync jobs to the sync worker.",
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------- Health / debug (no prefix) ----------
    app.include_router(health.router)

    # ---------- API routes ----------
    api_prefix = "/api"
    app.include_router(sync.router, prefix=api_prefix)
    app.include_router(webhooks.router, prefix=api_prefix)

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    settings = get_settings()
    uvicorn.run("src.main:app", host="0.0.0.0", port=settings.port)


app = create_app()
