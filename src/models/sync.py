"""Pydantic models for sync accounts, sync jobs and the status/trigger API."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

from pydantic import Field

from src.models.base import CamelModel, SyncBase


# ---------- Enums ----------

class JobStatus(str, Enum):
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


ACTIVE_STATUSES: tuple[JobStatus, ...] = (JobStatus.pending, JobStatus.running)


class WebhookAction(str, Enum):
    trigger_sync = "trigger_sync"
    start_scheduler = "start_scheduler"
    stop_scheduler = "stop_scheduler"


# ---------- Rows ----------

class Account(SyncBase):
    """A profile with a review-platform integration. Read only."""

    account_id: uuid.UUID
    display_name: str | None = None
    location_id: str | None = None
    locked_at: datetime | None = None
    last_sync_at: datetime | None = None
    timezone: str | None = None

    @property
    def is_eligible(self) -> bool:
        return self.location_id is not None and self.locked_at is not None

    @property
    def label(self) -> str:
        return f"{self.display_name or 'unnamed'} ({self.account_id})"


class SyncJob(SyncBase):
    job_id: uuid.UUID
    account_id: uuid.UUID
    platform: str
    status: JobStatus = JobStatus.pending
    full_history: bool = False
    total_available: int = 0
    imported_count: int = 0
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


# ---------- Status ----------

class SyncStats(CamelModel):
    total_accounts: int = 0
    active_jobs: int = 0
    completed_today: int = 0
    failed_today: int = 0


class SweepSummary(CamelModel):
    started_at: datetime
    finished_at: datetime | None = None
    total_accounts: int = 0
    batches: int = 0
    dispatched: int = 0
    skipped: int = 0
    failed: int = 0


class SyncStatus(CamelModel):
    is_running: bool
    scheduler_active: bool
    next_run: str
    next_run_at: datetime | None = None
    last_sweep: SweepSummary | None = None
    stats: SyncStats = Field(default_factory=SyncStats)


# ---------- Requests ----------

class TriggerRequest(CamelModel):
    user_id: uuid.UUID | None = None
    full_history: bool = False


class WebhookRequest(CamelModel):
    action: str
    user_id: uuid.UUID | None = None
    api_key: str = ""
