"""Sync-job ledger backed by the ``review_sync_jobs`` table.

The dispatcher uses the ledger to keep at most one active (``pending`` or
``running``) job per account and platform.  The check in
:meth:`JobLedger.find_active_job` and the insert in :meth:`JobLedger.create_job`
are two statements, so the guarantee is best effort.  Deployments that want
a hard guarantee add a partial unique index::

    CREATE UNIQUE INDEX review_sync_jobs_one_active
        ON review_sync_jobs (tour_operator_id, platform)
        WHERE status IN ('pending', 'running');

with which a losing insert raises :class:`ActiveJobConflict`.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

import asyncpg

from src.models.sync import ACTIVE_STATUSES, JobStatus, SyncJob
from src.services import supabase as db

logger = logging.getLogger("reviewsync.sync.ledger")

_JOB_COLUMNS = """
    id               AS job_id,
    tour_operator_id AS account_id,
    platform,
    status,
    full_history,
    total_available,
    imported_count,
    created_at,
    started_at,
    completed_at,
    error
"""

_ACTIVE = [s.value for s in ACTIVE_STATUSES]


class ActiveJobConflict(Exception):
    """The store rejected a new job because one is already active."""

    def __init__(self, account_id: uuid.UUID) -> None:
        super().__init__(f"Active sync job already exists for account {account_id}")
        self.account_id = account_id


class JobLedger:
    """Create, query and update sync-job rows for one platform."""

    def __init__(self, platform: str = "tripadvisor") -> None:
        self.platform = platform

    async def find_active_job(self, account_id: uuid.UUID) -> SyncJob | None:
        """Return the newest pending/running job for the account, if any."""
        row = await db.fetchrow(
            f"""
            SELECT {_JOB_COLUMNS}
            FROM review_sync_jobs
            WHERE tour_operator_id = $1 AND platform = $2 AND status = ANY($3::text[])
            ORDER BY created_at DESC
            LIMIT 1
            """,
            account_id,
            self.platform,
            _ACTIVE,
        )
        return SyncJob.model_validate(dict(row)) if row else None

    async def create_job(self, account_id: uuid.UUID, full_history: bool = False) -> SyncJob:
        """Insert a new ``pending`` job.

        Raises:
            ActiveJobConflict: A unique index on active jobs rejected the insert.
        """
        try:
            row = await db.fetchrow(
                f"""
                INSERT INTO review_sync_jobs (
                    tour_operator_id, platform, status, full_history,
                    total_available, imported_count, started_at
                )
                VALUES ($1, $2, $3, $4, 0, 0, NOW())
                RETURNING {_JOB_COLUMNS}
                """,
                account_id,
                self.platform,
                JobStatus.pending.value,
                full_history,
            )
        except asyncpg.UniqueViolationError as exc:
            raise ActiveJobConflict(account_id) from exc

        if row is None:
            raise RuntimeError(f"Insert returned no row for account {account_id}")
        return SyncJob.model_validate(dict(row))

    async def mark_failed(self, job_id: uuid.UUID, error: str) -> None:
        await db.execute(
            """
            UPDATE review_sync_jobs
            SET status = $2, error = $3, completed_at = NOW()
            WHERE id = $1
            """,
            job_id,
            JobStatus.failed.value,
            error,
        )

    async def count_active(self) -> int:
        count = await db.fetchval(
            "SELECT COUNT(*) FROM review_sync_jobs WHERE platform = $1 AND status = ANY($2::text[])",
            self.platform,
            _ACTIVE,
        )
        return int(count or 0)

    async def count_created_between(
        self, status: JobStatus, start: datetime, end: datetime
    ) -> int:
        """Count jobs in ``status`` created in the half-open window [start, end)."""
        count = await db.fetchval(
            """
            SELECT COUNT(*) FROM review_sync_jobs
            WHERE platform = $1 AND status = $2
              AND created_at >= $3 AND created_at < $4
            """,
            self.platform,
            status.value,
            start,
            end,
        )
        return int(count or 0)
