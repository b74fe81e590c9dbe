"""Batch dispatcher for the daily review sync sweep.

One sweep:
1. Load every eligible account (location id + locked integration)
2. Split them into batches of ``batch_size``
3. Dispatch each batch concurrently, waiting for every account to settle
4. Sleep ``batch_delay`` seconds between batches to pace the worker
   and the review platform's own rate limits

Per account the dispatcher skips accounts that already have an active job,
creates a ``pending`` job row and hands it to the worker.  Nothing raised
for one account reaches the batch, and nothing raised inside a sweep
reaches the caller.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Sequence, TypeVar

from src.models.sync import Account, SweepSummary, SyncJob
from src.services.accounts import AccountStore
from src.services.worker import DispatchResult, WorkerClient
from src.sync.ledger import ActiveJobConflict, JobLedger

logger = logging.getLogger("reviewsync.sync.dispatcher")

DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY_SECONDS = 30.0

T = TypeVar("T")


class DispatchOutcome(str, Enum):
    dispatched = "dispatched"
    skipped = "skipped"              # active job already exists
    create_failed = "create_failed"
    dispatch_failed = "dispatch_failed"
    error = "error"                  # unexpected exception


@dataclass
class SweepReport:
    """Summary of one sweep.

    Attributes:
        started_at:     UTC start time.
        finished_at:    UTC end time (None while running).
        total_accounts: Eligible accounts found.
        batches:        Batches processed.
        outcomes:       Count per DispatchOutcome.
    """

    started_at: datetime
    finished_at: datetime | None = None
    total_accounts: int = 0
    batches: int = 0
    outcomes: dict[DispatchOutcome, int] = field(default_factory=dict)

    def record(self, outcome: DispatchOutcome) -> None:
        self.outcomes[outcome] = self.outcomes.get(outcome, 0) + 1

    def count(self, *outcomes: DispatchOutcome) -> int:
        return sum(self.outcomes.get(o, 0) for o in outcomes)

    def to_summary(self) -> SweepSummary:
        return SweepSummary(
            started_at=self.started_at,
            finished_at=self.finished_at,
            total_accounts=self.total_accounts,
            batches=self.batches,
            dispatched=self.count(DispatchOutcome.dispatched),
            skipped=self.count(DispatchOutcome.skipped),
            failed=self.count(
                DispatchOutcome.create_failed,
                DispatchOutcome.dispatch_failed,
                DispatchOutcome.error,
            ),
        )


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ``items`` into consecutive lists of at most ``size`` elements."""
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class BatchDispatcher:
    """Run sync sweeps across all eligible accounts.

    Usage::

        dispatcher = BatchDispatcher(AccountStore(), JobLedger(), worker)
        report = await dispatcher.run_full_sweep()

    Only one sweep runs at a time per dispatcher; a second call while one
    is in flight returns None without touching the store.
    """

    def __init__(
        self,
        accounts: AccountStore,
        ledger: JobLedger,
        worker: WorkerClient,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            accounts:    Source of eligible accounts.
            ledger:      Sync-job ledger used for dedup and job rows.
            worker:      Client that hands jobs to the remote worker.
            batch_size:  Accounts dispatched concurrently per batch.
            batch_delay: Seconds to wait between batches.
            sleep:       Awaitable sleep, replaceable in tests.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        if batch_delay < 0:
            raise ValueError(f"batch_delay must be >= 0, got {batch_delay}")
        self._accounts = accounts
        self._ledger = ledger
        self._worker = worker
        self._batch_size = batch_size
        self._batch_delay = batch_delay
        self._sleep = sleep
        self._running = False
        self._last_sweep: SweepReport | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def last_sweep(self) -> SweepReport | None:
        return self._last_sweep

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def batch_delay(self) -> float:
        return self._batch_delay

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    async def run_full_sweep(self) -> SweepReport | None:
        """Dispatch every eligible account, batch by batch.

        Returns:
            The SweepReport, or None if a sweep was already running.
        """
        # No await between the check and the set.
        if self._running:
            logger.info("Sync sweep already running, skipping")
            return None

        self._running = True
        report = SweepReport(started_at=datetime.now(timezone.utc))
        self._last_sweep = report
        logger.info("Starting review sync sweep")

        try:
            await self._sweep(report)
        except Exception:
            logger.exception("Error during review sync sweep")
        finally:
            report.finished_at = datetime.now(timezone.utc)
            self._running = False

        summary = report.to_summary()
        logger.info(
            "Review sync sweep finished: %d accounts, %d batches, %d dispatched, "
            "%d skipped, %d failed",
            summary.total_accounts,
            summary.batches,
            summary.dispatched,
            summary.skipped,
            summary.failed,
        )
        return report

    async def _sweep(self, report: SweepReport) -> None:
        accounts = await self._load_accounts()
        report.total_accounts = len(accounts)
        logger.info("Found %d accounts for sync", len(accounts))

        if not accounts:
            logger.info("No accounts found for sync")
            return

        batches = chunked(accounts, self._batch_size)
        for index, batch in enumerate(batches, start=1):
            logger.info(
                "Processing batch %d/%d (%d accounts)", index, len(batches), len(batch)
            )
            results = await asyncio.gather(
                *(self.dispatch_account(account) for account in batch),
                return_exceptions=True,
            )
            report.batches += 1

            for account, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.error("Dispatch for %s raised: %s", account.label, result)
                    report.record(DispatchOutcome.error)
                else:
                    report.record(result)

            if index < len(batches):
                await self._sleep(self._batch_delay)

    async def _load_accounts(self) -> list[Account]:
        try:
            return await self._accounts.fetch_eligible()
        except Exception:
            logger.exception("Error fetching accounts for sync")
            return []

    # ------------------------------------------------------------------
    # Single account
    # ------------------------------------------------------------------

    async def dispatch_account(
        self,
        account: Account,
        *,
        full_history: bool = False,
        priority: str = "normal",
    ) -> DispatchOutcome:
        """Create a job for one account and hand it to the worker.

        Never raises.

        Args:
            account:      The account to sync.
            full_history: Request a full-history import (manual resyncs only).
            priority:     Worker queue priority tag.

        Returns:
            DispatchOutcome.
        """
        try:
            return await self._dispatch(account, full_history, priority)
        except Exception:
            logger.exception("Error syncing account %s", account.label)
            return DispatchOutcome.error

    async def _dispatch(
        self, account: Account, full_history: bool, priority: str
    ) -> DispatchOutcome:
        logger.info("Starting sync for %s", account.label)

        existing = await self._find_active_job(account)
        if existing is not None:
            logger.info(
                "Sync already %s for %s (job %s), skipping",
                existing.status.value, account.label, existing.job_id,
            )
            return DispatchOutcome.skipped

        try:
            job = await self._ledger.create_job(account.account_id, full_history)
        except ActiveJobConflict:
            logger.info("Active job created concurrently for %s, skipping", account.label)
            return DispatchOutcome.skipped
        except Exception as exc:
            logger.error("Failed to create sync job for %s: %s", account.label, exc)
            return DispatchOutcome.create_failed

        try:
            result = await self._worker.dispatch_job(
                job.job_id,
                account.account_id,
                account.location_id or "",
                full_history=full_history,
                priority=priority,
            )
        except Exception as exc:
            result = DispatchResult(ok=False, error=f"Worker dispatch raised: {exc}")

        if not result.ok:
            logger.error("Failed to trigger sync for %s: %s", account.label, result.error)
            await self._mark_failed(job, result.error or "Failed to trigger worker sync")
            return DispatchOutcome.dispatch_failed

        logger.info("Sync triggered for %s (job %s)", account.label, job.job_id)
        return DispatchOutcome.dispatched

    async def _find_active_job(self, account: Account) -> SyncJob | None:
        # Fails open: a store error lets the account through.
        try:
            return await self._ledger.find_active_job(account.account_id)
        except Exception as exc:
            logger.error("Error checking active jobs for %s: %s", account.label, exc)
            return None

    async def _mark_failed(self, job: SyncJob, error: str) -> None:
        try:
            await self._ledger.mark_failed(job.job_id, error)
        except Exception as exc:
            logger.error("Error marking job %s as failed: %s", job.job_id, exc)
