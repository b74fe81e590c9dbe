"""Daily sync scheduler: start/stop the recurring sweep and manual triggers.

The recurring trigger is an APScheduler cron job on an ``AsyncIOScheduler``,
so sweeps run on the same event loop as the API.  The job fires once a day
at a fixed time in a fixed timezone (02:00 UTC by default); per-account
timezones are not used to shift dispatch.

States:
    Stopped: no cron job registered (``is_armed`` is False)
    Armed:   one cron job registered that calls ``run_full_sweep``
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.models.sync import SyncStatus
from src.services.accounts import AccountStore
from src.sync.dispatcher import BatchDispatcher, DispatchOutcome, SweepReport
from src.sync.status import StatusReporter

logger = logging.getLogger("reviewsync.sync.scheduler")

SWEEP_JOB_ID = "review-sync-daily"


class SyncScheduler:
    """Lifecycle controller wrapping a BatchDispatcher.

    Every public method is safe to call from concurrent requests: ``start``
    and ``stop`` are idempotent, and overlapping sweeps are rejected by the
    dispatcher itself.  All methods must run on the event loop that owns
    the scheduler; ``start`` in particular needs a running loop.

    Usage::

        scheduler = SyncScheduler(dispatcher, accounts, reporter)
        scheduler.start()                      # from inside the running loop
        scheduler.trigger_manual_sync(user_id)  # returns immediately
        await scheduler.aclose()               # at exit, waits for in-flight syncs
    """

    def __init__(
        self,
        dispatcher: BatchDispatcher,
        accounts: AccountStore,
        reporter: StatusReporter,
        hour: int = 2,
        minute: int = 0,
        timezone: str = "UTC",
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            dispatcher: Runs sweeps and single-account dispatches.
            accounts:   Used to look up a single account for manual syncs.
            reporter:   Builds status snapshots.
            hour:       Hour of day the daily sweep fires.
            minute:     Minute of the hour the daily sweep fires.
            timezone:   Timezone the schedule is anchored to.
            scheduler:  Optional pre-built APScheduler instance (for testing).
        """
        self._dispatcher = dispatcher
        self._accounts = accounts
        self._reporter = reporter
        self._hour = hour
        self._minute = minute
        self._timezone = timezone
        self._scheduler = scheduler
        self._job: Job | None = None
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_armed(self) -> bool:
        return self._job is not None

    @property
    def is_running(self) -> bool:
        return self._dispatcher.is_running

    @property
    def next_run_at(self) -> datetime | None:
        if self._job is None:
            return None
        return self._job.next_run_time

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _ensure_scheduler(self) -> AsyncIOScheduler:
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(
                event_loop=asyncio.get_running_loop(),
                timezone=self._timezone,
            )
        if not self._scheduler.running:
            self._scheduler.start()
        return self._scheduler

    def start(self) -> None:
        """Register the daily sweep. No-op if already armed.

        The first call creates the APScheduler on the current event loop, so
        it must be made from inside a running loop (a request handler or the
        app lifespan), not from synchronous startup code.
        """
        if self._job is not None:
            logger.info("Sync scheduler is already running")
            return

        scheduler = self._ensure_scheduler()
        self._job = scheduler.add_job(
            self._run_scheduled_sweep,
            trigger=CronTrigger(
                hour=self._hour, minute=self._minute, timezone=self._timezone
            ),
            id=SWEEP_JOB_ID,
            name="Daily review sync sweep",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
            replace_existing=True,
        )
        logger.info(
            "Review sync scheduler started - daily sync at %02d:%02d %s",
            self._hour, self._minute, self._timezone,
        )

    def stop(self) -> None:
        """Remove the daily sweep. Does not abort a sweep in progress."""
        if self._job is None:
            return

        try:
            self._job.remove()
        except JobLookupError:
            logger.warning("Scheduled sweep %s was already removed", SWEEP_JOB_ID)
        self._job = None
        logger.info("Review sync scheduler stopped")

    def shutdown(self) -> None:
        """Stop the schedule and the underlying APScheduler without waiting."""
        self.stop()
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    async def aclose(self) -> None:
        """Stop scheduling, wait for in-flight syncs, then shut down.

        Call at process exit before the worker client and database pool are
        closed, so a sweep already under way can finish its accounts.
        """
        self.stop()
        while self._tasks:
            logger.info("Waiting for %d in-flight sync(s) to finish", len(self._tasks))
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self.shutdown()

    # ------------------------------------------------------------------
    # Sweeps and manual triggers
    # ------------------------------------------------------------------

    async def _run_scheduled_sweep(self) -> SweepReport | None:
        task = asyncio.current_task()
        if task is not None:
            self._tasks.add(task)
        try:
            return await self._dispatcher.run_full_sweep()
        finally:
            if task is not None:
                self._tasks.discard(task)

    async def run_full_sweep(self) -> SweepReport | None:
        return await self._dispatcher.run_full_sweep()

    async def sync_now(
        self, account_id: uuid.UUID | None = None, *, full_history: bool = False
    ) -> SweepReport | DispatchOutcome | None:
        """Run a manual sync and wait for it.

        With ``account_id`` the account must be eligible; it is dispatched
        directly, outside any batch.  Without it a full sweep runs now.
        """
        if account_id is None:
            logger.info("Triggering manual sync for all accounts")
            return await self._dispatcher.run_full_sweep()

        logger.info("Triggering manual sync for account %s", account_id)
        account = await self._accounts.fetch_eligible_by_id(account_id)
        if account is None:
            logger.error("Account %s not found or has no active integration", account_id)
            return None
        return await self._dispatcher.dispatch_account(account, full_history=full_history)

    def trigger_manual_sync(
        self, account_id: uuid.UUID | None = None, *, full_history: bool = False
    ) -> asyncio.Task:
        """Start :meth:`sync_now` in the background and return immediately.

        The returned task is detached: failures are logged, never raised
        to the caller.
        """
        task = asyncio.create_task(
            self.sync_now(account_id, full_history=full_history),
            name=f"manual-sync-{account_id or 'all'}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_manual_sync_done)
        return task

    def _on_manual_sync_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Manual sync %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Manual sync error: %s", exc, exc_info=exc)

    async def get_status(self) -> SyncStatus:
        return await self._reporter.report(
            scheduler_active=self.is_armed, next_run_at=self.next_run_at
        )
