"""Read-only status snapshot for the sync scheduler."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, time, timedelta, timezone
from typing import Callable

from src.models.sync import JobStatus, SyncStats, SyncStatus
from src.services.accounts import AccountStore
from src.sync.dispatcher import BatchDispatcher
from src.sync.ledger import JobLedger

logger = logging.getLogger("reviewsync.sync.status")


def describe_schedule(hour: int, minute: int, tz: str) -> str:
    """Human-readable daily schedule, e.g. ``"2:00 AM UTC daily"``."""
    suffix = "AM" if hour < 12 else "PM"
    hour_12 = hour % 12 or 12
    return f"{hour_12}:{minute:02d} {suffix} {tz} daily"


def utc_day_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Return [start, end) of the UTC calendar day containing ``now``."""
    day = now.astimezone(timezone.utc).date()
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StatusReporter:
    """Aggregate scheduler state and job counts.

    The four counts are independent queries issued together; any one that
    fails is reported as 0 instead of failing the whole snapshot.
    """

    def __init__(
        self,
        accounts: AccountStore,
        ledger: JobLedger,
        dispatcher: BatchDispatcher,
        schedule_description: str,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._accounts = accounts
        self._ledger = ledger
        self._dispatcher = dispatcher
        self._schedule_description = schedule_description
        self._clock = clock

    async def collect_stats(self) -> SyncStats:
        start, end = utc_day_bounds(self._clock())
        names = ("total_accounts", "active_jobs", "completed_today", "failed_today")
        results = await asyncio.gather(
            self._accounts.count_eligible(),
            self._ledger.count_active(),
            self._ledger.count_created_between(JobStatus.completed, start, end),
            self._ledger.count_created_between(JobStatus.failed, start, end),
            return_exceptions=True,
        )

        counts: dict[str, int] = {}
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                logger.error("Error getting sync stat %s: %s", name, result)
                counts[name] = 0
            else:
                counts[name] = int(result)
        return SyncStats(**counts)

    async def report(
        self, scheduler_active: bool, next_run_at: datetime | None = None
    ) -> SyncStatus:
        last = self._dispatcher.last_sweep
        return SyncStatus(
            is_running=self._dispatcher.is_running,
            scheduler_active=scheduler_active,
            next_run=self._schedule_description,
            next_run_at=next_run_at,
            last_sweep=last.to_summary() if last else None,
            stats=await self.collect_stats(),
        )
