"""Scheduled review sync.

Modules:
    ledger:     review_sync_jobs access (dedup check, job rows, counts)
    dispatcher: Batched, paced sweep across all eligible accounts
    scheduler:  Daily cron trigger lifecycle and manual triggers
    status:     Status snapshot with job counts
"""

from src.sync.dispatcher import BatchDispatcher, DispatchOutcome, SweepReport
from src.sync.ledger import ActiveJobConflict, JobLedger
from src.sync.scheduler import SyncScheduler
from src.sync.status import StatusReporter, describe_schedule

__all__ = [
    "ActiveJobConflict",
    "BatchDispatcher",
    "DispatchOutcome",
    "JobLedger",
    "StatusReporter",
    "SweepReport",
    "SyncScheduler",
    "describe_schedule",
]
