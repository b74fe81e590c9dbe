"""Shared fixtures for the sync dispatcher, scheduler and status tests."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from src.sync.dispatcher import BatchDispatcher
from src.sync.status import StatusReporter
from src.sync.tests.fakes import FakeAccountStore, FakeLedger, FakeWorker

FIXED_NOW = datetime(2026, 3, 1, 15, 30, tzinfo=timezone.utc)


@pytest.fixture
def accounts() -> FakeAccountStore:
    return FakeAccountStore()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def worker() -> FakeWorker:
    return FakeWorker()


@pytest.fixture
def sleep() -> AsyncMock:
    """Pacing sleep that returns immediately and records its delays."""
    return AsyncMock(return_value=None)


@pytest.fixture
def dispatcher(
    accounts: FakeAccountStore, ledger: FakeLedger, worker: FakeWorker, sleep: AsyncMock
) -> BatchDispatcher:
    return BatchDispatcher(accounts, ledger, worker, batch_size=5, batch_delay=30.0, sleep=sleep)


@pytest.fixture
def reporter(
    accounts: FakeAccountStore, ledger: FakeLedger, dispatcher: BatchDispatcher
) -> StatusReporter:
    return StatusReporter(
        accounts,
        ledger,
        dispatcher,
        schedule_description="2:00 AM UTC daily",
        clock=lambda: FIXED_NOW,
    )
