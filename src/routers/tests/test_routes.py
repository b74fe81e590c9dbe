"""Tests for the health, sync management and webhook endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.config import Settings, get_settings
from src.models.sync import SyncStats, SyncStatus
from src.routers import health, sync, webhooks
from src.sync.scheduler import SyncScheduler

USER_ID = uuid.UUID("12345678-1234-5678-1234-567812345678")
WEBHOOK_KEY = "hook-secret"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        supabase_db_url="postgresql://svc:pw@db.test:5432/postgres",
        webhook_api_key=WEBHOOK_KEY,
        worker_api_key="worker-secret",
    )


@pytest.fixture
def scheduler() -> MagicMock:
    scheduler = MagicMock(spec=SyncScheduler)
    scheduler.get_status = AsyncMock(
        return_value=SyncStatus(
            is_running=False,
            scheduler_active=True,
            next_run="2:00 AM UTC daily",
            next_run_at=datetime(2026, 3, 2, 2, 0, tzinfo=timezone.utc),
            stats=SyncStats(total_accounts=3, active_jobs=1, completed_today=2),
        )
    )
    return scheduler


def _build_app(settings: Settings, scheduler: MagicMock | None) -> FastAPI:
    app = FastAPI()
    app.include_router(health.router)
    app.include_router(sync.router, prefix="/api")
    app.include_router(webhooks.router, prefix="/api")
    app.dependency_overrides[get_settings] = lambda: settings
    if scheduler is not None:
        app.state.sync_scheduler = scheduler
    return app


@pytest.fixture
def client(settings: Settings, scheduler: MagicMock) -> TestClient:
    return TestClient(_build_app(settings, scheduler))


# ---------------------------------------------------------------------------
# Health / debug
# ---------------------------------------------------------------------------


class TestHealth:
    def test_healthy_when_database_answers(self, client: TestClient) -> None:
        with patch("src.routers.health.ping", new=AsyncMock(return_value=True)):
            response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"
        assert data["uptime"] >= 0

    def test_degraded_when_database_fails(self, client: TestClient) -> None:
        with patch("src.routers.health.ping", new=AsyncMock(side_effect=OSError("down"))):
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"

    def test_debug_hides_secret_values(self, client: TestClient) -> None:
        response = client.get("/debug")

        config = response.json()["config"]
        assert config["workerApiKey"] == "SET"
        assert config["webhookApiKey"] == "SET"
        assert "worker-secret" not in response.text
        assert WEBHOOK_KEY not in response.text

    def test_debug_db_failure_is_500(self, client: TestClient) -> None:
        with patch("src.routers.health.ping", new=AsyncMock(side_effect=OSError("down"))):
            response = client.get("/debug/db")

        assert response.status_code == 500
        assert "down" in response.json()["detail"]


# ---------------------------------------------------------------------------
# Sync management
# ---------------------------------------------------------------------------


class TestSyncRoutes:
    def test_status_uses_camel_case(self, client: TestClient) -> None:
        response = client.get("/api/sync/status")

        assert response.status_code == 200
        data = response.json()
        assert data["isRunning"] is False
        assert data["schedulerActive"] is True
        assert data["nextRun"] == "2:00 AM UTC daily"
        assert data["stats"] == {
            "totalAccounts": 3,
            "activeJobs": 1,
            "completedToday": 2,
            "failedToday": 0,
        }

    def test_trigger_for_one_user(self, client: TestClient, scheduler: MagicMock) -> None:
        response = client.post("/api/sync/trigger", json={"userId": str(USER_ID)})

        assert response.status_code == 200
        assert response.json() == {
            "message": "Manual sync triggered for user",
            "userId": str(USER_ID),
        }
        scheduler.trigger_manual_sync.assert_called_once_with(USER_ID, full_history=False)

    def test_trigger_for_all_accounts(self, client: TestClient, scheduler: MagicMock) -> None:
        response = client.post("/api/sync/trigger")

        assert response.status_code == 200
        assert response.json()["message"] == "Manual sync triggered for all accounts"
        scheduler.trigger_manual_sync.assert_called_once_with(None, full_history=False)

    def test_trigger_rejects_malformed_user_id(
        self, client: TestClient, scheduler: MagicMock
    ) -> None:
        response = client.post("/api/sync/trigger", json={"userId": "not-a-uuid"})

        assert response.status_code == 422
        scheduler.trigger_manual_sync.assert_not_called()

    def test_start_and_stop(self, client: TestClient, scheduler: MagicMock) -> None:
        assert client.post("/api/sync/start").json() == {"message": "Sync scheduler started"}
        assert client.post("/api/sync/stop").json() == {"message": "Sync scheduler stopped"}
        scheduler.start.assert_called_once()
        scheduler.stop.assert_called_once()

    def test_503_before_scheduler_is_built(self, settings: Settings) -> None:
        client = TestClient(_build_app(settings, scheduler=None))

        assert client.get("/api/sync/status").status_code == 503


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------


class TestWebhook:
    def test_wrong_key_is_unauthorized(self, client: TestClient, scheduler: MagicMock) -> None:
        response = client.post(
            "/api/webhook/sync", json={"action": "start_scheduler", "apiKey": "nope"}
        )

        assert response.status_code == 401
        scheduler.start.assert_not_called()

    def test_unconfigured_secret_rejects_everything(
        self, settings: Settings, scheduler: MagicMock
    ) -> None:
        settings.webhook_api_key = ""
        client = TestClient(_build_app(settings, scheduler))

        response = client.post("/api/webhook/sync", json={"action": "start_scheduler"})

        assert response.status_code == 401
        scheduler.start.assert_not_called()

    def test_trigger_sync(self, client: TestClient, scheduler: MagicMock) -> None:
        response = client.post(
            "/api/webhook/sync",
            json={"action": "trigger_sync", "userId": str(USER_ID), "apiKey": WEBHOOK_KEY},
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Sync triggered"}
        scheduler.trigger_manual_sync.assert_called_once_with(USER_ID)

    @pytest.mark.parametrize(
        "action,method,message",
        [
            ("start_scheduler", "start", "Scheduler started"),
            ("stop_scheduler", "stop", "Scheduler stopped"),
        ],
    )
    def test_lifecycle_actions(
        self,
        client: TestClient,
        scheduler: MagicMock,
        action: str,
        method: str,
        message: str,
    ) -> None:
        response = client.post(
            "/api/webhook/sync", json={"action": action, "apiKey": WEBHOOK_KEY}
        )

        assert response.status_code == 200
        assert response.json() == {"message": message}
        getattr(scheduler, method).assert_called_once()

    def test_unknown_action(self, client: TestClient) -> None:
        response = client.post(
            "/api/webhook/sync", json={"action": "reboot", "apiKey": WEBHOOK_KEY}
        )

        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid action"}
