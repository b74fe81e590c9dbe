"""Application configuration loaded from environment variables."""

from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "Review Sync Scheduler"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production
    port: int = 3001

    # --- Supabase (direct postgres connection string for asyncpg) ---
    supabase_db_url: str
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    db_command_timeout: float = 30.0

    # --- Sync worker ---
    worker_api_url: str = "https://tripadvisor-worker.railway.app"
    worker_api_key: str = ""
    worker_timeout_seconds: float = 30.0

    # --- Webhook shared secret (empty = webhook disabled) ---
    webhook_api_key: str = ""

    # --- Scheduler ---
    scheduler_auto_start: bool | None = None  # None = auto-start in production only
    sync_platform: str = "tripadvisor"
    sync_hour: int = Field(default=2, ge=0, le=23)
    sync_minute: int = Field(default=0, ge=0, le=59)
    sync_timezone: str = "UTC"
    sync_batch_size: int = Field(default=5, ge=1)
    sync_batch_delay_seconds: float = Field(default=30.0, ge=0)

    # --- CORS ---
    cors_origins: list[str] = ["*"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @field_validator("sync_timezone")
    @classmethod
    def validate_sync_timezone(cls, v: str) -> str:
        """Reject timezone names the IANA database does not know."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {v!r}") from exc
        return v

    @property
    def should_auto_start(self) -> bool:
        if self.scheduler_auto_start is not None:
            return self.scheduler_auto_start
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
