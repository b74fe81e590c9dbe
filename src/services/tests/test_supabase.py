"""Tests for the asyncpg pool helpers."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.config import Settings
from src.services import supabase


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        supabase_db_url="postgresql://svc:pw@db.test:5432/postgres",
        db_pool_min_size=2,
        db_pool_max_size=4,
        db_command_timeout=12.5,
    )


class TestPool:
    def test_get_pool_before_init_raises(self) -> None:
        with patch.object(supabase, "_pool", None):
            with pytest.raises(RuntimeError):
                supabase.get_pool()

    @pytest.mark.asyncio
    async def test_init_and_close_pool(self, settings: Settings) -> None:
        pool = MagicMock()
        pool.close = AsyncMock()
        with patch(
            "src.services.supabase.asyncpg.create_pool", new=AsyncMock(return_value=pool)
        ) as create_pool:
            assert await supabase.init_pool(settings) is pool
            assert supabase.get_pool() is pool
            await supabase.close_pool()

        create_pool.assert_awaited_once_with(
            settings.supabase_db_url, min_size=2, max_size=4, command_timeout=12.5
        )
        pool.close.assert_awaited_once()
        with pytest.raises(RuntimeError):
            supabase.get_pool()


class TestPing:
    @pytest.mark.asyncio
    async def test_ping_true_on_select_one(self) -> None:
        with patch("src.services.supabase.fetchval", new=AsyncMock(return_value=1)) as fetchval:
            assert await supabase.ping() is True
        fetchval.assert_awaited_once_with("SELECT 1")

    @pytest.mark.asyncio
    async def test_ping_propagates_errors(self) -> None:
        with patch(
            "src.services.supabase.fetchval", new=AsyncMock(side_effect=OSError("refused"))
        ):
            with pytest.raises(OSError):
                await supabase.ping()
