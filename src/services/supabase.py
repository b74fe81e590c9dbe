"""Supabase Postgres access for the scheduler.

The scheduler runs with the service role, so there is no per-user RLS
context to set; every call simply borrows a pooled ``asyncpg`` connection.
Query timeouts are enforced by the pool's ``command_timeout``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

import asyncpg

from src.config import Settings, get_settings

logger = logging.getLogger("reviewsync.db")

# Module-level connection pool, initialized once at app startup
_pool: asyncpg.Pool | None = None


async def init_pool(settings: Settings | None = None) -> asyncpg.Pool:
    """Create the asyncpg connection pool. Call once at app startup."""
    global _pool
    s = settings or get_settings()
    _pool = await asyncpg.create_pool(
        s.supabase_db_url,
        min_size=s.db_pool_min_size,
        max_size=s.db_pool_max_size,
        command_timeout=s.db_command_timeout,
    )
    logger.info(
        "Database pool initialized (min=%d, max=%d)",
        s.db_pool_min_size,
        s.db_pool_max_size,
    )
    return _pool


async def close_pool() -> None:
    """Drain the pool. Call at app shutdown."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("Database pool not initialized — call init_pool() first")
    return _pool


@asynccontextmanager
async def get_connection() -> AsyncGenerator[asyncpg.Connection, None]:
    """Acquire a pooled connection inside a transaction.

    Usage::

        async with get_connection() as conn:
            row = await conn.fetchrow("SELECT * FROM profiles WHERE user_id = $1", uid)
    """
    pool = get_pool()
    async with pool.acquire() as conn:
        async with conn.transaction():
            yield conn


async def execute(query: str, *args: Any) -> str:
    """Execute a single statement and return its status tag."""
    async with get_connection() as conn:
        return await conn.execute(query, *args)


async def fetch(query: str, *args: Any) -> list[asyncpg.Record]:
    async with get_connection() as conn:
        return await conn.fetch(query, *args)


async def fetchrow(query: str, *args: Any) -> asyncpg.Record | None:
    async with get_connection() as conn:
        return await conn.fetchrow(query, *args)


async def fetchval(query: str, *args: Any) -> Any:
    async with get_connection() as conn:
        return await conn.fetchval(query, *args)


async def ping() -> bool:
    """Round-trip ``SELECT 1``. Raises if the database is unreachable."""
    return await fetchval("SELECT 1") == 1
