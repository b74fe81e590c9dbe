"""Read access to accounts with a confirmed review-platform integration.

Accounts live in the ``profiles`` table owned by the profile service; the
scheduler never writes to it.  An account is eligible for sync when both
``tripadvisor_location_id`` and ``tripadvisor_url_locked_at`` are set.
"""

from __future__ import annotations

import logging
import uuid

from src.models.sync import Account
from src.services import supabase as db

logger = logging.getLogger("reviewsync.accounts")

_ACCOUNT_COLUMNS = """
    user_id                   AS account_id,
    company_name              AS display_name,
    tripadvisor_location_id   AS location_id,
    tripadvisor_url_locked_at AS locked_at,
    last_tripadvisor_sync_at  AS last_sync_at,
    timezone
"""

_ELIGIBLE = (
    "tripadvisor_location_id IS NOT NULL "
    "AND tripadvisor_url_locked_at IS NOT NULL"
)


class AccountStore:
    """Eligible-account queries against ``profiles``."""

    async def fetch_eligible(self) -> list[Account]:
        rows = await db.fetch(
            f"SELECT {_ACCOUNT_COLUMNS} FROM profiles WHERE {_ELIGIBLE} ORDER BY user_id"
        )
        return [Account.model_validate(dict(r)) for r in rows]

    async def fetch_eligible_by_id(self, account_id: uuid.UUID) -> Account | None:
        """Return the account if it exists and is eligible, else None."""
        row = await db.fetchrow(
            f"SELECT {_ACCOUNT_COLUMNS} FROM profiles WHERE user_id = $1 AND {_ELIGIBLE}",
            account_id,
        )
        if row is None:
            return None
        return Account.model_validate(dict(row))

    async def count_eligible(self) -> int:
        count = await db.fetchval(f"SELECT COUNT(*) FROM profiles WHERE {_ELIGIBLE}")
        return int(count or 0)
