"""HTTP client for the remote review-sync worker.

The worker exposes a single endpoint that accepts a job and performs the
actual platform sync out of band::

    POST {WORKER_API_URL}/api/jobs
    Authorization: Bearer {WORKER_API_KEY}
    {"jobId": ..., "userId": ..., "tripAdvisorUrl": ..., "fullHistory": false, "priority": "normal"}

The worker later moves the job row to ``running`` / ``completed`` / ``failed``
itself.  This client only reports whether the submission was accepted.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

import httpx

logger = logging.getLogger("reviewsync.worker")

_JOBS_PATH = "/api/jobs"


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one job submission.

    Attributes:
        ok:    True if the worker acknowledged the job (2xx).
        error: Human-readable failure detail when ``ok`` is False.
    """

    ok: bool
    error: str | None = None


class WorkerClient:
    """Submit sync jobs to the worker API.

    Never raises for HTTP or transport failures; those come back as
    ``DispatchResult(ok=False, error=...)``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the worker client.

        Args:
            base_url:    Worker base URL (WORKER_API_URL).
            api_key:     Bearer credential (WORKER_API_KEY).
            timeout:     Request timeout in seconds.
            http_client: Optional pre-configured httpx client (for testing).
        """
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def dispatch_job(
        self,
        job_id: uuid.UUID,
        account_id: uuid.UUID,
        location_id: str,
        full_history: bool = False,
        priority: str = "normal",
    ) -> DispatchResult:
        """Ask the worker to start syncing one account.

        Args:
            job_id:       The ``review_sync_jobs`` row the worker should update.
            account_id:   Account (profile user id) being synced.
            location_id:  External platform location identifier.
            full_history: Import the full review history instead of new reviews only.
            priority:     Worker queue priority tag.

        Returns:
            DispatchResult.
        """
        payload = {
            "jobId": str(job_id),
            "userId": str(account_id),
            "tripAdvisorUrl": location_id,
            "fullHistory": full_history,
            "priority": priority,
        }
        try:
            response = await self._http_client.post(
                f"{self._base_url}{_JOBS_PATH}",
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except httpx.HTTPError as exc:
            logger.error("Worker API request failed for job %s: %s", job_id, exc)
            return DispatchResult(ok=False, error=f"Worker request failed: {exc}")

        if not response.is_success:
            detail = f"{response.status_code} - {response.text}"
            logger.error("Worker API error for job %s: %s", job_id, detail)
            return DispatchResult(ok=False, error=f"Worker API error: {detail}")

        return DispatchResult(ok=True)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()
