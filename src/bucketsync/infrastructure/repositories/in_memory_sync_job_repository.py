"""In-memory repository implementation for sync jobs."""

from __future__ import annotations

import asyncio
import copy

from bucketsync.domain.entities import SyncJob
from bucketsync.domain.ports import SyncJobRepository


class InMemorySyncJobRepository(SyncJobRepository):
    """Simple repository for local development and tests."""

    def __init__(self, jobs: list[SyncJob] | None = None) -> None:
        self._jobs: list[SyncJob] = [copy.deepcopy(job) for job in jobs or []]
        self._lock = asyncio.Lock()

    async def list_jobs(self) -> list[SyncJob]:
        """Return copies of all jobs in insertion order."""

        async with self._lock:
            return [copy.deepcopy(job) for job in self._jobs]

    async def get_job(self, job_id: str) -> SyncJob | None:
        """Return a copy of one job."""

        async with self._lock:
            for job in self._jobs:
                if job.job_id == job_id:
                    return copy.deepcopy(job)
        return None

    async def replace_all(self, jobs: list[SyncJob]) -> None:
        """Replace the stored collection."""

        async with self._lock:
            self._jobs = [copy.deepcopy(job) for job in jobs]


__all__ = ["InMemorySyncJobRepository"]
