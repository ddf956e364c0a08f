"""Serialized read-modify-write over a whole-collection sync job repository."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from bucketsync.domain.entities import SyncJob
from bucketsync.domain.ports import SyncJobRepository


class SyncJobStore:
    """Write path shared by every service that edits sync jobs.

    Services sharing one store instance never interleave their
    load-mutate-replace cycles.
    """

    def __init__(self, repository: SyncJobRepository) -> None:
        self._repository = repository
        self._write_lock = asyncio.Lock()

    async def modify_jobs(
        self,
        mutate: Callable[[list[SyncJob]], list[SyncJob]],
    ) -> list[SyncJob]:
        """Load all jobs, apply `mutate` and write the collection back.

        `mutate` edits the list in place and returns the jobs it changed. The
        store is rewritten only when that list is non-empty.
        """

        async with self._write_lock:
            jobs = await self._repository.list_jobs()
            changed = mutate(jobs)
            if changed:
                await self._repository.replace_all(jobs)
            return changed

    async def modify_job(
        self,
        job_id: str,
        apply: Callable[[SyncJob], None],
    ) -> SyncJob | None:
        """Apply `apply` to the freshest copy of one job; `None` when it is gone."""

        def mutate(jobs: list[SyncJob]) -> list[SyncJob]:
            for job in jobs:
                if job.job_id == job_id:
                    apply(job)
                    return [job]
            return []

        changed = await self.modify_jobs(mutate)
        return changed[0] if changed else None


__all__ = ["SyncJobStore"]
