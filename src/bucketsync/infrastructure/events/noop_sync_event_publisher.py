"""No-op sync event publisher."""

from __future__ import annotations

from bucketsync.domain.entities import SyncJob, TransferJob
from bucketsync.domain.ports import SyncEventPublisher


class NoopSyncEventPublisher(SyncEventPublisher):
    """No-op implementation for environments without event streaming."""

    async def publish_sync_job(self, job: SyncJob) -> None:
        _ = job

    async def publish_transfer(self, job: TransferJob) -> None:
        _ = job


__all__ = ["NoopSyncEventPublisher"]
