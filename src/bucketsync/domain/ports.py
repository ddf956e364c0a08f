"""Ports for job persistence, accounts, storage, activity and events."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol

from bucketsync.domain.entities import Account, StorageObject, SyncJob, SyncStats, TransferJob
from bucketsync.domain.management_models import TransferProgressSnapshot
from bucketsync.domain.sync_types import ActivityStatus, SyncDirection

ProgressCallback = Callable[[TransferProgressSnapshot], Awaitable[None]]


class SyncJobRepository(Protocol):
    """Durable sync job collection with whole-collection replacement."""

    async def list_jobs(self) -> list[SyncJob]:
        """Return all jobs in storage order."""

    async def get_job(self, job_id: str) -> SyncJob | None:
        """Return one job by id."""

    async def replace_all(self, jobs: list[SyncJob]) -> None:
        """Atomically replace the whole job collection."""


class AccountDirectory(Protocol):
    """Source of the current account set."""

    async def list_accounts(self) -> list[Account]:
        """Return a fresh snapshot of known accounts."""

    async def get_account(self, account_id: str) -> Account | None:
        """Return one account from a fresh snapshot."""


class StorageBackend(Protocol):
    """Bucket-style storage operations consumed by both cores."""

    async def reconcile(
        self,
        account: Account,
        bucket: str,
        local_path: str,
        remote_path: str,
        direction: SyncDirection,
        mirror: bool,
    ) -> SyncStats:
        """Reconcile a local directory against a remote prefix."""

    async def copy_object_server_side(
        self,
        account: Account,
        source_bucket: str,
        source_key: str,
        destination_bucket: str,
        destination_key: str,
    ) -> None:
        """Copy one object without routing data through this process."""

    async def stream_transfer_object(
        self,
        source_account: Account,
        source_bucket: str,
        source_key: str,
        destination_account: Account,
        destination_bucket: str,
        destination_key: str,
        progress_callback: ProgressCallback | None = None,
    ) -> int:
        """Stream one object between providers and return bytes written."""

    async def list_objects(self, account: Account, bucket: str, prefix: str) -> list[StorageObject]:
        """List every object under `prefix`, recursively."""

    async def rename_object(
        self,
        account: Account,
        bucket: str,
        source_key: str,
        destination_key: str,
    ) -> None:
        """Rename an object or folder inside one bucket."""

    async def delete_object(self, account: Account, bucket: str, key: str) -> None:
        """Delete one object."""


class ActivityRecorder(Protocol):
    """Fire-and-forget audit log sink. Implementations never raise."""

    async def record(
        self,
        account: Account,
        action_kind: str,
        path_before: str | None = None,
        path_after: str | None = None,
        status: ActivityStatus = ActivityStatus.SUCCESS,
        error_message: str | None = None,
        byte_count: int | None = None,
    ) -> None:
        """Record one activity entry."""


class SyncEventPublisher(Protocol):
    """Outbound notifications for job state and transfer progress."""

    async def publish_sync_job(self, job: SyncJob) -> None:
        """Publish a sync job state transition."""

    async def publish_transfer(self, job: TransferJob) -> None:
        """Publish a transfer state or progress update."""


__all__ = [
    "AccountDirectory",
    "ActivityRecorder",
    "ProgressCallback",
    "StorageBackend",
    "SyncEventPublisher",
    "SyncJobRepository",
]
