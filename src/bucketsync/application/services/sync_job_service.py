"""Create, edit and delete sync job definitions."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from contextlib import suppress
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from bucketsync.application.services.sync_job_store import SyncJobStore
from bucketsync.domain.entities import Account, SyncJob
from bucketsync.domain.errors import (
    AccountNotFoundError,
    SyncJobNotFoundError,
    SyncJobValidationError,
)
from bucketsync.domain.management_models import SyncJobCreateRequest, SyncJobUpdateRequest
from bucketsync.domain.ports import (
    AccountDirectory,
    ActivityRecorder,
    SyncEventPublisher,
    SyncJobRepository,
)

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def default_job_name(local_path: str) -> str:
    """Last component of a local path, accepting both separators."""

    trimmed = local_path.rstrip("/\\")
    return re.split(r"[\\/]", trimmed)[-1] or local_path


def interval_label(seconds: int) -> str:
    """Human label such as `1d 2h 30m`, or `manual` for zero."""

    if seconds <= 0:
        return "manual"
    days, remainder = divmod(seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    return f"{days}d {hours}h {remainder // 60}m"


class SyncJobService:
    """User-facing edits of sync jobs.

    Only user-owned fields (`name`, `interval_seconds`, `mirror_sync`) are
    written here; status and run bookkeeping belong to the scheduler.
    """

    def __init__(
        self,
        repository: SyncJobRepository,
        account_directory: AccountDirectory,
        activity_recorder: ActivityRecorder,
        event_publisher: SyncEventPublisher,
        clock: Callable[[], datetime] | None = None,
        job_store: SyncJobStore | None = None,
    ) -> None:
        self._repository = repository
        self._job_store = job_store or SyncJobStore(repository)
        self._account_directory = account_directory
        self._activity_recorder = activity_recorder
        self._event_publisher = event_publisher
        self._clock = clock or _utc_now

    async def list_jobs(self) -> list[SyncJob]:
        return await self._repository.list_jobs()

    async def get_job(self, job_id: str) -> SyncJob:
        job = await self._repository.get_job(job_id)
        if job is None:
            raise SyncJobNotFoundError(f"Sync job '{job_id}' not found.")
        return job

    async def create_job(self, request: SyncJobCreateRequest) -> SyncJob:
        """Register a new job; recurring jobs are first due one interval from now."""

        account = await self._require_account(request.account_id)
        bucket = (request.bucket or account.bucket_name).strip()
        if not bucket:
            raise SyncJobValidationError("A bucket is required for sync jobs.")
        local_path = request.local_path.strip()
        if not local_path:
            raise SyncJobValidationError("localPath cannot be empty.")
        if request.interval_seconds < 0:
            raise SyncJobValidationError("intervalSeconds must be >= 0.")

        now = self._clock()
        job = SyncJob(
            job_id=uuid4().hex,
            name=(request.name or "").strip() or default_job_name(local_path),
            account_id=account.account_id,
            bucket=bucket,
            local_path=local_path,
            remote_path=request.remote_path.strip(),
            direction=request.direction,
            mirror_sync=request.mirror_sync,
            interval_seconds=request.interval_seconds,
            next_run=self._next_run(now, request.interval_seconds),
        )

        def append(jobs: list[SyncJob]) -> list[SyncJob]:
            jobs.append(job)
            return [job]

        await self._job_store.modify_jobs(append)
        logger.info("Created sync job '%s' (%s).", job.job_id, job.name)
        await self._publish_state_event(job)
        return job

    async def update_job(self, job_id: str, request: SyncJobUpdateRequest) -> SyncJob:
        """Apply user edits and log one activity entry per changed setting."""

        if request.name is not None and not request.name.strip():
            raise SyncJobValidationError("name cannot be empty.")
        if request.interval_seconds is not None and request.interval_seconds < 0:
            raise SyncJobValidationError("intervalSeconds must be >= 0.")

        now = self._clock()
        changes: list[tuple[str, str]] = []

        def apply(job: SyncJob) -> None:
            if request.name is not None and request.name.strip() != job.name:
                new_name = request.name.strip()
                changes.append(("sync_name_changed", f"{job.name} → {new_name}"))
                job.name = new_name
            if (
                request.interval_seconds is not None
                and request.interval_seconds != job.interval_seconds
            ):
                changes.append(
                    (
                        "sync_interval_changed",
                        f"{interval_label(job.interval_seconds)} → "
                        f"{interval_label(request.interval_seconds)}",
                    )
                )
                job.interval_seconds = request.interval_seconds
                job.next_run = self._next_run(now, job.interval_seconds)
            if request.mirror_sync is not None and request.mirror_sync != job.mirror_sync:
                state = "enabled" if request.mirror_sync else "disabled"
                changes.append((f"sync_mirror_{state}", job.local_path))
                job.mirror_sync = request.mirror_sync

        updated = await self._job_store.modify_job(job_id, apply)
        if updated is None:
            raise SyncJobNotFoundError(f"Sync job '{job_id}' not found.")

        account = await self._account_directory.get_account(updated.account_id)
        if account is not None:
            for action_kind, description in changes:
                with suppress(Exception):
                    await self._activity_recorder.record(
                        account,
                        action_kind,
                        path_before=description,
                    )
        await self._publish_state_event(updated)
        return updated

    async def delete_job(self, job_id: str) -> None:
        def remove(jobs: list[SyncJob]) -> list[SyncJob]:
            removed = [job for job in jobs if job.job_id == job_id]
            jobs[:] = [job for job in jobs if job.job_id != job_id]
            return removed

        removed = await self._job_store.modify_jobs(remove)
        if not removed:
            raise SyncJobNotFoundError(f"Sync job '{job_id}' not found.")
        logger.info("Deleted sync job '%s'.", job_id)

    def _next_run(self, now: datetime, interval_seconds: int) -> datetime | None:
        if interval_seconds <= 0:
            return None
        return now + timedelta(seconds=interval_seconds)

    async def _require_account(self, account_id: str) -> Account:
        account = await self._account_directory.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account '{account_id}' not found.")
        return account

    async def _publish_state_event(self, job: SyncJob) -> None:
        with suppress(Exception):
            await self._event_publisher.publish_sync_job(job)


__all__ = ["SyncJobService", "default_job_name", "interval_label"]
