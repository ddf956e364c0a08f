"""Ad-hoc copy/move orchestration across storage accounts."""

from __future__ import annotations

import asyncio
import logging
import posixpath
import time
from collections.abc import Awaitable, Callable, Iterable
from contextlib import suppress
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from uuid import uuid4

from bucketsync.domain.entities import Account, ObjectRef, TransferJob
from bucketsync.domain.errors import (
    AccountNotFoundError,
    MoveNotPermittedError,
    TransferNotFoundError,
    TransferValidationError,
)
from bucketsync.domain.management_models import TransferProgressSnapshot, TransferRequest
from bucketsync.domain.object_keys import (
    collision_scan_prefix,
    join_key,
    normalize_prefix,
    relative_key,
    resolve_collision_free_key,
)
from bucketsync.domain.ports import (
    AccountDirectory,
    ActivityRecorder,
    ProgressCallback,
    StorageBackend,
    SyncEventPublisher,
)
from bucketsync.domain.sync_types import (
    ActivityStatus,
    TransferStatus,
    TransferStrategy,
    TransferType,
)

_DEFAULT_MAX_ACTIVE_TRANSFERS = 4

TransferListener = Callable[[TransferJob], Awaitable[None]]

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class _Leaf:
    """One object to copy as part of a transfer job."""

    source_key: str
    destination_key: str
    size: int


class TransferOrchestrator:
    """Plans and runs copy/move jobs, one job per (object, destination).

    Jobs run concurrently in background tasks bounded by a semaphore. A
    failing job is marked `failed` and never affects its siblings.
    """

    def __init__(
        self,
        storage_backend: StorageBackend,
        account_directory: AccountDirectory,
        activity_recorder: ActivityRecorder,
        event_publisher: SyncEventPublisher,
        max_active_transfers: int = _DEFAULT_MAX_ACTIVE_TRANSFERS,
    ) -> None:
        self._storage_backend = storage_backend
        self._account_directory = account_directory
        self._activity_recorder = activity_recorder
        self._event_publisher = event_publisher
        self._semaphore = asyncio.Semaphore(max(1, max_active_transfers))
        self._transfers: dict[str, TransferJob] = {}
        self._requested_destinations: dict[str, ObjectRef] = {}
        self._tasks: dict[str, asyncio.Task[TransferJob]] = {}

    async def plan_transfers(self, request: TransferRequest) -> list[TransferJob]:
        """Validate `request` and expand it into pending jobs.

        Every check runs before any job is created, so an invalid request
        leaves no partial work behind.
        """

        if not request.objects:
            raise TransferValidationError("No objects selected for transfer.")
        if not request.destinations:
            raise TransferValidationError("No transfer destinations given.")

        accounts = {
            account.account_id: account
            for account in await self._account_directory.list_accounts()
        }
        source_account = self._require_account(accounts, request.source_account_id)
        source_bucket = request.source_bucket or source_account.bucket_name
        if not source_bucket:
            raise TransferValidationError("Source bucket is required.")

        jobs: list[TransferJob] = []
        for destination in request.destinations:
            destination_account = self._require_account(accounts, destination.account_id)
            if destination_account.read_only:
                raise TransferValidationError(
                    f"Destination account '{destination_account.account_id}' is read-only."
                )
            destination_bucket = destination.bucket or destination_account.bucket_name
            if not destination_bucket:
                raise TransferValidationError("Destination bucket is required.")
            target_prefix = normalize_prefix(destination.target_folder)

            for item in request.objects:
                is_folder = item.is_folder or item.key.endswith("/")
                source_key = normalize_prefix(item.key) if is_folder else item.key
                name = posixpath.basename(source_key.rstrip("/"))
                destination_key = join_key(target_prefix, name, is_folder)
                if request.transfer_type is TransferType.MOVE:
                    self._validate_move(
                        source_account,
                        source_bucket,
                        source_key,
                        destination_account,
                        destination_bucket,
                        destination_key,
                        is_folder,
                    )
                jobs.append(
                    TransferJob(
                        transfer_id=uuid4().hex,
                        transfer_type=request.transfer_type,
                        source=ObjectRef(source_account.account_id, source_bucket, source_key),
                        destination=ObjectRef(
                            destination_account.account_id,
                            destination_bucket,
                            destination_key,
                        ),
                        name=name,
                        is_folder=is_folder,
                        total_bytes=item.size,
                    )
                )
        return jobs

    def classify(
        self,
        source_account: Account,
        destination_account: Account,
        source_bucket: str,
        destination_bucket: str,
    ) -> TransferStrategy:
        """Pick the cheapest way to move bytes between two locations."""

        if (
            source_account.account_id == destination_account.account_id
            and source_bucket == destination_bucket
        ):
            return TransferStrategy.IN_PLACE
        if source_account.same_endpoint(destination_account):
            return TransferStrategy.SERVER_SIDE
        return TransferStrategy.STREAMING

    async def submit(
        self,
        request: TransferRequest,
        progress_listener: TransferListener | None = None,
    ) -> list[TransferJob]:
        """Plan `request`, register its jobs and start them in the background."""

        jobs = await self.plan_transfers(request)
        for job in jobs:
            await self._launch(job, progress_listener)
        return jobs

    async def execute(
        self,
        job: TransferJob,
        progress_listener: TransferListener | None = None,
    ) -> TransferJob:
        """Run one job to completion; backend failures end in `failed`."""

        started = time.monotonic()
        job.status = TransferStatus.RUNNING
        job.started_at = datetime.now(tz=UTC)
        job.error = None
        await self._notify(job, progress_listener)

        source_account: Account | None = None
        try:
            source_account = await self._get_account(job.source.account_id)
            destination_account = await self._get_account(job.destination.account_id)
            job.strategy = self.classify(
                source_account,
                destination_account,
                job.source.bucket,
                job.destination.bucket,
            )
            if job.transfer_type is TransferType.COPY:
                job.destination = replace(
                    job.destination,
                    key=await self._collision_free_key(destination_account, job),
                )
            written = await self._perform(job, source_account, destination_account, progress_listener)
        except Exception as exc:  # noqa: BLE001
            job.status = TransferStatus.FAILED
            job.error = str(exc) or exc.__class__.__name__
            logger.warning("Transfer '%s' (%s) failed: %s", job.transfer_id, job.name, job.error)
        else:
            job.status = TransferStatus.DONE
            job.bytes_transferred = max(written, job.bytes_transferred)
            job.total_bytes = max(job.total_bytes, job.bytes_transferred)
            job.progress = 100
            elapsed = time.monotonic() - started
            if job.speed <= 0 and elapsed > 0:
                job.speed = job.bytes_transferred / elapsed
        job.finished_at = datetime.now(tz=UTC)

        if source_account is not None:
            await self._record_transfer_activity(source_account, job)
        await self._notify(job, progress_listener)
        return job

    def get_transfer(self, transfer_id: str) -> TransferJob:
        job = self._transfers.get(transfer_id)
        if job is None:
            raise TransferNotFoundError(f"Transfer '{transfer_id}' not found.")
        return job

    def list_transfers(self) -> list[TransferJob]:
        """Return all known transfers, oldest first."""

        return list(self._transfers.values())

    def clear_finished(self) -> int:
        """Forget finished transfers and return how many were removed."""

        finished = [job.transfer_id for job in self._transfers.values() if job.finished]
        for transfer_id in finished:
            self._transfers.pop(transfer_id, None)
            self._requested_destinations.pop(transfer_id, None)
        return len(finished)

    async def retry(
        self,
        transfer_id: str,
        progress_listener: TransferListener | None = None,
    ) -> TransferJob:
        """Start a fresh job for a failed transfer with the same request."""

        failed = self.get_transfer(transfer_id)
        if failed.status is not TransferStatus.FAILED:
            raise TransferValidationError("Only failed transfers can be retried.")

        job = TransferJob(
            transfer_id=uuid4().hex,
            transfer_type=failed.transfer_type,
            source=failed.source,
            destination=self._requested_destinations.get(transfer_id, failed.destination),
            name=failed.name,
            is_folder=failed.is_folder,
            total_bytes=failed.total_bytes,
        )
        await self._launch(job, progress_listener)
        return job

    async def wait_for(self, transfer_ids: Iterable[str] | None = None) -> list[TransferJob]:
        """Wait until the given (default: all running) transfers finish."""

        if transfer_ids is None:
            tasks = list(self._tasks.values())
        else:
            tasks = [self._tasks[tid] for tid in transfer_ids if tid in self._tasks]
        if not tasks:
            return []
        return list(await asyncio.gather(*tasks))

    async def shutdown(self) -> None:
        """Let in-flight transfers finish."""

        await self.wait_for()

    async def _launch(self, job: TransferJob, progress_listener: TransferListener | None) -> None:
        self._transfers[job.transfer_id] = job
        self._requested_destinations[job.transfer_id] = job.destination
        await self._notify(job, progress_listener)
        task = asyncio.create_task(
            self._run_bounded(job, progress_listener),
            name=f"transfer-{job.transfer_id}",
        )
        self._tasks[job.transfer_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(job.transfer_id, None))

    async def _run_bounded(
        self,
        job: TransferJob,
        progress_listener: TransferListener | None,
    ) -> TransferJob:
        async with self._semaphore:
            return await self.execute(job, progress_listener)

    async def _perform(
        self,
        job: TransferJob,
        source_account: Account,
        destination_account: Account,
        progress_listener: TransferListener | None,
    ) -> int:
        if job.transfer_type is TransferType.MOVE:
            if job.strategy is not TransferStrategy.IN_PLACE:
                raise MoveNotPermittedError(
                    "Moving between buckets or accounts is not supported; copy instead."
                )
            await self._storage_backend.rename_object(
                source_account,
                job.source.bucket,
                job.source.key,
                job.destination.key,
            )
            return job.total_bytes

        leaves = await self._leaves(source_account, job)
        if job.is_folder:
            job.total_bytes = sum(leaf.size for leaf in leaves)

        written = 0
        if job.strategy is TransferStrategy.STREAMING:
            for leaf in leaves:
                written += await self._storage_backend.stream_transfer_object(
                    source_account,
                    job.source.bucket,
                    leaf.source_key,
                    destination_account,
                    job.destination.bucket,
                    leaf.destination_key,
                    progress_callback=self._progress_forwarder(job, written, progress_listener),
                )
            return written

        for leaf in leaves:
            await self._storage_backend.copy_object_server_side(
                source_account,
                job.source.bucket,
                leaf.source_key,
                job.destination.bucket,
                leaf.destination_key,
            )
            written += leaf.size
        return written

    async def _leaves(self, source_account: Account, job: TransferJob) -> list[_Leaf]:
        """Expand a folder job into per-object copies with relative paths kept."""

        if not job.is_folder:
            return [_Leaf(job.source.key, job.destination.key, job.total_bytes)]
        listed = await self._storage_backend.list_objects(
            source_account,
            job.source.bucket,
            job.source.key,
        )
        return [
            _Leaf(
                source_key=item.key,
                destination_key=f"{job.destination.key}{relative_key(item.key, job.source.key)}",
                size=item.size,
            )
            for item in listed
        ]

    async def _collision_free_key(self, destination_account: Account, job: TransferJob) -> str:
        existing = await self._storage_backend.list_objects(
            destination_account,
            job.destination.bucket,
            collision_scan_prefix(job.destination.key, job.is_folder),
        )
        return resolve_collision_free_key(
            job.destination.key,
            [item.key for item in existing],
            is_folder=job.is_folder,
        )

    def _progress_forwarder(
        self,
        job: TransferJob,
        offset: int,
        progress_listener: TransferListener | None,
    ) -> ProgressCallback:
        async def forward(snapshot: TransferProgressSnapshot) -> None:
            job.bytes_transferred = offset + snapshot.bytes_transferred
            job.speed = snapshot.speed
            if job.total_bytes > 0:
                job.progress = min(100, int(job.bytes_transferred * 100 / job.total_bytes))
            await self._notify(job, progress_listener)

        return forward

    def _validate_move(
        self,
        source_account: Account,
        source_bucket: str,
        source_key: str,
        destination_account: Account,
        destination_bucket: str,
        destination_key: str,
        is_folder: bool,
    ) -> None:
        if (
            source_account.account_id != destination_account.account_id
            or source_bucket != destination_bucket
        ):
            raise MoveNotPermittedError(
                "Moving between buckets or accounts is not supported; copy instead."
            )
        if destination_key == source_key:
            raise TransferValidationError(f"Cannot move '{source_key}' onto itself.")
        if is_folder and destination_key.startswith(source_key):
            raise TransferValidationError(f"Cannot move folder '{source_key}' into itself.")

    def _require_account(self, accounts: dict[str, Account], account_id: str) -> Account:
        account = accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account '{account_id}' not found.")
        return account

    async def _get_account(self, account_id: str) -> Account:
        account = await self._account_directory.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account '{account_id}' not found.")
        return account

    async def _record_transfer_activity(self, account: Account, job: TransferJob) -> None:
        failed = job.status is TransferStatus.FAILED
        with suppress(Exception):
            await self._activity_recorder.record(
                account,
                job.transfer_type.value,
                path_before=job.source.key,
                path_after=f"{job.destination.bucket}/{job.destination.key}",
                status=ActivityStatus.FAILED if failed else ActivityStatus.SUCCESS,
                error_message=job.error,
                byte_count=None if failed else job.bytes_transferred,
            )

    async def _notify(self, job: TransferJob, progress_listener: TransferListener | None) -> None:
        """Publish transfer events without affecting execution."""

        with suppress(Exception):
            await self._event_publisher.publish_transfer(job)
        if progress_listener is not None:
            with suppress(Exception):
                await progress_listener(job)


__all__ = ["TransferListener", "TransferOrchestrator"]
