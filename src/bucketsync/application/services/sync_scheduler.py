"""Background scheduler for recurring folder-to-bucket sync jobs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import suppress
from datetime import UTC, datetime, timedelta

from bucketsync.application.services.sync_job_store import SyncJobStore
from bucketsync.domain.entities import Account, SyncJob, SyncStats
from bucketsync.domain.errors import (
    AccountNotFoundError,
    SyncJobConflictError,
    SyncJobNotFoundError,
)
from bucketsync.domain.ports import (
    AccountDirectory,
    ActivityRecorder,
    StorageBackend,
    SyncEventPublisher,
    SyncJobRepository,
)
from bucketsync.domain.sync_types import (
    ActivityStatus,
    SyncJobStatus,
    ensure_executable_direction,
)

INTERRUPTED_JOB_MESSAGE = "Job interrupted (process exited while running)"
_DEFAULT_POLL_SECONDS = 10.0
_DEFAULT_ERROR_RETRY_SECONDS = 300.0

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class SyncScheduler:
    """Runs due sync jobs one at a time.

    A single in-memory guard (`running_job_id`) enforces that at most one job
    executes per scheduler instance. Ticks that find the guard held are
    skipped, not queued. Execution runs as its own task so the polling loop is
    never blocked by a long reconciliation.
    """

    def __init__(
        self,
        repository: SyncJobRepository,
        storage_backend: StorageBackend,
        account_directory: AccountDirectory,
        activity_recorder: ActivityRecorder,
        event_publisher: SyncEventPublisher,
        poll_seconds: float = _DEFAULT_POLL_SECONDS,
        error_retry_seconds: float = _DEFAULT_ERROR_RETRY_SECONDS,
        clock: Callable[[], datetime] | None = None,
        job_store: SyncJobStore | None = None,
    ) -> None:
        self._repository = repository
        self._job_store = job_store or SyncJobStore(repository)
        self._storage_backend = storage_backend
        self._account_directory = account_directory
        self._activity_recorder = activity_recorder
        self._event_publisher = event_publisher
        self._poll_seconds = max(poll_seconds, 0.05)
        self._error_retry = timedelta(seconds=max(error_retry_seconds, 0.0))
        self._clock = clock or _utc_now
        self._running_job_id: str | None = None
        self._execution_task: asyncio.Task[None] | None = None
        self._loop_task: asyncio.Task[None] | None = None
        self._loop_stop = asyncio.Event()
        self._loop_wake = asyncio.Event()

    @property
    def running_job_id(self) -> str | None:
        """Id of the job currently executing, if any."""

        return self._running_job_id

    async def startup(self) -> None:
        """Recover interrupted jobs once, then start the polling loop."""

        task = self._loop_task
        if task is not None and not task.done():
            return
        try:
            await self.recover_interrupted_jobs()
        except Exception:
            logger.exception("Recovery of interrupted sync jobs failed.")
        self._loop_stop.clear()
        self._loop_task = asyncio.create_task(
            self._run_loop(),
            name="sync-scheduler-loop",
        )

    async def shutdown(self) -> None:
        """Stop the polling loop and wait for an in-flight job to finish."""

        task = self._loop_task
        if task is not None:
            self._loop_task = None
            self._loop_stop.set()
            self._loop_wake.set()
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        await self.wait_until_idle()

    async def recover_interrupted_jobs(self) -> list[str]:
        """Turn jobs left `running` by a previous process into `error`.

        Jobs owned by an execution of this scheduler are left alone. Returns
        the ids of the recovered jobs; a store without such jobs is not
        rewritten.
        """

        now = self._clock()
        recovered = await self._job_store.modify_jobs(
            lambda jobs: self._interrupt_stray_jobs(jobs, now),
        )
        for job in recovered:
            logger.warning("Sync job '%s' was interrupted while running.", job.job_id)
            await self._publish_state_event(job)
        return [job.job_id for job in recovered]

    async def tick(self) -> SyncJob | None:
        """Start at most one due job; return it, or `None` when nothing started."""

        if self._running_job_id is not None:
            return None

        jobs = await self._repository.list_jobs()
        if any(job.status is SyncJobStatus.RUNNING for job in jobs):
            await self.recover_interrupted_jobs()
            jobs = await self._repository.list_jobs()

        accounts = {
            account.account_id: account
            for account in await self._account_directory.list_accounts()
        }
        job = self._select_due_job(jobs, accounts, self._clock())
        if job is None:
            return None
        return await self._begin(job.job_id, accounts[job.account_id])

    async def run_job_now(self, job_id: str) -> SyncJob:
        """Manually start one job, regardless of its schedule."""

        if self._running_job_id is not None:
            raise SyncJobConflictError(
                f"Sync job '{self._running_job_id}' is already running."
            )
        job = await self._repository.get_job(job_id)
        if job is None:
            raise SyncJobNotFoundError(f"Sync job '{job_id}' not found.")
        account = await self._account_directory.get_account(job.account_id)
        if account is None:
            raise AccountNotFoundError(
                f"Account '{job.account_id}' for sync job '{job_id}' not found."
            )

        started = await self._begin(job_id, account)
        if started is not None:
            return started
        if self._running_job_id is not None:
            raise SyncJobConflictError(
                f"Sync job '{self._running_job_id}' is already running."
            )
        raise SyncJobNotFoundError(f"Sync job '{job_id}' not found.")

    async def wait_until_idle(self) -> None:
        """Wait for the in-flight execution, if any."""

        task = self._execution_task
        if task is not None:
            await task

    def _select_due_job(
        self,
        jobs: list[SyncJob],
        accounts: dict[str, Account],
        now: datetime,
    ) -> SyncJob | None:
        """Earliest `next_run` wins; ties go to the job stored first."""

        due: list[tuple[datetime, int, SyncJob]] = []
        for position, job in enumerate(jobs):
            if not job.is_due(now):
                continue
            if job.account_id not in accounts:
                logger.warning(
                    "Skipping sync job '%s': account '%s' not found.",
                    job.job_id,
                    job.account_id,
                )
                continue
            assert job.next_run is not None
            due.append((job.next_run, position, job))
        if not due:
            return None
        return min(due, key=lambda entry: (entry[0], entry[1]))[2]

    async def _begin(self, job_id: str, account: Account) -> SyncJob | None:
        if self._running_job_id is not None:
            return None
        self._running_job_id = job_id
        try:
            job = await self._job_store.modify_job(job_id, self._mark_running)
        except BaseException:
            self._running_job_id = None
            raise
        if job is None:
            self._running_job_id = None
            return None

        logger.info("Starting sync job '%s' (%s).", job.job_id, job.name)
        await self._publish_state_event(job)
        self._execution_task = asyncio.create_task(
            self._execute_job(job, account),
            name=f"sync-job-{job_id}",
        )
        return job

    async def _execute_job(self, job: SyncJob, account: Account) -> None:
        """Run one reconciliation and persist its outcome on the freshest record."""

        try:
            stats: SyncStats | None = None
            error: str | None = None
            try:
                ensure_executable_direction(job.direction)
                stats = await self._storage_backend.reconcile(
                    account,
                    job.bucket,
                    job.local_path,
                    job.remote_path,
                    job.direction,
                    job.mirror_sync,
                )
            except Exception as exc:  # noqa: BLE001
                error = str(exc) or exc.__class__.__name__
                logger.warning("Sync job '%s' failed: %s", job.job_id, error)

            finished_at = self._clock()
            updated = await self._job_store.modify_job(
                job.job_id,
                lambda current: self._apply_outcome(current, finished_at, stats, error),
            )
            if updated is None:
                logger.info(
                    "Sync job '%s' was deleted while running; dropping its outcome.",
                    job.job_id,
                )
            else:
                await self._publish_state_event(updated)
            await self._record_sync_activity(account, job, stats, error)
        except Exception:
            logger.exception("Failed to persist the outcome of sync job '%s'.", job.job_id)
        finally:
            self._running_job_id = None

    def _mark_running(self, job: SyncJob) -> None:
        job.status = SyncJobStatus.RUNNING

    def _apply_outcome(
        self,
        job: SyncJob,
        finished_at: datetime,
        stats: SyncStats | None,
        error: str | None,
    ) -> None:
        if error is None and stats is not None:
            job.status = SyncJobStatus.COMPLETED
            job.last_run = finished_at
            job.last_stats = stats
            job.next_run = (
                finished_at + timedelta(seconds=job.interval_seconds)
                if job.is_recurring
                else None
            )
            return

        job.status = SyncJobStatus.ERROR
        job.last_stats = SyncStats.failure(error or "Sync failed")
        job.next_run = self._retry_at(job, finished_at)

    def _interrupt_stray_jobs(self, jobs: list[SyncJob], now: datetime) -> list[SyncJob]:
        interrupted: list[SyncJob] = []
        for job in jobs:
            if job.status is not SyncJobStatus.RUNNING or job.job_id == self._running_job_id:
                continue
            job.status = SyncJobStatus.ERROR
            job.last_stats = SyncStats.failure(INTERRUPTED_JOB_MESSAGE)
            job.next_run = self._retry_at(job, now)
            interrupted.append(job)
        return interrupted

    def _retry_at(self, job: SyncJob, now: datetime) -> datetime | None:
        return now + self._error_retry if job.is_recurring else None

    async def _record_sync_activity(
        self,
        account: Account,
        job: SyncJob,
        stats: SyncStats | None,
        error: str | None,
    ) -> None:
        with suppress(Exception):
            await self._activity_recorder.record(
                account,
                "sync",
                path_before=job.remote_path,
                status=ActivityStatus.FAILED if error is not None else ActivityStatus.SUCCESS,
                error_message=error,
                byte_count=None if stats is None else stats.bytes_transferred,
            )

    async def _publish_state_event(self, job: SyncJob) -> None:
        """Publish state events without affecting scheduling."""

        with suppress(Exception):
            await self._event_publisher.publish_sync_job(job)

    async def _run_loop(self) -> None:
        while not self._loop_stop.is_set():
            try:
                await self.tick()
            except Exception:
                logger.exception("Sync scheduler tick failed.")

            self._loop_wake.clear()
            try:
                await asyncio.wait_for(self._loop_wake.wait(), timeout=self._poll_seconds)
            except TimeoutError:
                pass


__all__ = ["INTERRUPTED_JOB_MESSAGE", "SyncScheduler"]
