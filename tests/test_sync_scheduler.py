from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from bucketsync.application.services import (
    INTERRUPTED_JOB_MESSAGE,
    SyncJobService,
    SyncJobStore,
    SyncScheduler,
)
from bucketsync.domain.entities import Account, SyncJob, SyncStats
from bucketsync.domain.errors import (
    AccountNotFoundError,
    JobStoreError,
    StorageBackendError,
    SyncJobConflictError,
    SyncJobNotFoundError,
)
from bucketsync.domain.management_models import SyncJobUpdateRequest
from bucketsync.domain.sync_types import SyncDirection, SyncJobStatus
from bucketsync.infrastructure.accounts import StaticAccountDirectory
from bucketsync.infrastructure.activity import NoopActivityRecorder
from bucketsync.infrastructure.repositories import InMemorySyncJobRepository

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeStorageBackend:
    """Reconcile stand-in that can block or fail on demand."""

    def __init__(self, stats: SyncStats | None = None) -> None:
        self.stats = stats or SyncStats(files_scanned=2, files_transferred=1, bytes_transferred=42)
        self.error: Exception | None = None
        self.release = asyncio.Event()
        self.release.set()
        self.calls: list[str] = []

    async def reconcile(self, account, bucket, local_path, remote_path, direction, mirror):
        self.calls.append(local_path)
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.stats


class RecordingPublisher:
    def __init__(self) -> None:
        self.sync_events: list[tuple[str, SyncJobStatus]] = []

    async def publish_sync_job(self, job: SyncJob) -> None:
        self.sync_events.append((job.job_id, job.status))

    async def publish_transfer(self, job) -> None:
        return None


class FlakyRepository(InMemorySyncJobRepository):
    def __init__(self, jobs: list[SyncJob] | None = None) -> None:
        super().__init__(jobs)
        self.fail_writes = False

    async def replace_all(self, jobs: list[SyncJob]) -> None:
        if self.fail_writes:
            raise JobStoreError("disk full")
        await super().replace_all(jobs)


class YieldingRepository(InMemorySyncJobRepository):
    async def list_jobs(self) -> list[SyncJob]:
        jobs = await super().list_jobs()
        await asyncio.sleep(0)
        return jobs


def _account(account_id: str = "acc-1") -> Account:
    return Account(account_id=account_id, name=account_id, bucket_name="photos")


def _job(
    job_id: str,
    interval_seconds: int = 3600,
    next_run: datetime | None = None,
    status: SyncJobStatus = SyncJobStatus.IDLE,
    account_id: str = "acc-1",
    direction: SyncDirection = SyncDirection.UPLOAD,
) -> SyncJob:
    return SyncJob(
        job_id=job_id,
        name=job_id,
        account_id=account_id,
        bucket="photos",
        local_path=f"/data/{job_id}",
        remote_path="backup/",
        direction=direction,
        interval_seconds=interval_seconds,
        status=status,
        next_run=next_run,
    )


def _scheduler(
    repository: InMemorySyncJobRepository,
    storage: FakeStorageBackend | None = None,
    accounts: list[Account] | None = None,
    publisher: RecordingPublisher | None = None,
    clock: FakeClock | None = None,
    poll_seconds: float = 10.0,
    job_store: SyncJobStore | None = None,
) -> SyncScheduler:
    return SyncScheduler(
        repository=repository,
        storage_backend=storage or FakeStorageBackend(),
        account_directory=StaticAccountDirectory(accounts if accounts is not None else [_account()]),
        activity_recorder=NoopActivityRecorder(),
        event_publisher=publisher or RecordingPublisher(),
        poll_seconds=poll_seconds,
        error_retry_seconds=300,
        clock=clock or FakeClock(),
        job_store=job_store,
    )


def test_recover_interrupted_jobs_marks_error_and_is_idempotent() -> None:
    async def scenario() -> None:
        repository = InMemorySyncJobRepository(
            [
                _job("recurring", status=SyncJobStatus.RUNNING, next_run=NOW),
                _job("manual", interval_seconds=0, status=SyncJobStatus.RUNNING),
                _job("idle", next_run=NOW + timedelta(hours=1)),
            ]
        )
        publisher = RecordingPublisher()
        scheduler = _scheduler(repository, publisher=publisher)

        recovered = await scheduler.recover_interrupted_jobs()
        assert sorted(recovered) == ["manual", "recurring"]

        jobs = {job.job_id: job for job in await repository.list_jobs()}
        assert jobs["recurring"].status is SyncJobStatus.ERROR
        assert jobs["recurring"].last_stats is not None
        assert jobs["recurring"].last_stats.errors == [INTERRUPTED_JOB_MESSAGE]
        assert jobs["recurring"].next_run == NOW + timedelta(seconds=300)
        assert jobs["manual"].status is SyncJobStatus.ERROR
        assert jobs["manual"].next_run is None
        assert jobs["idle"].status is SyncJobStatus.IDLE
        assert ("recurring", SyncJobStatus.ERROR) in publisher.sync_events

        assert await scheduler.recover_interrupted_jobs() == []

    asyncio.run(scenario())


def test_tick_starts_most_overdue_job_and_breaks_ties_by_storage_order() -> None:
    async def scenario() -> None:
        repository = InMemorySyncJobRepository(
            [
                _job("recent", next_run=NOW - timedelta(minutes=10)),
                _job("oldest-first", next_run=NOW - timedelta(minutes=20)),
                _job("oldest-second", next_run=NOW - timedelta(minutes=20)),
                _job("manual", interval_seconds=0),
                _job("future", next_run=NOW + timedelta(minutes=5)),
            ]
        )
        scheduler = _scheduler(repository)

        started = await scheduler.tick()
        assert started is not None
        assert started.job_id == "oldest-first"
        assert started.status is SyncJobStatus.RUNNING
        await scheduler.wait_until_idle()

        job = await repository.get_job("oldest-first")
        assert job is not None
        assert job.status is SyncJobStatus.COMPLETED
        assert job.last_run == NOW
        assert job.next_run == NOW + timedelta(hours=1)
        assert job.last_stats == SyncStats(
            files_scanned=2,
            files_transferred=1,
            bytes_transferred=42,
        )
        assert scheduler.running_job_id is None

    asyncio.run(scenario())


def test_tick_skips_due_jobs_whose_account_is_missing() -> None:
    async def scenario() -> None:
        repository = InMemorySyncJobRepository(
            [
                _job("orphan", next_run=NOW - timedelta(hours=2), account_id="gone"),
                _job("healthy", next_run=NOW - timedelta(minutes=1)),
            ]
        )
        scheduler = _scheduler(repository)

        started = await scheduler.tick()
        assert started is not None
        assert started.job_id == "healthy"
        await scheduler.wait_until_idle()

        orphan = await repository.get_job("orphan")
        assert orphan is not None
        assert orphan.status is SyncJobStatus.IDLE

    asyncio.run(scenario())


def test_tick_returns_none_when_nothing_is_due() -> None:
    async def scenario() -> None:
        repository = InMemorySyncJobRepository(
            [_job("future", next_run=NOW + timedelta(minutes=1)), _job("manual", interval_seconds=0)]
        )
        scheduler = _scheduler(repository)

        assert await scheduler.tick() is None

    asyncio.run(scenario())


def test_only_one_job_runs_at_a_time() -> None:
    async def scenario() -> None:
        repository = InMemorySyncJobRepository(
            [
                _job("a", next_run=NOW - timedelta(minutes=2)),
                _job("b", next_run=NOW - timedelta(minutes=1)),
            ]
        )
        storage = FakeStorageBackend()
        storage.release.clear()
        scheduler = _scheduler(repository, storage=storage)

        started = await scheduler.tick()
        assert started is not None and started.job_id == "a"
        await asyncio.sleep(0)

        assert scheduler.running_job_id == "a"
        assert await scheduler.tick() is None
        with pytest.raises(SyncJobConflictError):
            await scheduler.run_job_now("b")

        storage.release.set()
        await scheduler.wait_until_idle()
        assert storage.calls == ["/data/a"]

        b = await repository.get_job("b")
        assert b is not None and b.status is SyncJobStatus.IDLE

    asyncio.run(scenario())


def test_failed_run_records_error_and_schedules_retry() -> None:
    async def scenario() -> None:
        repository = InMemorySyncJobRepository([_job("a", next_run=NOW - timedelta(minutes=1))])
        storage = FakeStorageBackend()
        storage.error = StorageBackendError("List photos/backup/ failed: access denied")
        scheduler = _scheduler(repository, storage=storage)

        await scheduler.tick()
        await scheduler.wait_until_idle()

        job = await repository.get_job("a")
        assert job is not None
        assert job.status is SyncJobStatus.ERROR
        assert job.last_run is None
        assert job.last_stats is not None
        assert job.last_stats.errors == ["List photos/backup/ failed: access denied"]
        assert job.last_stats.files_transferred == 0
        assert job.next_run == NOW + timedelta(seconds=300)
        assert scheduler.running_job_id is None

    asyncio.run(scenario())


def test_manual_job_runs_on_demand_and_keeps_no_next_run() -> None:
    async def scenario() -> None:
        repository = InMemorySyncJobRepository([_job("manual", interval_seconds=0)])
        scheduler = _scheduler(repository)

        started = await scheduler.run_job_now("manual")
        assert started.status is SyncJobStatus.RUNNING
        await scheduler.wait_until_idle()

        job = await repository.get_job("manual")
        assert job is not None
        assert job.status is SyncJobStatus.COMPLETED
        assert job.next_run is None
        assert job.last_run == NOW

    asyncio.run(scenario())


def test_run_job_now_rejects_unknown_job_and_missing_account() -> None:
    async def scenario() -> None:
        repository = InMemorySyncJobRepository([_job("orphan", account_id="gone")])
        scheduler = _scheduler(repository)

        with pytest.raises(SyncJobNotFoundError):
            await scheduler.run_job_now("missing")
        with pytest.raises(AccountNotFoundError):
            await scheduler.run_job_now("orphan")
        assert scheduler.running_job_id is None

    asyncio.run(scenario())


def test_download_jobs_fail_without_touching_storage() -> None:
    async def scenario() -> None:
        repository = InMemorySyncJobRepository(
            [_job("down", interval_seconds=0, direction=SyncDirection.DOWNLOAD)]
        )
        storage = FakeStorageBackend()
        scheduler = _scheduler(repository, storage=storage)

        await scheduler.run_job_now("down")
        await scheduler.wait_until_idle()

        job = await repository.get_job("down")
        assert job is not None
        assert job.status is SyncJobStatus.ERROR
        assert job.last_stats is not None
        assert "not supported" in job.last_stats.errors[0]
        assert storage.calls == []

    asyncio.run(scenario())


def test_user_edits_during_a_run_survive_the_outcome_write() -> None:
    async def scenario() -> None:
        clock = FakeClock()
        repository = InMemorySyncJobRepository([_job("a", next_run=NOW - timedelta(minutes=1))])
        storage = FakeStorageBackend()
        storage.release.clear()
        accounts = StaticAccountDirectory([_account()])
        job_store = SyncJobStore(repository)
        scheduler = SyncScheduler(
            repository=repository,
            storage_backend=storage,
            account_directory=accounts,
            activity_recorder=NoopActivityRecorder(),
            event_publisher=RecordingPublisher(),
            error_retry_seconds=300,
            clock=clock,
            job_store=job_store,
        )
        service = SyncJobService(
            repository=repository,
            account_directory=accounts,
            activity_recorder=NoopActivityRecorder(),
            event_publisher=RecordingPublisher(),
            clock=clock,
            job_store=job_store,
        )

        await scheduler.tick()
        await asyncio.sleep(0)
        await service.update_job(
            "a",
            SyncJobUpdateRequest(name="Holiday photos", mirror_sync=True),
        )
        storage.release.set()
        await scheduler.wait_until_idle()

        job = await repository.get_job("a")
        assert job is not None
        assert job.name == "Holiday photos"
        assert job.mirror_sync is True
        assert job.status is SyncJobStatus.COMPLETED

    asyncio.run(scenario())


def test_job_deleted_while_running_is_not_recreated() -> None:
    async def scenario() -> None:
        repository = InMemorySyncJobRepository([_job("a", next_run=NOW - timedelta(minutes=1))])
        storage = FakeStorageBackend()
        storage.release.clear()
        accounts = StaticAccountDirectory([_account()])
        job_store = SyncJobStore(repository)
        scheduler = _scheduler(repository, storage=storage, job_store=job_store)
        service = SyncJobService(
            repository=repository,
            account_directory=accounts,
            activity_recorder=NoopActivityRecorder(),
            event_publisher=RecordingPublisher(),
            job_store=job_store,
        )

        await scheduler.tick()
        await asyncio.sleep(0)
        await service.delete_job("a")
        storage.release.set()
        await scheduler.wait_until_idle()

        assert await repository.list_jobs() == []
        assert scheduler.running_job_id is None

    asyncio.run(scenario())


def test_job_store_serializes_concurrent_writers() -> None:
    async def scenario() -> None:
        repository = YieldingRepository([_job("a")])
        job_store = SyncJobStore(repository)

        def appender(job_id: str):
            def mutate(jobs: list[SyncJob]) -> list[SyncJob]:
                job = _job(job_id)
                jobs.append(job)
                return [job]

            return mutate

        await asyncio.gather(
            job_store.modify_jobs(appender("b")),
            job_store.modify_jobs(appender("c")),
        )

        assert [job.job_id for job in await repository.list_jobs()] == ["a", "b", "c"]

    asyncio.run(scenario())


def test_job_store_skips_write_when_nothing_changed() -> None:
    async def scenario() -> None:
        repository = FlakyRepository([_job("a")])
        repository.fail_writes = True
        job_store = SyncJobStore(repository)

        assert await job_store.modify_job("missing", lambda job: None) is None
        assert await job_store.modify_jobs(lambda jobs: []) == []

    asyncio.run(scenario())


def test_tick_heals_running_jobs_without_an_owner() -> None:
    async def scenario() -> None:
        repository = InMemorySyncJobRepository(
            [_job("stuck", status=SyncJobStatus.RUNNING, next_run=NOW - timedelta(hours=1))]
        )
        scheduler = _scheduler(repository)

        assert await scheduler.tick() is None

        job = await repository.get_job("stuck")
        assert job is not None
        assert job.status is SyncJobStatus.ERROR
        assert job.next_run == NOW + timedelta(seconds=300)

    asyncio.run(scenario())


def test_store_failure_on_outcome_write_releases_the_guard() -> None:
    async def scenario() -> None:
        repository = FlakyRepository(
            [
                _job("a", next_run=NOW - timedelta(minutes=2)),
                _job("b", next_run=NOW - timedelta(minutes=1)),
            ]
        )
        storage = FakeStorageBackend()
        storage.release.clear()
        scheduler = _scheduler(repository, storage=storage)

        await scheduler.tick()
        await asyncio.sleep(0)
        repository.fail_writes = True
        storage.release.set()
        await scheduler.wait_until_idle()
        assert scheduler.running_job_id is None

        repository.fail_writes = False
        b = await scheduler.run_job_now("b")
        assert b.job_id == "b"
        await scheduler.wait_until_idle()

    asyncio.run(scenario())


def test_startup_recovers_then_runs_due_jobs_until_shutdown() -> None:
    async def scenario() -> None:
        repository = InMemorySyncJobRepository(
            [
                _job("stale", status=SyncJobStatus.RUNNING, next_run=NOW),
                _job("due", next_run=NOW - timedelta(minutes=1)),
            ]
        )
        scheduler = _scheduler(repository, poll_seconds=0.05)

        await scheduler.startup()
        await scheduler.startup()
        for _ in range(100):
            due = await repository.get_job("due")
            assert due is not None
            if due.status is SyncJobStatus.COMPLETED:
                break
            await asyncio.sleep(0.02)
        await scheduler.shutdown()

        jobs = {job.job_id: job for job in await repository.list_jobs()}
        assert jobs["stale"].status is SyncJobStatus.ERROR
        assert jobs["due"].status is SyncJobStatus.COMPLETED
        assert scheduler.running_job_id is None

    asyncio.run(scenario())
