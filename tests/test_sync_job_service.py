from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from bucketsync.application.services import SyncJobService
from bucketsync.application.services.sync_job_service import default_job_name, interval_label
from bucketsync.domain.entities import Account
from bucketsync.domain.errors import (
    AccountNotFoundError,
    SyncJobNotFoundError,
    SyncJobValidationError,
)
from bucketsync.domain.management_models import SyncJobCreateRequest, SyncJobUpdateRequest
from bucketsync.domain.sync_types import ActivityStatus, SyncDirection, SyncJobStatus
from bucketsync.infrastructure.accounts import StaticAccountDirectory
from bucketsync.infrastructure.events import NoopSyncEventPublisher
from bucketsync.infrastructure.repositories import InMemorySyncJobRepository

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class RecordingActivityRecorder:
    def __init__(self) -> None:
        self.entries: list[tuple[str, str | None]] = []

    async def record(
        self,
        account,
        action_kind,
        path_before=None,
        path_after=None,
        status=ActivityStatus.SUCCESS,
        error_message=None,
        byte_count=None,
    ) -> None:
        self.entries.append((action_kind, path_before))


def _service(
    repository: InMemorySyncJobRepository,
    recorder: RecordingActivityRecorder | None = None,
) -> SyncJobService:
    return SyncJobService(
        repository=repository,
        account_directory=StaticAccountDirectory(
            [
                Account(account_id="acc-1", name="Photos", bucket_name="photos"),
                Account(account_id="acc-2", name="No default bucket"),
            ]
        ),
        activity_recorder=recorder or RecordingActivityRecorder(),
        event_publisher=NoopSyncEventPublisher(),
        clock=lambda: NOW,
    )


def _create_request(**overrides: object) -> SyncJobCreateRequest:
    payload: dict[str, object] = {
        "accountId": "acc-1",
        "localPath": "/home/ana/Pictures/",
        "remotePath": "backup/pictures",
        "intervalSeconds": 3600,
    }
    payload.update(overrides)
    return SyncJobCreateRequest.model_validate(payload)


def test_helpers_format_names_and_intervals() -> None:
    assert default_job_name("/home/ana/Pictures/") == "Pictures"
    assert default_job_name("C:\\Users\\ana\\Documents") == "Documents"
    assert interval_label(0) == "manual"
    assert interval_label(93_600 + 1800) == "1d 2h 30m"


def test_create_job_defaults_name_bucket_and_schedule() -> None:
    async def scenario() -> None:
        repository = InMemorySyncJobRepository()
        service = _service(repository)

        job = await service.create_job(_create_request(direction="up"))

        assert job.name == "Pictures"
        assert job.bucket == "photos"
        assert job.direction is SyncDirection.UPLOAD
        assert job.status is SyncJobStatus.IDLE
        assert job.next_run == NOW + timedelta(hours=1)
        assert await repository.get_job(job.job_id) == job

        manual = await service.create_job(_create_request(name="Manual", intervalSeconds=0))
        assert manual.next_run is None
        assert [item.job_id for item in await service.list_jobs()] == [job.job_id, manual.job_id]

    asyncio.run(scenario())


def test_create_job_validates_account_and_bucket() -> None:
    async def scenario() -> None:
        service = _service(InMemorySyncJobRepository())

        with pytest.raises(AccountNotFoundError):
            await service.create_job(_create_request(accountId="missing"))
        with pytest.raises(SyncJobValidationError):
            await service.create_job(_create_request(accountId="acc-2"))

    asyncio.run(scenario())


def test_create_request_rejects_unknown_direction() -> None:
    with pytest.raises(ValidationError):
        _create_request(direction="sideways")
    with pytest.raises(ValidationError):
        _create_request(intervalSeconds=-5)


def test_update_job_logs_each_changed_setting() -> None:
    async def scenario() -> None:
        repository = InMemorySyncJobRepository()
        recorder = RecordingActivityRecorder()
        service = _service(repository, recorder)
        job = await service.create_job(_create_request(name="Pictures"))

        updated = await service.update_job(
            job.job_id,
            SyncJobUpdateRequest.model_validate(
                {"name": "Holiday", "intervalSeconds": 0, "mirrorSync": True}
            ),
        )

        assert updated.name == "Holiday"
        assert updated.interval_seconds == 0
        assert updated.next_run is None
        assert updated.mirror_sync is True
        assert recorder.entries == [
            ("sync_name_changed", "Pictures → Holiday"),
            ("sync_interval_changed", "0d 1h 0m → manual"),
            ("sync_mirror_enabled", "/home/ana/Pictures/"),
        ]

        await service.update_job(job.job_id, SyncJobUpdateRequest(name="Holiday"))
        assert len(recorder.entries) == 3

    asyncio.run(scenario())


def test_update_and_delete_unknown_job_raise_not_found() -> None:
    async def scenario() -> None:
        service = _service(InMemorySyncJobRepository())

        with pytest.raises(SyncJobNotFoundError):
            await service.update_job("missing", SyncJobUpdateRequest(name="x"))
        with pytest.raises(SyncJobNotFoundError):
            await service.delete_job("missing")
        with pytest.raises(SyncJobNotFoundError):
            await service.get_job("missing")

    asyncio.run(scenario())


def test_delete_job_removes_only_that_job() -> None:
    async def scenario() -> None:
        repository = InMemorySyncJobRepository()
        service = _service(repository)
        first = await service.create_job(_create_request(name="First"))
        second = await service.create_job(_create_request(name="Second"))

        await service.delete_job(first.job_id)

        assert [job.job_id for job in await repository.list_jobs()] == [second.job_id]

    asyncio.run(scenario())
