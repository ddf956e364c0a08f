"""Request/response models for the management API and progress snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bucketsync.domain.entities import SyncJob, SyncStats, TransferJob
from bucketsync.domain.errors import SyncJobValidationError
from bucketsync.domain.sync_types import (
    SyncDirection,
    SyncJobStatus,
    TransferStatus,
    TransferStrategy,
    TransferType,
    parse_sync_direction,
)


@dataclass(slots=True, frozen=True)
class TransferProgressSnapshot:
    """Progress reported by the storage backend for one object stream."""

    bytes_transferred: int = 0
    total_bytes: int | None = None
    speed: float = 0.0
    finished: bool = False

    @property
    def percent_complete(self) -> int | None:
        """Return completion in whole percent when total size is known."""

        if self.total_bytes is None or self.total_bytes <= 0:
            return 100 if self.finished else None
        ratio = (self.bytes_transferred / self.total_bytes) * 100
        return max(0, min(100, int(ratio)))


class ManagementModel(BaseModel):
    """Base model for management routes."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


def _parse_direction(value: object) -> object:
    if not isinstance(value, str):
        return value
    try:
        return parse_sync_direction(value)
    except SyncJobValidationError as exc:
        raise ValueError(str(exc)) from exc


class SyncJobCreateRequest(ManagementModel):
    """Create a sync job definition."""

    name: str | None = None
    account_id: str = Field(alias="accountId", min_length=1)
    bucket: str | None = None
    local_path: str = Field(alias="localPath", min_length=1)
    remote_path: str = Field(default="", alias="remotePath")
    direction: SyncDirection = SyncDirection.UPLOAD
    mirror_sync: bool = Field(default=False, alias="mirrorSync")
    interval_seconds: int = Field(default=0, alias="intervalSeconds", ge=0)

    @field_validator("direction", mode="before")
    @classmethod
    def accept_short_direction(cls, value: object) -> object:
        """Accept `up`/`down` as stored by older clients."""

        return _parse_direction(value)


class SyncJobUpdateRequest(ManagementModel):
    """Edit user-owned fields of a sync job."""

    name: str | None = None
    interval_seconds: int | None = Field(default=None, alias="intervalSeconds", ge=0)
    mirror_sync: bool | None = Field(default=None, alias="mirrorSync")


class SyncStatsResponse(ManagementModel):
    files_scanned: int = Field(alias="filesScanned")
    files_transferred: int = Field(alias="filesTransferred")
    bytes_transferred: int = Field(alias="bytesTransferred")
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_stats(cls, stats: SyncStats) -> SyncStatsResponse:
        return cls(
            files_scanned=stats.files_scanned,
            files_transferred=stats.files_transferred,
            bytes_transferred=stats.bytes_transferred,
            errors=list(stats.errors),
        )


class SyncJobResponse(ManagementModel):
    """Single sync job payload."""

    job_id: str = Field(alias="id")
    name: str
    account_id: str = Field(alias="accountId")
    bucket: str
    local_path: str = Field(alias="localPath")
    remote_path: str = Field(alias="remotePath")
    direction: SyncDirection
    mirror_sync: bool = Field(alias="mirrorSync")
    interval_seconds: int = Field(alias="intervalSeconds")
    status: SyncJobStatus
    last_run: datetime | None = Field(default=None, alias="lastRun")
    next_run: datetime | None = Field(default=None, alias="nextRun")
    last_stats: SyncStatsResponse | None = Field(default=None, alias="lastStats")

    @classmethod
    def from_entity(cls, job: SyncJob) -> SyncJobResponse:
        return cls(
            job_id=job.job_id,
            name=job.name,
            account_id=job.account_id,
            bucket=job.bucket,
            local_path=job.local_path,
            remote_path=job.remote_path,
            direction=job.direction,
            mirror_sync=job.mirror_sync,
            interval_seconds=job.interval_seconds,
            status=job.status,
            last_run=job.last_run,
            next_run=job.next_run,
            last_stats=(
                None if job.last_stats is None else SyncStatsResponse.from_stats(job.last_stats)
            ),
        )


class SyncJobListResponse(ManagementModel):
    """Collection wrapper for the sync job list endpoint."""

    running_job_id: str | None = Field(default=None, alias="runningJobId")
    sync_jobs: list[SyncJobResponse] = Field(alias="syncJobs")


class TransferObject(ManagementModel):
    """One selected source object or folder."""

    key: str = Field(min_length=1)
    size: int = Field(default=0, ge=0)
    is_folder: bool = Field(default=False, alias="isFolder")


class TransferDestination(ManagementModel):
    """One destination bucket (and optional folder) for a fan-out transfer."""

    account_id: str = Field(alias="accountId", min_length=1)
    bucket: str | None = None
    target_folder: str = Field(default="", alias="targetFolder")


class TransferRequest(ManagementModel):
    """Ad-hoc copy/move of selected objects to one or more destinations."""

    transfer_type: TransferType = Field(alias="type")
    source_account_id: str = Field(alias="sourceAccountId", min_length=1)
    source_bucket: str | None = Field(default=None, alias="sourceBucket")
    objects: list[TransferObject] = Field(min_length=1)
    destinations: list[TransferDestination] = Field(min_length=1)


class TransferJobResponse(ManagementModel):
    """Single transfer job payload."""

    transfer_id: str = Field(alias="id")
    transfer_type: TransferType = Field(alias="type")
    name: str
    source_account_id: str = Field(alias="sourceAccountId")
    source_bucket: str = Field(alias="sourceBucket")
    source_key: str = Field(alias="sourceKey")
    destination_account_id: str = Field(alias="destAccountId")
    destination_bucket: str = Field(alias="destBucket")
    destination_key: str = Field(alias="destKey")
    is_folder: bool = Field(alias="isFolder")
    status: TransferStatus
    strategy: TransferStrategy | None = None
    progress: int
    bytes_transferred: int = Field(alias="bytesTransferred")
    total_bytes: int = Field(alias="totalBytes")
    speed: float
    error: str | None = None

    @classmethod
    def from_entity(cls, job: TransferJob) -> TransferJobResponse:
        return cls(
            transfer_id=job.transfer_id,
            transfer_type=job.transfer_type,
            name=job.name,
            source_account_id=job.source.account_id,
            source_bucket=job.source.bucket,
            source_key=job.source.key,
            destination_account_id=job.destination.account_id,
            destination_bucket=job.destination.bucket,
            destination_key=job.destination.key,
            is_folder=job.is_folder,
            status=job.status,
            strategy=job.strategy,
            progress=job.progress,
            bytes_transferred=job.bytes_transferred,
            total_bytes=job.total_bytes,
            speed=job.speed,
            error=job.error,
        )


class TransferListResponse(ManagementModel):
    """Collection wrapper for transfer endpoints."""

    transfers: list[TransferJobResponse]


__all__ = [
    "SyncJobCreateRequest",
    "SyncJobListResponse",
    "SyncJobResponse",
    "SyncJobUpdateRequest",
    "SyncStatsResponse",
    "TransferDestination",
    "TransferJobResponse",
    "TransferListResponse",
    "TransferObject",
    "TransferProgressSnapshot",
    "TransferRequest",
]
