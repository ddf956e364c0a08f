"""Domain entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from bucketsync.domain.sync_types import (
    FINISHED_TRANSFER_STATUSES,
    AccessMode,
    SyncDirection,
    SyncJobStatus,
    TransferStatus,
    TransferStrategy,
    TransferType,
)

_DEFAULT_AWS_ENDPOINT_MARKER = "amazonaws.com"


@dataclass(slots=True)
class SyncStats:
    """Aggregate outcome of one reconciliation run."""

    files_scanned: int = 0
    files_transferred: int = 0
    bytes_transferred: int = 0
    errors: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, message: str) -> SyncStats:
        """Zeroed counts carrying a single error message."""

        return cls(errors=[message])


@dataclass(slots=True)
class SyncJob:
    """Recurring or manual local-folder to bucket-prefix reconciliation."""

    job_id: str
    name: str
    account_id: str
    bucket: str
    local_path: str
    remote_path: str
    direction: SyncDirection = SyncDirection.UPLOAD
    mirror_sync: bool = False
    interval_seconds: int = 0
    status: SyncJobStatus = SyncJobStatus.IDLE
    last_run: datetime | None = None
    next_run: datetime | None = None
    last_stats: SyncStats | None = None

    @property
    def is_recurring(self) -> bool:
        """Whether the job runs on a schedule rather than manually only."""

        return self.interval_seconds > 0

    def is_due(self, now: datetime) -> bool:
        """Schedule-side due check; account presence is checked by the scheduler."""

        return (
            self.is_recurring
            and self.next_run is not None
            and self.next_run <= now
            and self.status is not SyncJobStatus.RUNNING
        )


@dataclass(slots=True, frozen=True)
class Account:
    """Storage connection metadata plus optional static credentials."""

    account_id: str
    name: str
    provider: str = "aws"
    endpoint: str = ""
    region: str = "us-east-1"
    bucket_name: str = ""
    access_mode: AccessMode = AccessMode.READ_WRITE
    enable_activity_log: bool = True
    access_key_id: str | None = field(default=None, repr=False)
    secret_access_key: str | None = field(default=None, repr=False)

    @property
    def read_only(self) -> bool:
        return self.access_mode is AccessMode.READ_ONLY

    @property
    def normalized_endpoint(self) -> str:
        """Endpoint URL with AWS defaults collapsed to an empty string."""

        endpoint = self.endpoint.strip().rstrip("/").lower()
        if not endpoint or _DEFAULT_AWS_ENDPOINT_MARKER in endpoint:
            return ""
        return endpoint

    def same_endpoint(self, other: Account) -> bool:
        """True when server-side copy between the two accounts is possible."""

        return (
            self.provider == other.provider
            and self.normalized_endpoint == other.normalized_endpoint
        )


@dataclass(slots=True, frozen=True)
class ObjectRef:
    """Object location inside one account."""

    account_id: str
    bucket: str
    key: str


@dataclass(slots=True, frozen=True)
class StorageObject:
    """One listed object or folder marker."""

    key: str
    size: int = 0
    last_modified: datetime | None = None
    is_folder: bool = False


@dataclass(slots=True)
class TransferJob:
    """One-shot copy or move of an object or folder to one destination."""

    transfer_id: str
    transfer_type: TransferType
    source: ObjectRef
    destination: ObjectRef
    name: str
    is_folder: bool = False
    status: TransferStatus = TransferStatus.PENDING
    strategy: TransferStrategy | None = None
    progress: int = 0
    bytes_transferred: int = 0
    total_bytes: int = 0
    speed: float = 0.0
    error: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def finished(self) -> bool:
        return self.status in FINISHED_TRANSFER_STATUSES


__all__ = [
    "Account",
    "ObjectRef",
    "StorageObject",
    "SyncJob",
    "SyncStats",
    "TransferJob",
]
