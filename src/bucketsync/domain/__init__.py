"""Domain public API."""

from bucketsync.domain.entities import (
    Account,
    ObjectRef,
    StorageObject,
    SyncJob,
    SyncStats,
    TransferJob,
)
from bucketsync.domain.errors import (
    AccountNotFoundError,
    JobStoreError,
    MoveNotPermittedError,
    StorageBackendError,
    SyncError,
    SyncJobConflictError,
    SyncJobNotFoundError,
    SyncJobValidationError,
    TransferError,
    TransferNotFoundError,
    TransferValidationError,
    UnsupportedSyncDirectionError,
)
from bucketsync.domain.management_models import (
    SyncJobCreateRequest,
    SyncJobListResponse,
    SyncJobResponse,
    SyncJobUpdateRequest,
    TransferDestination,
    TransferJobResponse,
    TransferListResponse,
    TransferObject,
    TransferProgressSnapshot,
    TransferRequest,
)
from bucketsync.domain.ports import (
    AccountDirectory,
    ActivityRecorder,
    StorageBackend,
    SyncEventPublisher,
    SyncJobRepository,
)
from bucketsync.domain.sync_types import (
    AccessMode,
    ActivityStatus,
    SyncDirection,
    SyncJobStatus,
    TransferStatus,
    TransferStrategy,
    TransferType,
)

__all__ = [
    "AccessMode",
    "Account",
    "AccountDirectory",
    "AccountNotFoundError",
    "ActivityRecorder",
    "ActivityStatus",
    "JobStoreError",
    "MoveNotPermittedError",
    "ObjectRef",
    "StorageBackend",
    "StorageBackendError",
    "StorageObject",
    "SyncDirection",
    "SyncError",
    "SyncEventPublisher",
    "SyncJob",
    "SyncJobConflictError",
    "SyncJobCreateRequest",
    "SyncJobListResponse",
    "SyncJobNotFoundError",
    "SyncJobRepository",
    "SyncJobResponse",
    "SyncJobStatus",
    "SyncJobUpdateRequest",
    "SyncJobValidationError",
    "SyncStats",
    "TransferDestination",
    "TransferError",
    "TransferJob",
    "TransferJobResponse",
    "TransferListResponse",
    "TransferNotFoundError",
    "TransferObject",
    "TransferProgressSnapshot",
    "TransferRequest",
    "TransferStatus",
    "TransferStrategy",
    "TransferType",
    "TransferValidationError",
    "UnsupportedSyncDirectionError",
]
