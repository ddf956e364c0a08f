"""Domain exceptions for sync jobs and transfers."""


class SyncError(Exception):
    """Base class for sync and transfer errors."""


class SyncJobNotFoundError(SyncError):
    """Raised when a sync job cannot be found."""


class SyncJobConflictError(SyncError):
    """Raised when an operation conflicts with current scheduler state."""


class SyncJobValidationError(SyncError):
    """Raised when sync job input is invalid."""


class UnsupportedSyncDirectionError(SyncJobValidationError):
    """Raised when a sync job direction cannot be executed."""


class AccountNotFoundError(SyncError):
    """Raised when a referenced storage account is not known."""


class TransferError(SyncError):
    """Base class for transfer orchestration errors."""


class TransferNotFoundError(TransferError):
    """Raised when a transfer job cannot be found."""


class TransferValidationError(TransferError):
    """Raised when a transfer request is rejected before execution."""


class MoveNotPermittedError(TransferValidationError):
    """Raised when a move would have to delete the source outside its bucket."""


class StorageBackendError(SyncError):
    """Raised when the storage backend reports a failure."""


class JobStoreError(SyncError):
    """Raised when the job store cannot be read or written."""


__all__ = [
    "AccountNotFoundError",
    "JobStoreError",
    "MoveNotPermittedError",
    "StorageBackendError",
    "SyncError",
    "SyncJobConflictError",
    "SyncJobNotFoundError",
    "SyncJobValidationError",
    "TransferError",
    "TransferNotFoundError",
    "TransferValidationError",
    "UnsupportedSyncDirectionError",
]
