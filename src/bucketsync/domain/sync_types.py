"""Sync and transfer enums and state helpers."""

from enum import StrEnum

from bucketsync.domain.errors import SyncJobValidationError, UnsupportedSyncDirectionError


class SyncJobStatus(StrEnum):
    """Sync job lifecycle states."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class SyncDirection(StrEnum):
    """Reconciliation direction."""

    UPLOAD = "upload"
    DOWNLOAD = "download"


class TransferType(StrEnum):
    """Ad-hoc transfer kind."""

    COPY = "copy"
    MOVE = "move"


class TransferStatus(StrEnum):
    """Transfer job lifecycle states."""

    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


class TransferStrategy(StrEnum):
    """How one (source, destination) pair is executed."""

    IN_PLACE = "in_place"
    SERVER_SIDE = "server_side"
    STREAMING = "streaming"


class AccessMode(StrEnum):
    """Account write permission."""

    READ_WRITE = "read-write"
    READ_ONLY = "read-only"


class ActivityStatus(StrEnum):
    """Outcome recorded in the activity log."""

    SUCCESS = "success"
    FAILED = "failed"


EXECUTABLE_SYNC_DIRECTIONS = frozenset({SyncDirection.UPLOAD})
FINISHED_TRANSFER_STATUSES = frozenset({TransferStatus.DONE, TransferStatus.FAILED})

_DIRECTION_ALIASES = {
    "up": SyncDirection.UPLOAD,
    "upload": SyncDirection.UPLOAD,
    "down": SyncDirection.DOWNLOAD,
    "download": SyncDirection.DOWNLOAD,
}


def parse_sync_direction(value: str) -> SyncDirection:
    """Accept both `upload`/`download` and the short `up`/`down` spellings."""

    direction = _DIRECTION_ALIASES.get(value.strip().lower())
    if direction is None:
        raise SyncJobValidationError(f"Unknown sync direction '{value}'.")
    return direction


def ensure_executable_direction(direction: SyncDirection) -> None:
    """Reject directions that are stored but not runnable yet."""

    if direction not in EXECUTABLE_SYNC_DIRECTIONS:
        raise UnsupportedSyncDirectionError(
            f"Sync direction '{direction.value}' is not supported yet."
        )


__all__ = [
    "AccessMode",
    "ActivityStatus",
    "EXECUTABLE_SYNC_DIRECTIONS",
    "FINISHED_TRANSFER_STATUSES",
    "SyncDirection",
    "SyncJobStatus",
    "TransferStatus",
    "TransferStrategy",
    "TransferType",
    "ensure_executable_direction",
    "parse_sync_direction",
]
