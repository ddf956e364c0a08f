"""Sync job repository implementations."""

from bucketsync.infrastructure.repositories.in_memory_sync_job_repository import (
    InMemorySyncJobRepository,
)
from bucketsync.infrastructure.repositories.json_file_sync_job_repository import (
    JsonFileSyncJobRepository,
)
from bucketsync.infrastructure.repositories.postgres_sync_job_repository import (
    PostgresSyncJobRepository,
)

__all__ = [
    "InMemorySyncJobRepository",
    "JsonFileSyncJobRepository",
    "PostgresSyncJobRepository",
]
