"""Application services public API."""

from bucketsync.application.services.sync_job_service import SyncJobService
from bucketsync.application.services.sync_job_store import SyncJobStore
from bucketsync.application.services.sync_scheduler import INTERRUPTED_JOB_MESSAGE, SyncScheduler
from bucketsync.application.services.transfer_orchestrator import (
    TransferListener,
    TransferOrchestrator,
)

__all__ = [
    "INTERRUPTED_JOB_MESSAGE",
    "SyncJobService",
    "SyncJobStore",
    "SyncScheduler",
    "TransferListener",
    "TransferOrchestrator",
]
