"""Dependency providers for FastAPI routes."""

from functools import lru_cache

from bucketsync.application.services import SyncJobService, SyncScheduler, TransferOrchestrator
from bucketsync.bootstrap import BucketSyncApplication, build_application
from bucketsync.config import Settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return singleton settings."""

    return Settings()


@lru_cache(maxsize=1)
def get_application() -> BucketSyncApplication:
    """Return singleton service graph."""

    return build_application(get_settings())


def get_sync_job_service() -> SyncJobService:
    return get_application().job_service


def get_sync_scheduler() -> SyncScheduler:
    return get_application().scheduler


def get_transfer_orchestrator() -> TransferOrchestrator:
    return get_application().orchestrator


__all__ = [
    "get_application",
    "get_settings",
    "get_sync_job_service",
    "get_sync_scheduler",
    "get_transfer_orchestrator",
]
