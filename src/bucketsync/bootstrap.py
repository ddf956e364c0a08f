"""Application bootstrap/wiring."""

import logging
from dataclasses import dataclass

from bucketsync.application.services import (
    SyncJobService,
    SyncJobStore,
    SyncScheduler,
    TransferOrchestrator,
)
from bucketsync.config import JobStoreBackend, Settings
from bucketsync.domain.ports import (
    AccountDirectory,
    ActivityRecorder,
    SyncEventPublisher,
    SyncJobRepository,
)
from bucketsync.infrastructure.accounts import JsonFileAccountDirectory, StaticAccountDirectory
from bucketsync.infrastructure.activity import HttpActivityRecorder, NoopActivityRecorder
from bucketsync.infrastructure.events import MqttSyncEventPublisher, NoopSyncEventPublisher
from bucketsync.infrastructure.repositories import (
    InMemorySyncJobRepository,
    JsonFileSyncJobRepository,
    PostgresSyncJobRepository,
)
from bucketsync.infrastructure.storage import S3StorageBackend

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class BucketSyncApplication:
    """Composed service graph shared by the API and the lifespan hooks."""

    repository: SyncJobRepository
    account_directory: AccountDirectory
    scheduler: SyncScheduler
    orchestrator: TransferOrchestrator
    job_service: SyncJobService

    async def startup(self, scheduler_enabled: bool = True) -> None:
        if scheduler_enabled:
            await self.scheduler.startup()

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()
        await self.orchestrator.shutdown()
        if isinstance(self.repository, PostgresSyncJobRepository):
            await self.repository.close()


def _build_repository(settings: Settings) -> SyncJobRepository:
    if settings.job_store_backend == JobStoreBackend.POSTGRES:
        if settings.postgres_dsn is None:
            raise ValueError(
                "BUCKETSYNC_POSTGRES_DSN is required when BUCKETSYNC_JOB_STORE_BACKEND=postgres."
            )
        return PostgresSyncJobRepository(
            dsn=settings.postgres_dsn,
            min_pool_size=settings.postgres_pool_min_size,
            max_pool_size=settings.postgres_pool_max_size,
        )
    if settings.job_store_backend == JobStoreBackend.JSON_FILE:
        return JsonFileSyncJobRepository(settings.job_store_path)
    return InMemorySyncJobRepository()


def _build_account_directory(settings: Settings) -> AccountDirectory:
    if settings.accounts_file:
        return JsonFileAccountDirectory(settings.accounts_file)
    logger.warning(
        "BUCKETSYNC_ACCOUNTS_FILE is not set; no storage accounts are configured."
    )
    return StaticAccountDirectory()


def _build_activity_recorder(settings: Settings) -> ActivityRecorder:
    if settings.activity_webhook_url:
        return HttpActivityRecorder(
            webhook_url=settings.activity_webhook_url,
            timeout_seconds=settings.activity_timeout_seconds,
        )
    return NoopActivityRecorder()


def _build_event_publisher(settings: Settings) -> SyncEventPublisher:
    if settings.events_mqtt_enabled:
        if settings.events_mqtt_host is None:
            raise ValueError(
                "BUCKETSYNC_EVENTS_MQTT_HOST is required when BUCKETSYNC_EVENTS_MQTT_ENABLED=true."
            )
        return MqttSyncEventPublisher(
            broker_host=settings.events_mqtt_host,
            broker_port=settings.events_mqtt_port,
            topic_prefix=settings.events_mqtt_topic_prefix,
            qos=settings.events_mqtt_qos,
            username=settings.events_mqtt_username,
            password=settings.events_mqtt_password,
        )
    return NoopSyncEventPublisher()


def build_application(settings: Settings) -> BucketSyncApplication:
    """Compose service graph."""

    repository = _build_repository(settings)
    account_directory = _build_account_directory(settings)
    activity_recorder = _build_activity_recorder(settings)
    event_publisher = _build_event_publisher(settings)
    job_store = SyncJobStore(repository)
    storage_backend = S3StorageBackend(
        default_region=settings.aws_region,
        multipart_threshold_mb=settings.s3_multipart_threshold_mb,
        multipart_part_size_mb=settings.s3_multipart_part_size_mb,
        upload_concurrency=settings.sync_upload_concurrency,
        max_pool_connections=settings.s3_max_pool_connections,
    )

    return BucketSyncApplication(
        repository=repository,
        account_directory=account_directory,
        scheduler=SyncScheduler(
            repository=repository,
            storage_backend=storage_backend,
            account_directory=account_directory,
            activity_recorder=activity_recorder,
            event_publisher=event_publisher,
            poll_seconds=settings.sync_poll_seconds,
            error_retry_seconds=settings.sync_error_retry_seconds,
            job_store=job_store,
        ),
        orchestrator=TransferOrchestrator(
            storage_backend=storage_backend,
            account_directory=account_directory,
            activity_recorder=activity_recorder,
            event_publisher=event_publisher,
            max_active_transfers=settings.max_active_transfers,
        ),
        job_service=SyncJobService(
            repository=repository,
            account_directory=account_directory,
            activity_recorder=activity_recorder,
            event_publisher=event_publisher,
            job_store=job_store,
        ),
    )


__all__ = ["BucketSyncApplication", "build_application"]
