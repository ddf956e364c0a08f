"""Infrastructure layer public API."""

from bucketsync.infrastructure.accounts import JsonFileAccountDirectory, StaticAccountDirectory
from bucketsync.infrastructure.activity import HttpActivityRecorder, NoopActivityRecorder
from bucketsync.infrastructure.events import MqttSyncEventPublisher, NoopSyncEventPublisher
from bucketsync.infrastructure.repositories import (
    InMemorySyncJobRepository,
    JsonFileSyncJobRepository,
    PostgresSyncJobRepository,
)
from bucketsync.infrastructure.storage import S3StorageBackend

__all__ = [
    "HttpActivityRecorder",
    "InMemorySyncJobRepository",
    "JsonFileAccountDirectory",
    "JsonFileSyncJobRepository",
    "MqttSyncEventPublisher",
    "NoopActivityRecorder",
    "NoopSyncEventPublisher",
    "PostgresSyncJobRepository",
    "S3StorageBackend",
    "StaticAccountDirectory",
]
