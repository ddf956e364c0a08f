"""Sync and transfer event publisher implementations."""

from bucketsync.infrastructure.events.mqtt_sync_event_publisher import MqttSyncEventPublisher
from bucketsync.infrastructure.events.noop_sync_event_publisher import NoopSyncEventPublisher

__all__ = ["MqttSyncEventPublisher", "NoopSyncEventPublisher"]
