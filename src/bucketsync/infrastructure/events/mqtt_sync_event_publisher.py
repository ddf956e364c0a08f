"""MQTT sync job and transfer event publisher."""

from __future__ import annotations

import asyncio
import json
import time
from datetime import UTC, datetime
from typing import Any

from bucketsync.domain.entities import SyncJob, TransferJob
from bucketsync.domain.ports import SyncEventPublisher


class MqttSyncEventPublisher(SyncEventPublisher):
    """Publish sync job state and transfer progress events to MQTT topics."""

    def __init__(
        self,
        broker_host: str,
        broker_port: int = 1883,
        topic_prefix: str = "bucketsync",
        qos: int = 0,
        username: str | None = None,
        password: str | None = None,
        client_id: str = "bucketsync",
    ) -> None:
        if not broker_host.strip():
            raise ValueError("broker_host cannot be empty.")
        if qos not in {0, 1, 2}:
            raise ValueError("qos must be one of 0, 1, 2.")

        self._topic_prefix = topic_prefix.strip().strip("/")
        self._qos = qos

        import paho.mqtt.client as mqtt  # type: ignore[import-untyped]

        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
        )
        if username is not None:
            client.username_pw_set(username=username, password=password)
        self._connect_with_retry(
            client=client,
            broker_host=broker_host,
            broker_port=broker_port,
        )
        client.loop_start()
        self._client = client

    async def publish_sync_job(self, job: SyncJob) -> None:
        payload: dict[str, object] = {
            "eventType": "state",
            "timestamp": self._timestamp(),
            "jobId": job.job_id,
            "name": job.name,
            "accountId": job.account_id,
            "bucket": job.bucket,
            "status": job.status.value,
            "lastRun": None if job.last_run is None else job.last_run.isoformat(),
            "nextRun": None if job.next_run is None else job.next_run.isoformat(),
        }
        if job.last_stats is not None:
            payload["lastStats"] = {
                "filesScanned": job.last_stats.files_scanned,
                "filesTransferred": job.last_stats.files_transferred,
                "bytesTransferred": job.last_stats.bytes_transferred,
                "errors": list(job.last_stats.errors),
            }
        await self._publish(f"{self._topic_prefix}/sync-jobs/{job.job_id}/state", payload)

    async def publish_transfer(self, job: TransferJob) -> None:
        payload: dict[str, object] = {
            "eventType": "progress",
            "timestamp": self._timestamp(),
            "transferId": job.transfer_id,
            "type": job.transfer_type.value,
            "name": job.name,
            "sourceAccountId": job.source.account_id,
            "sourceBucket": job.source.bucket,
            "sourceKey": job.source.key,
            "destAccountId": job.destination.account_id,
            "destBucket": job.destination.bucket,
            "destKey": job.destination.key,
            "status": job.status.value,
            "strategy": None if job.strategy is None else job.strategy.value,
            "progress": job.progress,
            "bytesTransferred": job.bytes_transferred,
            "totalBytes": job.total_bytes,
            "speed": job.speed,
            "error": job.error,
        }
        await self._publish(
            f"{self._topic_prefix}/transfers/{job.transfer_id}/progress",
            payload,
        )

    async def _publish(self, topic: str, payload: dict[str, object]) -> None:
        message = json.dumps(payload, separators=(",", ":"))
        await asyncio.to_thread(self._client.publish, topic, message, self._qos)

    def _timestamp(self) -> str:
        return datetime.now(tz=UTC).isoformat()

    def _connect_with_retry(
        self,
        client: Any,
        broker_host: str,
        broker_port: int,
        max_attempts: int = 20,
    ) -> None:
        """Connect to MQTT broker with bounded retry/backoff."""

        delay_seconds = 0.5
        last_error: Exception | None = None
        for attempt in range(1, max_attempts + 1):
            try:
                client.connect(host=broker_host, port=broker_port, keepalive=60)
                return
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                if attempt == max_attempts:
                    break
                time.sleep(delay_seconds)
                delay_seconds = min(3.0, delay_seconds * 1.5)

        raise RuntimeError(
            f"Failed to connect to MQTT broker {broker_host}:{broker_port} "
            f"after {max_attempts} attempts."
        ) from last_error


__all__ = ["MqttSyncEventPublisher"]
