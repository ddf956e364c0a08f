"""Record mapping shared by the file and database job stores."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from bucketsync.domain.entities import SyncJob, SyncStats
from bucketsync.domain.errors import JobStoreError, SyncJobValidationError
from bucketsync.domain.sync_types import SyncJobStatus, parse_sync_direction


def stats_to_record(stats: SyncStats | None) -> dict[str, Any] | None:
    if stats is None:
        return None
    return {
        "filesScanned": stats.files_scanned,
        "filesTransferred": stats.files_transferred,
        "bytesTransferred": stats.bytes_transferred,
        "errors": list(stats.errors),
    }


def stats_from_record(record: object) -> SyncStats | None:
    if record is None:
        return None
    if not isinstance(record, dict):
        raise JobStoreError(f"Expected object for lastStats, got {type(record).__name__}.")
    errors = record.get("errors") or []
    return SyncStats(
        files_scanned=int(record.get("filesScanned", 0)),
        files_transferred=int(record.get("filesTransferred", 0)),
        bytes_transferred=int(record.get("bytesTransferred", 0)),
        errors=[str(error) for error in errors],
    )


def job_to_record(job: SyncJob) -> dict[str, Any]:
    """Serialize one job to a JSON-compatible dict."""

    return {
        "id": job.job_id,
        "name": job.name,
        "accountId": job.account_id,
        "bucket": job.bucket,
        "localPath": job.local_path,
        "remotePath": job.remote_path,
        "direction": job.direction.value,
        "mirrorSync": job.mirror_sync,
        "intervalSeconds": job.interval_seconds,
        "status": job.status.value,
        "lastRun": _format_timestamp(job.last_run),
        "nextRun": _format_timestamp(job.next_run),
        "lastStats": stats_to_record(job.last_stats),
    }


def job_from_record(record: dict[str, Any]) -> SyncJob:
    """Deserialize one job; malformed records raise `JobStoreError`."""

    try:
        return SyncJob(
            job_id=str(record["id"]),
            name=str(record.get("name") or ""),
            account_id=str(record["accountId"]),
            bucket=str(record.get("bucket") or ""),
            local_path=str(record["localPath"]),
            remote_path=str(record.get("remotePath") or ""),
            direction=parse_sync_direction(str(record.get("direction") or "upload")),
            mirror_sync=bool(record.get("mirrorSync", False)),
            interval_seconds=int(record.get("intervalSeconds", 0)),
            status=SyncJobStatus(str(record.get("status") or SyncJobStatus.IDLE.value)),
            last_run=_parse_timestamp(record.get("lastRun")),
            next_run=_parse_timestamp(record.get("nextRun")),
            last_stats=stats_from_record(record.get("lastStats")),
        )
    except JobStoreError:
        raise
    except (KeyError, TypeError, ValueError, SyncJobValidationError) as exc:
        raise JobStoreError(f"Malformed sync job record: {exc}") from exc


def _format_timestamp(value: datetime | None) -> str | None:
    return None if value is None else value.isoformat()


def _parse_timestamp(value: object) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


__all__ = ["job_from_record", "job_to_record", "stats_from_record", "stats_to_record"]
