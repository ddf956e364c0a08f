"""JSON file repository implementation for sync jobs."""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any

from bucketsync.domain.entities import SyncJob
from bucketsync.domain.errors import JobStoreError
from bucketsync.domain.ports import SyncJobRepository
from bucketsync.infrastructure.repositories.sync_job_records import (
    job_from_record,
    job_to_record,
)


class JsonFileSyncJobRepository(SyncJobRepository):
    """Sync jobs persisted as one JSON document.

    The document is `{"syncJobs": [...]}`. Replacement writes a sibling temp
    file and swaps it in with `os.replace`, so readers never observe a
    partially written store.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    async def list_jobs(self) -> list[SyncJob]:
        """Return all jobs in file order."""

        async with self._lock:
            return await asyncio.to_thread(self._read)

    async def get_job(self, job_id: str) -> SyncJob | None:
        """Return one job by id."""

        for job in await self.list_jobs():
            if job.job_id == job_id:
                return job
        return None

    async def replace_all(self, jobs: list[SyncJob]) -> None:
        """Atomically rewrite the file."""

        document = {"syncJobs": [job_to_record(job) for job in jobs]}
        async with self._lock:
            await asyncio.to_thread(self._write, document)

    def _read(self) -> list[SyncJob]:
        if not self._path.exists():
            return []
        try:
            document = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise JobStoreError(f"Cannot read sync job store {self._path}: {exc}") from exc

        records = self._records(document)
        return [job_from_record(record) for record in records]

    def _records(self, document: object) -> list[dict[str, Any]]:
        if isinstance(document, list):
            records = document
        elif isinstance(document, dict):
            records = document.get("syncJobs", [])
        else:
            raise JobStoreError(f"Unexpected sync job store layout in {self._path}.")
        if not isinstance(records, list) or not all(isinstance(item, dict) for item in records):
            raise JobStoreError(f"Sync job store {self._path} must hold a list of objects.")
        return records

    def _write(self, document: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        descriptor, temp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.",
            suffix=".tmp",
            dir=self._path.parent,
        )
        try:
            with os.fdopen(descriptor, "w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, self._path)
        except OSError as exc:
            Path(temp_name).unlink(missing_ok=True)
            raise JobStoreError(f"Cannot write sync job store {self._path}: {exc}") from exc


__all__ = ["JsonFileSyncJobRepository"]
