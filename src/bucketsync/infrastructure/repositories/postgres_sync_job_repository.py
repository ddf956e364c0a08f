"""PostgreSQL repository implementation for sync jobs."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import asyncpg  # type: ignore[import-untyped]

from bucketsync.domain.entities import SyncJob
from bucketsync.domain.errors import JobStoreError, SyncJobValidationError
from bucketsync.domain.ports import SyncJobRepository
from bucketsync.domain.sync_types import SyncJobStatus, parse_sync_direction
from bucketsync.infrastructure.repositories.sync_job_records import (
    stats_from_record,
    stats_to_record,
)

_SELECT_COLUMNS = """
    job_id,
    name,
    account_id,
    bucket,
    local_path,
    remote_path,
    direction,
    mirror_sync,
    interval_seconds,
    status,
    last_run,
    next_run,
    last_stats
"""


class PostgresSyncJobRepository(SyncJobRepository):
    """Sync job repository backed by PostgreSQL."""

    def __init__(
        self,
        dsn: str,
        min_pool_size: int = 1,
        max_pool_size: int = 10,
    ) -> None:
        self._dsn = dsn
        self._min_pool_size = min_pool_size
        self._max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None
        self._pool_lock = asyncio.Lock()

    async def list_jobs(self) -> list[SyncJob]:
        """Return all jobs in storage order."""

        pool = await self._get_pool()
        rows = await pool.fetch(
            f"SELECT {_SELECT_COLUMNS} FROM sync_jobs ORDER BY position ASC",
        )
        return [self._to_entity(row) for row in rows]

    async def get_job(self, job_id: str) -> SyncJob | None:
        """Return by job id."""

        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"SELECT {_SELECT_COLUMNS} FROM sync_jobs WHERE job_id = $1",
            job_id,
        )
        if row is None:
            return None
        return self._to_entity(row)

    async def replace_all(self, jobs: list[SyncJob]) -> None:
        """Replace the whole collection in one transaction."""

        pool = await self._get_pool()
        async with pool.acquire() as connection:
            async with connection.transaction():
                await connection.execute("DELETE FROM sync_jobs")
                await connection.executemany(
                    """
                    INSERT INTO sync_jobs (
                        job_id,
                        position,
                        name,
                        account_id,
                        bucket,
                        local_path,
                        remote_path,
                        direction,
                        mirror_sync,
                        interval_seconds,
                        status,
                        last_run,
                        next_run,
                        last_stats
                    ) VALUES (
                        $1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14::jsonb
                    )
                    """,
                    [self._to_row(position, job) for position, job in enumerate(jobs)],
                )

    async def close(self) -> None:
        """Close the pool if it was initialized."""

        pool = self._pool
        self._pool = None
        if pool is not None:
            await pool.close()

    async def _get_pool(self) -> asyncpg.Pool:
        if self._pool is not None:
            return self._pool

        async with self._pool_lock:
            if self._pool is None:
                pool = await asyncpg.create_pool(
                    dsn=self._dsn,
                    min_size=self._min_pool_size,
                    max_size=self._max_pool_size,
                )
                await self._ensure_schema(pool)
                self._pool = pool
        assert self._pool is not None
        return self._pool

    async def _ensure_schema(self, pool: asyncpg.Pool) -> None:
        await pool.execute(
            """
            CREATE TABLE IF NOT EXISTS sync_jobs (
                job_id TEXT PRIMARY KEY,
                position INTEGER NOT NULL,
                name TEXT NOT NULL,
                account_id TEXT NOT NULL,
                bucket TEXT NOT NULL,
                local_path TEXT NOT NULL,
                remote_path TEXT NOT NULL DEFAULT '',
                direction TEXT NOT NULL,
                mirror_sync BOOLEAN NOT NULL DEFAULT FALSE,
                interval_seconds INTEGER NOT NULL DEFAULT 0,
                status TEXT NOT NULL,
                last_run TIMESTAMPTZ,
                next_run TIMESTAMPTZ,
                last_stats JSONB
            );
            """
        )

    def _to_row(self, position: int, job: SyncJob) -> tuple[Any, ...]:
        stats = stats_to_record(job.last_stats)
        return (
            job.job_id,
            position,
            job.name,
            job.account_id,
            job.bucket,
            job.local_path,
            job.remote_path,
            job.direction.value,
            job.mirror_sync,
            job.interval_seconds,
            job.status.value,
            job.last_run,
            job.next_run,
            None if stats is None else json.dumps(stats),
        )

    def _to_entity(self, row: asyncpg.Record) -> SyncJob:
        try:
            return SyncJob(
                job_id=str(row["job_id"]),
                name=str(row["name"]),
                account_id=str(row["account_id"]),
                bucket=str(row["bucket"]),
                local_path=str(row["local_path"]),
                remote_path=str(row["remote_path"]),
                direction=parse_sync_direction(str(row["direction"])),
                mirror_sync=bool(row["mirror_sync"]),
                interval_seconds=int(row["interval_seconds"]),
                status=SyncJobStatus(str(row["status"])),
                last_run=row["last_run"],
                next_run=row["next_run"],
                last_stats=stats_from_record(self._decode_json_field(row["last_stats"])),
            )
        except (ValueError, SyncJobValidationError) as exc:
            raise JobStoreError(f"Malformed sync job row: {exc}") from exc

    def _decode_json_field(self, value: object) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            return json.loads(value)
        return value


__all__ = ["PostgresSyncJobRepository"]
