"""boto3-backed storage backend for folder sync and bucket transfers."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from collections.abc import Awaitable, Callable, Sequence
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, TypeVar, cast

from bucketsync.domain.entities import Account, StorageObject, SyncStats
from bucketsync.domain.errors import StorageBackendError
from bucketsync.domain.management_models import TransferProgressSnapshot
from bucketsync.domain.object_keys import normalize_prefix, relative_key
from bucketsync.domain.ports import ProgressCallback, StorageBackend
from bucketsync.domain.sync_types import SyncDirection, ensure_executable_direction

logger = logging.getLogger(__name__)

_MIN_MULTIPART_SIZE_MB = 5
_DEFAULT_MULTIPART_THRESHOLD_MB = 5
_DEFAULT_MULTIPART_PART_SIZE_MB = 5
_DEFAULT_UPLOAD_CONCURRENCY = 5

_T = TypeVar("_T")


class S3Client(Protocol):
    """Subset of S3 client operations used by the storage backend."""

    def list_objects_v2(self, **kwargs: Any) -> dict[str, Any]:
        """Return one page of object listings."""

    def head_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        """Return object metadata."""

    def get_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        """Open an object body stream."""

    def put_object(self, *, Bucket: str, Key: str, Body: Any) -> dict[str, Any]:
        """Write an object in a single request."""

    def copy_object(self, *, Bucket: str, Key: str, CopySource: dict[str, str]) -> dict[str, Any]:
        """Copy an object server-side."""

    def delete_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        """Delete one object."""

    def create_multipart_upload(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        """Start multipart upload."""

    def upload_part(
        self,
        *,
        Bucket: str,
        Key: str,
        UploadId: str,
        PartNumber: int,
        Body: bytes,
    ) -> dict[str, Any]:
        """Upload one multipart segment."""

    def complete_multipart_upload(
        self,
        *,
        Bucket: str,
        Key: str,
        UploadId: str,
        MultipartUpload: dict[str, list[dict[str, str | int]]],
    ) -> dict[str, Any]:
        """Finalize multipart upload."""

    def abort_multipart_upload(self, *, Bucket: str, Key: str, UploadId: str) -> dict[str, Any]:
        """Abort multipart upload."""


@dataclass(slots=True, frozen=True)
class LocalFile:
    """One regular file found under a sync root."""

    relative_path: str
    path: Path
    size: int


@dataclass(slots=True, frozen=True)
class _FileOutcome:
    bytes_transferred: int = 0
    error: str | None = None


class S3StorageBackend(StorageBackend):
    """Storage adapter over S3-compatible endpoints.

    - `reconcile` uploads new or resized local files and, in mirror mode,
      deletes remote keys that no longer exist locally.
    - `stream_transfer_object` relays bytes between two endpoints, using
      multipart upload above the configured threshold.
    - Blocking boto3 calls run in worker threads.
    """

    def __init__(
        self,
        default_region: str = "us-east-1",
        multipart_threshold_mb: int = _DEFAULT_MULTIPART_THRESHOLD_MB,
        multipart_part_size_mb: int = _DEFAULT_MULTIPART_PART_SIZE_MB,
        upload_concurrency: int = _DEFAULT_UPLOAD_CONCURRENCY,
        max_pool_connections: int = 16,
        s3_client_factory: Callable[[Account], S3Client] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_region = default_region
        part_size_mb = max(_MIN_MULTIPART_SIZE_MB, multipart_part_size_mb)
        self._multipart_threshold_bytes = max(0, multipart_threshold_mb) * 1024 * 1024
        self._multipart_part_size_bytes = part_size_mb * 1024 * 1024
        self._upload_concurrency = max(1, upload_concurrency)
        self._max_pool_connections = max(1, max_pool_connections)
        self._s3_client_factory = s3_client_factory or self._build_default_s3_client
        self._clients: dict[Account, S3Client] = {}
        self._clock = clock

    async def reconcile(
        self,
        account: Account,
        bucket: str,
        local_path: str,
        remote_path: str,
        direction: SyncDirection,
        mirror: bool,
    ) -> SyncStats:
        """Push a local folder into `remote_path`.

        Files are uploaded when missing remotely or when sizes differ. Per-file
        failures are collected in `SyncStats.errors`; listing failures and a
        missing local folder raise `StorageBackendError`.
        """

        ensure_executable_direction(direction)
        client = self._client_for(account)
        prefix = normalize_prefix(remote_path)
        root = Path(local_path)

        remote_sizes = await self._remote_sizes(client, bucket, prefix)
        local_files = await asyncio.to_thread(walk_local_files, root)
        stats = SyncStats(files_scanned=len(local_files))

        pending = [
            local_file
            for local_file in local_files
            if remote_sizes.get(local_file.relative_path) != local_file.size
        ]
        semaphore = asyncio.Semaphore(self._upload_concurrency)
        uploads = await asyncio.gather(
            *[
                self._bounded(
                    semaphore,
                    self._upload_local_file(client, bucket, f"{prefix}{item.relative_path}", item),
                )
                for item in pending
            ]
        )
        self._merge_outcomes(stats, uploads)

        if mirror:
            stale = await asyncio.to_thread(_missing_locally, root, list(remote_sizes))
            deletes = await asyncio.gather(
                *[
                    self._bounded(
                        semaphore,
                        self._delete_remote(client, bucket, f"{prefix}{relative}"),
                    )
                    for relative in stale
                ]
            )
            self._merge_outcomes(stats, deletes)

        logger.info(
            "Reconciled %s into %s/%s: scanned=%s transferred=%s errors=%s",
            local_path,
            bucket,
            prefix,
            stats.files_scanned,
            stats.files_transferred,
            len(stats.errors),
        )
        return stats

    async def copy_object_server_side(
        self,
        account: Account,
        source_bucket: str,
        source_key: str,
        destination_bucket: str,
        destination_key: str,
    ) -> None:
        client = self._client_for(account)
        await self._call(
            f"Copy {source_bucket}/{source_key} to {destination_bucket}/{destination_key}",
            client.copy_object,
            Bucket=destination_bucket,
            Key=destination_key,
            CopySource={"Bucket": source_bucket, "Key": source_key},
        )

    async def stream_transfer_object(
        self,
        source_account: Account,
        source_bucket: str,
        source_key: str,
        destination_account: Account,
        destination_bucket: str,
        destination_key: str,
        progress_callback: ProgressCallback | None = None,
    ) -> int:
        """Relay one object between endpoints and return bytes written.

        Objects larger than the multipart threshold are uploaded part by part
        with a progress report after each part. Smaller objects are written
        with one put and report progress once, on completion.
        """

        source_client = self._client_for(source_account)
        destination_client = self._client_for(destination_account)

        head = await self._call(
            f"Read metadata of {source_bucket}/{source_key}",
            source_client.head_object,
            Bucket=source_bucket,
            Key=source_key,
        )
        total_size = int(head.get("ContentLength") or 0)
        response = await self._call(
            f"Open {source_bucket}/{source_key}",
            source_client.get_object,
            Bucket=source_bucket,
            Key=source_key,
        )
        body = response["Body"]
        started = self._clock()

        if total_size > self._multipart_threshold_bytes:
            return await self._stream_multipart(
                destination_client,
                destination_bucket,
                destination_key,
                body,
                total_size,
                started,
                progress_callback,
            )

        payload = await self._call(f"Read {source_bucket}/{source_key}", body.read)
        await self._call(
            f"Write {destination_bucket}/{destination_key}",
            destination_client.put_object,
            Bucket=destination_bucket,
            Key=destination_key,
            Body=payload,
        )
        written = len(payload)
        if progress_callback is not None:
            elapsed = max(self._clock() - started, 0.1)
            await progress_callback(
                TransferProgressSnapshot(
                    bytes_transferred=written,
                    total_bytes=total_size or written,
                    speed=written / elapsed,
                    finished=True,
                )
            )
        return written

    async def list_objects(self, account: Account, bucket: str, prefix: str) -> list[StorageObject]:
        """List all keys under `prefix` (no delimiter), following pagination."""

        client = self._client_for(account)
        objects: list[StorageObject] = []
        continuation_token: str | None = None
        while True:
            request: dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
            if continuation_token is not None:
                request["ContinuationToken"] = continuation_token
            page = await self._call(f"List {bucket}/{prefix}", client.list_objects_v2, **request)
            for item in page.get("Contents", []):
                key = str(item["Key"])
                objects.append(
                    StorageObject(
                        key=key,
                        size=int(item.get("Size") or 0),
                        last_modified=item.get("LastModified"),
                        is_folder=key.endswith("/"),
                    )
                )
            if not page.get("IsTruncated"):
                return objects
            continuation_token = page.get("NextContinuationToken")

    async def rename_object(
        self,
        account: Account,
        bucket: str,
        source_key: str,
        destination_key: str,
    ) -> None:
        """Copy then delete; folders move every key below the source prefix."""

        if not source_key.endswith("/"):
            await self.copy_object_server_side(account, bucket, source_key, bucket, destination_key)
            await self.delete_object(account, bucket, source_key)
            return

        target_prefix = normalize_prefix(destination_key)
        for item in await self.list_objects(account, bucket, source_key):
            target = f"{target_prefix}{relative_key(item.key, source_key)}"
            await self.copy_object_server_side(account, bucket, item.key, bucket, target)
            await self.delete_object(account, bucket, item.key)

    async def delete_object(self, account: Account, bucket: str, key: str) -> None:
        client = self._client_for(account)
        await self._call(f"Delete {bucket}/{key}", client.delete_object, Bucket=bucket, Key=key)

    async def _stream_multipart(
        self,
        client: S3Client,
        bucket: str,
        key: str,
        body: Any,
        total_size: int,
        started: float,
        progress_callback: ProgressCallback | None,
    ) -> int:
        response = await self._call(
            f"Start multipart upload of {bucket}/{key}",
            client.create_multipart_upload,
            Bucket=bucket,
            Key=key,
        )
        upload_id = response.get("UploadId")
        if not isinstance(upload_id, str) or not upload_id:
            raise StorageBackendError("create_multipart_upload did not return UploadId")

        completed_parts: list[dict[str, str | int]] = []
        transferred = 0
        try:
            part_number = 1
            while True:
                chunk = await self._call(
                    f"Read part {part_number} for {bucket}/{key}",
                    body.read,
                    self._multipart_part_size_bytes,
                )
                if not chunk:
                    break
                part = await self._call(
                    f"Upload part {part_number} of {bucket}/{key}",
                    client.upload_part,
                    Bucket=bucket,
                    Key=key,
                    UploadId=upload_id,
                    PartNumber=part_number,
                    Body=chunk,
                )
                completed_parts.append({"PartNumber": part_number, "ETag": str(part.get("ETag", ""))})
                transferred += len(chunk)
                part_number += 1
                if progress_callback is not None:
                    elapsed = self._clock() - started
                    await progress_callback(
                        TransferProgressSnapshot(
                            bytes_transferred=transferred,
                            total_bytes=total_size,
                            speed=transferred / elapsed if elapsed > 0 else 0.0,
                            finished=False,
                        )
                    )

            await self._call(
                f"Complete multipart upload of {bucket}/{key}",
                client.complete_multipart_upload,
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={"Parts": completed_parts},
            )
        except Exception:
            with suppress(Exception):
                await asyncio.to_thread(
                    client.abort_multipart_upload,
                    Bucket=bucket,
                    Key=key,
                    UploadId=upload_id,
                )
            raise
        return transferred

    async def _remote_sizes(self, client: S3Client, bucket: str, prefix: str) -> dict[str, int]:
        """Map of keys relative to `prefix` to their sizes."""

        sizes: dict[str, int] = {}
        continuation_token: str | None = None
        while True:
            request: dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
            if continuation_token is not None:
                request["ContinuationToken"] = continuation_token
            page = await self._call(f"List {bucket}/{prefix}", client.list_objects_v2, **request)
            for item in page.get("Contents", []):
                relative = relative_key(str(item["Key"]), prefix)
                if relative:
                    sizes[relative] = int(item.get("Size") or 0)
            if not page.get("IsTruncated"):
                return sizes
            continuation_token = page.get("NextContinuationToken")

    async def _upload_local_file(
        self,
        client: S3Client,
        bucket: str,
        key: str,
        local_file: LocalFile,
    ) -> _FileOutcome:
        try:
            await asyncio.to_thread(_put_file, client, bucket, key, local_file.path)
        except Exception as exc:  # noqa: BLE001
            return _FileOutcome(error=f"Upload failed for {key}: {exc}")
        return _FileOutcome(bytes_transferred=local_file.size)

    async def _delete_remote(self, client: S3Client, bucket: str, key: str) -> _FileOutcome:
        try:
            await asyncio.to_thread(client.delete_object, Bucket=bucket, Key=key)
        except Exception as exc:  # noqa: BLE001
            return _FileOutcome(error=f"Delete failed for {key}: {exc}")
        return _FileOutcome()

    async def _bounded(self, semaphore: asyncio.Semaphore, work: Awaitable[_T]) -> _T:
        async with semaphore:
            return await work

    def _merge_outcomes(self, stats: SyncStats, outcomes: Sequence[_FileOutcome]) -> None:
        for outcome in outcomes:
            if outcome.error is not None:
                stats.errors.append(outcome.error)
                continue
            stats.files_transferred += 1
            stats.bytes_transferred += outcome.bytes_transferred

    async def _call(self, action: str, function: Callable[..., _T], *args: Any, **kwargs: Any) -> _T:
        """Run one blocking client call in a thread, wrapping its failures."""

        try:
            return await asyncio.to_thread(function, *args, **kwargs)
        except StorageBackendError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise StorageBackendError(f"{action} failed: {exc}") from exc

    def _client_for(self, account: Account) -> S3Client:
        client = self._clients.get(account)
        if client is None:
            client = self._s3_client_factory(account)
            self._clients[account] = client
        return client

    def _build_default_s3_client(self, account: Account) -> S3Client:
        """Create a boto3 S3 client lazily to avoid import-time hard dependency."""

        import boto3  # type: ignore[import-not-found]
        from botocore.config import Config  # type: ignore[import-not-found]

        options: dict[str, Any] = {
            "region_name": account.region or self._default_region,
            "config": Config(max_pool_connections=self._max_pool_connections),
        }
        if account.normalized_endpoint:
            options["endpoint_url"] = account.endpoint.strip()
            options["config"] = Config(
                max_pool_connections=self._max_pool_connections,
                s3={"addressing_style": "path"},
            )
        if account.access_key_id and account.secret_access_key:
            options["aws_access_key_id"] = account.access_key_id.strip()
            options["aws_secret_access_key"] = account.secret_access_key.strip()
        client = boto3.client("s3", **options)
        return cast(S3Client, client)


def walk_local_files(root: Path) -> list[LocalFile]:
    """Regular files below `root` with POSIX-style relative paths, sorted."""

    if not root.is_dir():
        raise StorageBackendError(f"Local folder {root} does not exist or is not a directory.")

    files: list[LocalFile] = []
    for directory, subdirectories, filenames in os.walk(root):
        subdirectories.sort()
        for filename in sorted(filenames):
            path = Path(directory) / filename
            try:
                if not path.is_file():
                    continue
                size = path.stat().st_size
            except OSError:
                continue
            files.append(
                LocalFile(
                    relative_path=path.relative_to(root).as_posix(),
                    path=path,
                    size=size,
                )
            )
    return files


def _missing_locally(root: Path, relative_paths: list[str]) -> list[str]:
    return [relative for relative in relative_paths if not (root / relative).exists()]


def _put_file(client: S3Client, bucket: str, key: str, path: Path) -> None:
    with path.open("rb") as handle:
        client.put_object(Bucket=bucket, Key=key, Body=handle)


__all__ = ["LocalFile", "S3Client", "S3StorageBackend", "walk_local_files"]
