"""Storage backend implementations."""

from bucketsync.infrastructure.storage.s3_storage_backend import (
    LocalFile,
    S3Client,
    S3StorageBackend,
    walk_local_files,
)

__all__ = ["LocalFile", "S3Client", "S3StorageBackend", "walk_local_files"]
