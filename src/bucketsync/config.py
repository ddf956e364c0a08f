"""Application settings."""

from enum import StrEnum

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class JobStoreBackend(StrEnum):
    """Available persistence adapters for sync job definitions."""

    IN_MEMORY = "in_memory"
    JSON_FILE = "json_file"
    POSTGRES = "postgres"


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "BucketSync"
    api_prefix: str = ""
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "info"
    job_store_backend: JobStoreBackend = JobStoreBackend.IN_MEMORY
    job_store_path: str = "sync_jobs.json"
    postgres_dsn: str | None = None
    postgres_pool_min_size: int = 1
    postgres_pool_max_size: int = 10
    accounts_file: str | None = None
    sync_scheduler_enabled: bool = True
    sync_poll_seconds: float = 10.0
    sync_error_retry_seconds: float = 300.0
    aws_region: str = "us-east-1"
    s3_max_pool_connections: int = 16
    s3_multipart_threshold_mb: int = 5
    s3_multipart_part_size_mb: int = 5
    sync_upload_concurrency: int = 5
    max_active_transfers: int = 4
    activity_webhook_url: str | None = None
    activity_timeout_seconds: float = 5.0
    events_mqtt_enabled: bool = False
    events_mqtt_host: str | None = None
    events_mqtt_port: int = 1883
    events_mqtt_username: str | None = None
    events_mqtt_password: str | None = None
    events_mqtt_topic_prefix: str = "bucketsync"
    events_mqtt_qos: int = 0

    @model_validator(mode="after")
    def validate_backend_settings(self) -> "Settings":
        """Ensure backend-specific settings are valid."""

        if self.job_store_backend == JobStoreBackend.POSTGRES and not self.postgres_dsn:
            raise ValueError(
                "BUCKETSYNC_POSTGRES_DSN is required when BUCKETSYNC_JOB_STORE_BACKEND=postgres."
            )
        if self.job_store_backend == JobStoreBackend.JSON_FILE and not self.job_store_path.strip():
            raise ValueError(
                "BUCKETSYNC_JOB_STORE_PATH is required when BUCKETSYNC_JOB_STORE_BACKEND=json_file."
            )
        if self.postgres_pool_min_size < 1:
            raise ValueError("BUCKETSYNC_POSTGRES_POOL_MIN_SIZE must be >= 1.")
        if self.postgres_pool_max_size < self.postgres_pool_min_size:
            raise ValueError(
                "BUCKETSYNC_POSTGRES_POOL_MAX_SIZE must be >= BUCKETSYNC_POSTGRES_POOL_MIN_SIZE."
            )
        if self.sync_poll_seconds <= 0:
            raise ValueError("BUCKETSYNC_SYNC_POLL_SECONDS must be > 0.")
        if self.sync_error_retry_seconds < 0:
            raise ValueError("BUCKETSYNC_SYNC_ERROR_RETRY_SECONDS must be >= 0.")
        if self.s3_max_pool_connections < 1:
            raise ValueError("BUCKETSYNC_S3_MAX_POOL_CONNECTIONS must be >= 1.")
        if self.s3_multipart_part_size_mb < 5:
            raise ValueError("BUCKETSYNC_S3_MULTIPART_PART_SIZE_MB must be >= 5.")
        if self.s3_multipart_threshold_mb < 0:
            raise ValueError("BUCKETSYNC_S3_MULTIPART_THRESHOLD_MB must be >= 0.")
        if self.sync_upload_concurrency < 1:
            raise ValueError("BUCKETSYNC_SYNC_UPLOAD_CONCURRENCY must be >= 1.")
        if self.sync_upload_concurrency > self.s3_max_pool_connections:
            raise ValueError(
                "BUCKETSYNC_SYNC_UPLOAD_CONCURRENCY must be <= BUCKETSYNC_S3_MAX_POOL_CONNECTIONS."
            )
        if self.max_active_transfers < 1:
            raise ValueError("BUCKETSYNC_MAX_ACTIVE_TRANSFERS must be >= 1.")
        if self.activity_timeout_seconds <= 0:
            raise ValueError("BUCKETSYNC_ACTIVITY_TIMEOUT_SECONDS must be > 0.")
        if self.events_mqtt_enabled and not self.events_mqtt_host:
            raise ValueError(
                "BUCKETSYNC_EVENTS_MQTT_HOST is required when BUCKETSYNC_EVENTS_MQTT_ENABLED=true."
            )
        if self.events_mqtt_port < 1:
            raise ValueError("BUCKETSYNC_EVENTS_MQTT_PORT must be >= 1.")
        if self.events_mqtt_qos not in {0, 1, 2}:
            raise ValueError("BUCKETSYNC_EVENTS_MQTT_QOS must be one of 0, 1, 2.")
        return self

    model_config = SettingsConfigDict(env_prefix="BUCKETSYNC_", extra="ignore")


__all__ = ["JobStoreBackend", "Settings"]
