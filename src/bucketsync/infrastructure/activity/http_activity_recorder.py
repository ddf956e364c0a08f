"""HTTP webhook implementation of the activity recorder."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

import httpx
from pydantic import BaseModel, ConfigDict, Field

from bucketsync.domain.entities import Account
from bucketsync.domain.ports import ActivityRecorder
from bucketsync.domain.sync_types import ActivityStatus

logger = logging.getLogger(__name__)


class ActivityEntryMessage(BaseModel):
    """Webhook payload for one activity entry."""

    model_config = ConfigDict(populate_by_name=True)

    timestamp: datetime
    connection_id: str = Field(alias="connectionId")
    provider: str
    bucket_name: str = Field(alias="bucketName")
    action_type: str = Field(alias="actionType")
    object_path_before: str | None = Field(default=None, alias="objectPathBefore")
    object_path_after: str | None = Field(default=None, alias="objectPathAfter")
    status: ActivityStatus
    error_message: str | None = Field(default=None, alias="errorMessage")
    file_size: int | None = Field(default=None, alias="fileSize")


class HttpActivityRecorder(ActivityRecorder):
    """POST activity entries to a webhook.

    Entries are only sent for accounts with activity logging enabled. Transport
    and HTTP errors are logged and dropped so callers never fail on auditing.
    """

    def __init__(
        self,
        webhook_url: str,
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        normalized = webhook_url.strip()
        if not normalized:
            raise ValueError("webhook_url cannot be empty.")
        self._webhook_url = normalized
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def record(
        self,
        account: Account,
        action_kind: str,
        path_before: str | None = None,
        path_after: str | None = None,
        status: ActivityStatus = ActivityStatus.SUCCESS,
        error_message: str | None = None,
        byte_count: int | None = None,
    ) -> None:
        if not account.enable_activity_log:
            return

        message = ActivityEntryMessage(
            timestamp=datetime.now(tz=UTC),
            connection_id=account.account_id,
            provider=account.provider,
            bucket_name=account.bucket_name,
            action_type=action_kind,
            object_path_before=path_before,
            object_path_after=path_after,
            status=status,
            error_message=error_message,
            file_size=byte_count,
        )
        try:
            await self._post(message)
        except httpx.HTTPError as exc:
            logger.warning(
                "Failed to record activity '%s' for account '%s': %s",
                action_kind,
                account.account_id,
                exc,
            )

    async def _post(self, message: ActivityEntryMessage) -> None:
        async with httpx.AsyncClient(
            timeout=self._timeout_seconds,
            transport=self._transport,
        ) as http_client:
            response = await http_client.post(
                self._webhook_url,
                json=message.model_dump(mode="json", by_alias=True, exclude_none=True),
            )
        response.raise_for_status()


__all__ = ["ActivityEntryMessage", "HttpActivityRecorder"]
