"""No-op activity recorder."""

from __future__ import annotations

from bucketsync.domain.entities import Account
from bucketsync.domain.ports import ActivityRecorder
from bucketsync.domain.sync_types import ActivityStatus


class NoopActivityRecorder(ActivityRecorder):
    """No-op implementation for deployments without an audit sink."""

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
        _ = (account, action_kind, path_before, path_after, status, error_message, byte_count)


__all__ = ["NoopActivityRecorder"]
