"""Activity recorder implementations."""

from bucketsync.infrastructure.activity.http_activity_recorder import (
    ActivityEntryMessage,
    HttpActivityRecorder,
)
from bucketsync.infrastructure.activity.noop_activity_recorder import NoopActivityRecorder

__all__ = ["ActivityEntryMessage", "HttpActivityRecorder", "NoopActivityRecorder"]
