"""Account directory implementations."""

from bucketsync.infrastructure.accounts.json_file_account_directory import (
    AccountRecord,
    JsonFileAccountDirectory,
)
from bucketsync.infrastructure.accounts.static_account_directory import StaticAccountDirectory

__all__ = ["AccountRecord", "JsonFileAccountDirectory", "StaticAccountDirectory"]
