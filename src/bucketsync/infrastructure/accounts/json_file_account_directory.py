"""Account directory backed by a JSON file that is re-read on every call."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from bucketsync.domain.entities import Account
from bucketsync.domain.ports import AccountDirectory
from bucketsync.domain.sync_types import AccessMode

logger = logging.getLogger(__name__)


class AccountRecord(BaseModel):
    """One stored connection as written by the desktop client."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    account_id: str = Field(alias="id", min_length=1)
    name: str = ""
    provider: str = "aws"
    endpoint: str = ""
    region: str = "us-east-1"
    bucket_name: str = Field(default="", alias="bucketName")
    access_mode: AccessMode = Field(default=AccessMode.READ_WRITE, alias="accessMode")
    enable_activity_log: bool = Field(default=False, alias="enableActivityLog")
    access_key_id: str | None = Field(default=None, alias="accessKeyId")
    secret_access_key: str | None = Field(default=None, alias="secretAccessKey")

    def to_entity(self) -> Account:
        return Account(
            account_id=self.account_id,
            name=self.name or self.account_id,
            provider=self.provider,
            endpoint=self.endpoint,
            region=self.region,
            bucket_name=self.bucket_name,
            access_mode=self.access_mode,
            enable_activity_log=self.enable_activity_log,
            access_key_id=self.access_key_id,
            secret_access_key=self.secret_access_key,
        )


class JsonFileAccountDirectory(AccountDirectory):
    """Accounts stored as a JSON list (or `{"accounts": [...]}`).

    The file is read on every call so accounts added or removed by another
    process become visible on the next scheduler tick. A missing or unreadable
    file yields an empty snapshot.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    async def list_accounts(self) -> list[Account]:
        return await asyncio.to_thread(self._read)

    async def get_account(self, account_id: str) -> Account | None:
        for account in await self.list_accounts():
            if account.account_id == account_id:
                return account
        return None

    def _read(self) -> list[Account]:
        if not self._path.exists():
            return []
        try:
            document = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Cannot read accounts file %s: %s", self._path, exc)
            return []

        raw_accounts = document.get("accounts", []) if isinstance(document, dict) else document
        if not isinstance(raw_accounts, list):
            logger.warning("Accounts file %s does not hold a list.", self._path)
            return []

        accounts: list[Account] = []
        for raw in raw_accounts:
            try:
                accounts.append(AccountRecord.model_validate(raw).to_entity())
            except ValidationError as exc:
                logger.warning("Skipping invalid account entry in %s: %s", self._path, exc)
        return accounts


__all__ = ["AccountRecord", "JsonFileAccountDirectory"]
