"""Account directory over a fixed account list."""

from __future__ import annotations

from collections.abc import Iterable

from bucketsync.domain.entities import Account
from bucketsync.domain.ports import AccountDirectory


class StaticAccountDirectory(AccountDirectory):
    """Accounts supplied at construction time; used by tests and embedders."""

    def __init__(self, accounts: Iterable[Account] = ()) -> None:
        self._accounts = {account.account_id: account for account in accounts}

    async def list_accounts(self) -> list[Account]:
        return list(self._accounts.values())

    async def get_account(self, account_id: str) -> Account | None:
        return self._accounts.get(account_id)

    def put(self, account: Account) -> None:
        """Add or replace one account."""

        self._accounts[account.account_id] = account

    def remove(self, account_id: str) -> None:
        """Forget one account; unknown ids are ignored."""

        self._accounts.pop(account_id, None)


__all__ = ["StaticAccountDirectory"]
