"""In-memory credential store for development and testing."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from ..ports import IAccountRepository

if TYPE_CHECKING:
    from ..models import Account, PendingOtp, TwoFactorConfig


class InMemoryAccountRepository(IAccountRepository):
    """In-memory implementation of IAccountRepository.

    Stores accounts in a local dictionary. Reads return copies so that
    callers never mutate stored state behind the repository's back.

    Note:
        Data is lost on restart. Not suitable for production use.
    """

    def __init__(self, accounts: list[Account] | None = None) -> None:
        self._accounts: dict[str, Account] = {}
        for account in accounts or []:
            self.add(account)

    def add(self, account: Account) -> None:
        """Insert or replace an account."""
        self._accounts[account.account_id] = replace(
            account, email=account.email.strip().lower()
        )

    async def get_by_id(self, account_id: str) -> Account | None:
        account = self._accounts.get(account_id)
        return replace(account) if account else None

    async def get_by_email(self, email: str) -> Account | None:
        email = email.strip().lower()
        for account in self._accounts.values():
            if account.email == email:
                return replace(account)
        return None

    async def save_two_factor(self, account_id: str, config: TwoFactorConfig) -> None:
        self._require(account_id).two_factor = config

    async def set_pending_otp(self, account_id: str, otp: PendingOtp) -> None:
        account = self._require(account_id)
        account.two_factor = account.two_factor.with_pending_otp(otp)

    async def clear_pending_otp_if_matches(self, account_id: str, code: str) -> bool:
        # No await between check and write; atomic on a single event loop.
        account = self._require(account_id)
        pending = account.two_factor.pending_otp
        if pending is None or pending.code != code:
            return False
        account.two_factor = account.two_factor.with_pending_otp(None)
        return True

    async def remove_backup_code(self, account_id: str, hashed_code: str) -> bool:
        account = self._require(account_id)
        if hashed_code not in account.two_factor.backup_codes:
            return False
        account.two_factor = account.two_factor.without_backup_code(hashed_code)
        return True

    def _require(self, account_id: str) -> Account:
        try:
            return self._accounts[account_id]
        except KeyError:
            raise LookupError(f"Account {account_id} does not exist") from None
