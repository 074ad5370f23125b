"""Backup codes for MFA recovery.

Generates single-use recovery codes, stores only their bcrypt hashes and
removes a hash permanently once its code has been used.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
from typing import TYPE_CHECKING

from ..exceptions import InvalidCodeError, NoBackupCodesError
from ..hasher import PasswordHasher

if TYPE_CHECKING:
    from ..models import Account
    from ..ports import IAccountRepository

logger = logging.getLogger(__name__)


class BackupCodeManager:
    """Generate, hash and consume backup codes.

    Codes are shown to the user as ``XXXX-XXXX``. The hash is taken over
    the normalised form (uppercase, no separators) so users may type the
    code with or without the dash.

    Example:
        ```python
        manager = BackupCodeManager(repository=account_repository)

        codes = manager.generate()
        hashes = await manager.hash_all(codes)
        # persist hashes, show codes once

        remaining = await manager.consume(account, "ABCD-EFGH")
        ```
    """

    # Characters used in backup codes (exclude ambiguous: 0, O, 1, I)
    ALPHABET = string.ascii_uppercase.replace("O", "").replace(
        "I", ""
    ) + string.digits.replace("0", "").replace("1", "")

    def __init__(
        self,
        *,
        repository: IAccountRepository,
        hasher: PasswordHasher | None = None,
        code_length: int = 8,
        default_count: int = 10,
    ) -> None:
        """Initialize the manager.

        Args:
            repository: Credential store holding the hashes.
            hasher: bcrypt hasher (default cost 10).
            code_length: Characters per code, excluding the dash (default 8).
            default_count: Codes per batch (default 10).
        """
        self.repository = repository
        self.hasher = hasher or PasswordHasher()
        self.code_length = code_length
        self.default_count = default_count

    def _generate_code(self) -> str:
        return "".join(secrets.choice(self.ALPHABET) for _ in range(self.code_length))

    def _format_code(self, code: str) -> str:
        """Format code with dashes for readability (e.g. "ABCD-EFGH")."""
        return "-".join(code[i : i + 4] for i in range(0, len(code), 4))

    @staticmethod
    def normalize(code: str) -> str:
        """Strip whitespace and separators, uppercase."""
        return "".join(ch for ch in code.upper() if ch.isalnum())

    def generate(self, count: int | None = None) -> list[str]:
        """Generate a batch of distinct plaintext codes.

        Args:
            count: Number of codes (default ``default_count``).

        Returns:
            Formatted plaintext codes. Show once, never persist.
        """
        count = count or self.default_count
        codes: set[str] = set()
        while len(codes) < count:
            codes.add(self._generate_code())
        return [self._format_code(code) for code in codes]

    async def hash_all(self, codes: list[str]) -> tuple[str, ...]:
        """Hash plaintext codes for storage, preserving order."""
        hashes = await asyncio.gather(
            *(asyncio.to_thread(self.hasher.hash, self.normalize(code)) for code in codes)
        )
        return tuple(hashes)

    async def find_match(self, code: str, hashed_codes: tuple[str, ...]) -> str | None:
        """Return the stored hash matching ``code``, if any.

        Each hash is salted, so every entry is checked individually.
        """
        normalized = self.normalize(code)
        for hashed in hashed_codes:
            if await asyncio.to_thread(self.hasher.verify, hashed, normalized):
                return hashed
        return None

    async def consume(self, account: Account, code: str) -> int:
        """Consume a backup code for ``account``.

        Returns:
            Number of backup codes left after this one.

        Raises:
            NoBackupCodesError: The account has no backup codes.
            InvalidCodeError: No stored code matches, or it was just used
                by a concurrent request.
        """
        hashed_codes = account.two_factor.backup_codes
        if not hashed_codes:
            raise NoBackupCodesError(f"Account {account.account_id} has no backup codes")

        match = await self.find_match(code, hashed_codes)
        if match is None:
            raise InvalidCodeError("Backup code did not match")

        if not await self.repository.remove_backup_code(account.account_id, match):
            raise InvalidCodeError("Backup code was already consumed")

        remaining = len(hashed_codes) - 1
        logger.info(
            "Backup code consumed for account %s (%d remaining)",
            account.account_id,
            remaining,
        )
        return remaining


__all__: list[str] = ["BackupCodeManager"]
