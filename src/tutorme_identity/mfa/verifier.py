"""Verification of submitted second-factor codes."""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from ..exceptions import (
    InvalidCodeError,
    NotFoundError,
    OtpExpiredError,
    OtpNotFoundError,
)
from ..models import TwoFactorMethod
from .otp import utcnow

if TYPE_CHECKING:
    from ..models import Account
    from ..ports import IAccountRepository
    from .backup_codes import BackupCodeManager
    from .totp import TotpService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a successful verification.

    Attributes:
        method: Method the code was checked against.
        used_backup_code: True when a recovery code was consumed.
        remaining_backup_codes: Codes left after consumption, if one was used.
    """

    method: TwoFactorMethod
    used_backup_code: bool = False
    remaining_backup_codes: int | None = None


class Verifier:
    """Decides whether a code satisfies an account's second factor.

    Failures are raised, never returned. Mismatched TOTP/OTP codes leave the
    stored state untouched so the user can retry until the code expires; a
    matching OTP is cleared with a conditional update so it cannot be used
    twice, and a matching backup code is removed.
    """

    def __init__(
        self,
        *,
        repository: IAccountRepository,
        totp_service: TotpService,
        backup_codes: BackupCodeManager,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.repository = repository
        self.totp_service = totp_service
        self.backup_codes = backup_codes
        self.clock = clock

    async def verify(
        self,
        account: Account,
        code: str,
        *,
        is_backup_code: bool = False,
        method: TwoFactorMethod | None = None,
        setup: bool = False,
    ) -> VerificationResult:
        """Verify ``code`` for ``account``.

        Args:
            account: Account as just loaded from the store.
            code: Submitted code.
            is_backup_code: Treat ``code`` as a recovery code.
            method: Method to check against; defaults to the account's
                configured method (setup passes the method being enrolled).
            setup: Check against the factor being enrolled rather than the
                enabled one. Only changes which TOTP secret is used.

        Returns:
            VerificationResult describing what was accepted.

        Raises:
            NoBackupCodesError: Backup code submitted, none stored.
            OtpNotFoundError: No pending code for the method.
            OtpExpiredError: Pending code is past its expiry.
            InvalidCodeError: Code does not match.
            NotFoundError: No factor configured.
        """
        config = account.two_factor
        if is_backup_code:
            remaining = await self.backup_codes.consume(account, code)
            return VerificationResult(
                method=config.method,
                used_backup_code=True,
                remaining_backup_codes=remaining,
            )

        method = method or config.method
        match method:
            case TwoFactorMethod.TOTP:
                secret = config.setup_totp_secret if setup else config.totp_secret
                self._verify_totp(account, secret, code)
            case TwoFactorMethod.EMAIL | TwoFactorMethod.SMS:
                await self._verify_otp(account, method, code)
            case TwoFactorMethod.NONE:
                raise NotFoundError(f"Account {account.account_id} has no 2FA method")

        return VerificationResult(method=method)

    def _verify_totp(self, account: Account, secret: str | None, code: str) -> None:
        if not secret:
            raise NotFoundError(f"TOTP secret not found for account {account.account_id}")
        if not self.totp_service.verify(secret, code, for_time=self.clock()):
            raise InvalidCodeError("Invalid TOTP code")

    async def _verify_otp(
        self, account: Account, method: TwoFactorMethod, code: str
    ) -> None:
        pending = account.two_factor.pending_otp
        if pending is None or pending.method is not method:
            raise OtpNotFoundError(f"{method.value} OTP not found")

        if pending.is_expired(self.clock()):
            raise OtpExpiredError(f"{method.value} OTP expired at {pending.expires_at}")

        if not secrets.compare_digest(pending.code, code):
            raise InvalidCodeError(f"Invalid {method.value} OTP")

        # Single use: only one request can clear a given code.
        if not await self.repository.clear_pending_otp_if_matches(
            account.account_id, code
        ):
            logger.warning(
                "%s OTP for account %s consumed by a concurrent request",
                method.value,
                account.account_id,
            )
            raise InvalidCodeError(f"{method.value} OTP already used")


__all__: list[str] = ["Verifier", "VerificationResult"]
