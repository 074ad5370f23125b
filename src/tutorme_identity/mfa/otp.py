"""Email/SMS one-time code issuance.

The issuer generates codes, enforces the contact and cooldown
preconditions, persists the pending code and hands it to the delivery
hook. Verification lives in :mod:`.verifier`.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from ..exceptions import MissingContactError, ResendCooldownError
from ..models import PendingOtp, TwoFactorMethod
from ..ports import IOtpRateLimitStore

if TYPE_CHECKING:
    from ..delivery.records import DeliveryRecord
    from ..models import Account
    from ..ports import IAccountRepository, IOtpDeliveryHook

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class OtpConfig:
    """OTP configuration.

    Attributes:
        code_length: Number of digits in OTP code.
        ttl_seconds: Time-to-live in seconds.
        cooldown_seconds: Minimum seconds between sends (0 disables).
    """

    code_length: int = 6
    ttl_seconds: int = 600  # 10 minutes
    cooldown_seconds: int = 0


class OtpIssuer:
    """Challenge issuer for the EMAIL and SMS methods.

    Example:
        ```python
        issuer = OtpIssuer(
            repository=account_repository,
            delivery_hook=OtpDeliveryHook(),
        )

        otp, record = await issuer.issue(account, TwoFactorMethod.EMAIL)
        ```
    """

    def __init__(
        self,
        *,
        repository: IAccountRepository,
        delivery_hook: IOtpDeliveryHook,
        config: OtpConfig | None = None,
        rate_limit_store: IOtpRateLimitStore | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the issuer.

        Args:
            repository: Credential store the pending code is written to.
            delivery_hook: Sends codes by email or SMS.
            config: OTP configuration.
            rate_limit_store: Storage for resend cooldowns (in-memory if not provided).
            clock: Source of the current UTC time.
        """
        self.repository = repository
        self.delivery_hook = delivery_hook
        self.config = config or OtpConfig()
        self.rate_limit_store = rate_limit_store or InMemoryOtpRateLimitStore()
        self.clock = clock

    def generate_code(self) -> str:
        """Generate a numeric code of ``code_length`` digits."""
        code = secrets.randbelow(10**self.config.code_length)
        return str(code).zfill(self.config.code_length)

    async def prepare(self, account: Account, method: TwoFactorMethod) -> PendingOtp:
        """Check preconditions and build a fresh pending code.

        Nothing is persisted or sent.

        Raises:
            ValueError: ``method`` does not use one-time codes.
            MissingContactError: SMS requested without a phone on file.
            ResendCooldownError: A code was sent too recently.
        """
        if not method.uses_otp:
            raise ValueError(f"{method.value} does not use one-time codes")
        if method is TwoFactorMethod.SMS and not account.phone:
            raise MissingContactError(f"Account {account.account_id} has no phone number")

        await self._check_cooldown(account.account_id)

        return PendingOtp(
            code=self.generate_code(),
            expires_at=self.clock() + timedelta(seconds=self.config.ttl_seconds),
            method=method,
        )

    async def _check_cooldown(self, account_id: str) -> None:
        if self.config.cooldown_seconds <= 0:
            return
        elapsed = await self.rate_limit_store.seconds_since_last_send(account_id)
        if elapsed is not None and elapsed < self.config.cooldown_seconds:
            raise ResendCooldownError(int(self.config.cooldown_seconds - elapsed) or 1)

    async def dispatch(self, account: Account, otp: PendingOtp) -> DeliveryRecord:
        """Send an already persisted code on its channel."""
        await self.rate_limit_store.record_send(account.account_id)
        if otp.method is TwoFactorMethod.SMS:
            assert account.phone is not None
            return await self.delivery_hook.send_sms_otp(account.phone, otp.code)
        return await self.delivery_hook.send_email_otp(account.email, otp.code)

    async def issue(
        self, account: Account, method: TwoFactorMethod
    ) -> tuple[PendingOtp, DeliveryRecord]:
        """Generate, store and send a code, replacing any outstanding one.

        Returns:
            The stored pending code and the delivery outcome.
        """
        otp = await self.prepare(account, method)
        await self.repository.set_pending_otp(account.account_id, otp)
        record = await self.dispatch(account, otp)
        if not record.ok:
            logger.warning(
                "%s code for account %s stored but not delivered",
                method.value,
                account.account_id,
            )
        return otp, record


class InMemoryOtpRateLimitStore(IOtpRateLimitStore):
    """In-memory OTP rate limit store.

    ⚠️ WARNING: Process-local; use a shared store when running more than
    one instance.
    """

    def __init__(self) -> None:
        self._last_sent: dict[str, float] = {}

    async def record_send(self, identifier: str) -> None:
        self._last_sent[identifier] = time.monotonic()

    async def seconds_since_last_send(self, identifier: str) -> float | None:
        last_sent = self._last_sent.get(identifier)
        if last_sent is None:
            return None
        return time.monotonic() - last_sent


__all__: list[str] = [
    "OtpConfig",
    "OtpIssuer",
    "InMemoryOtpRateLimitStore",
    "utcnow",
]
