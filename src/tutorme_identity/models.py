"""Account and two-factor configuration records.

The configuration is embedded in the account record, the way the user
table carries the 2FA columns. Only one method is active at a time, so a
single ``pending_otp`` slot is enough; it remembers which channel issued it.
A method enrolled while another one is enabled is kept in ``replacement``
until it is confirmed.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum


class TwoFactorMethod(Enum):
    """Supported second factors."""

    TOTP = "TOTP"
    EMAIL = "EMAIL"
    SMS = "SMS"
    NONE = "NONE"

    @property
    def uses_otp(self) -> bool:
        """True for methods that deliver a one-time code per challenge."""
        return self in (TwoFactorMethod.EMAIL, TwoFactorMethod.SMS)


@dataclass(frozen=True)
class PendingOtp:
    """A one-time code waiting to be verified.

    Attributes:
        code: The numeric code that was delivered.
        expires_at: UTC instant after which the code is rejected.
        method: Channel the code was issued on (EMAIL or SMS).
    """

    code: str
    expires_at: datetime
    method: TwoFactorMethod

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now > self.expires_at


@dataclass(frozen=True)
class PendingSetup:
    """Enrolment of a new method started while another one is enabled."""

    method: TwoFactorMethod
    totp_secret: str | None = None


@dataclass(frozen=True)
class TwoFactorConfig:
    """Per-account two-factor state.

    Attributes:
        method: Method being set up or in use (NONE when unconfigured).
        enabled: True only after a successful confirm-setup.
        totp_secret: Base32 shared secret, TOTP only.
        pending_otp: Outstanding email/SMS code, if any.
        backup_codes: bcrypt hashes of unused recovery codes.
        replacement: Method being enrolled to replace the enabled one.
    """

    method: TwoFactorMethod = TwoFactorMethod.NONE
    enabled: bool = False
    totp_secret: str | None = None
    pending_otp: PendingOtp | None = None
    backup_codes: tuple[str, ...] = ()
    replacement: PendingSetup | None = None

    @property
    def setup_method(self) -> TwoFactorMethod:
        """Method awaiting confirm-setup; NONE when nothing is being enrolled."""
        if self.enabled:
            return self.replacement.method if self.replacement else TwoFactorMethod.NONE
        return self.method

    @property
    def setup_totp_secret(self) -> str | None:
        if self.enabled:
            return self.replacement.totp_secret if self.replacement else None
        return self.totp_secret

    def is_pending(self, method: TwoFactorMethod) -> bool:
        """Whether setup for ``method`` was started but not confirmed."""
        return method is not TwoFactorMethod.NONE and self.setup_method is method

    def with_setup(
        self,
        method: TwoFactorMethod,
        *,
        totp_secret: str | None = None,
        pending_otp: PendingOtp | None = None,
    ) -> TwoFactorConfig:
        """Start enrolling ``method``.

        An unconfirmed configuration is replaced outright. An enabled one
        stays in force, backup codes included, and the new method is staged
        in ``replacement`` until confirm-setup swaps it in.
        """
        if self.enabled:
            return replace(
                self,
                replacement=PendingSetup(method, totp_secret),
                pending_otp=pending_otp or self.pending_otp,
            )
        return TwoFactorConfig(
            method=method, totp_secret=totp_secret, pending_otp=pending_otp
        )

    def with_pending_otp(self, otp: PendingOtp | None) -> TwoFactorConfig:
        return replace(self, pending_otp=otp)

    def without_backup_code(self, hashed_code: str) -> TwoFactorConfig:
        remaining = list(self.backup_codes)
        remaining.remove(hashed_code)
        return replace(self, backup_codes=tuple(remaining))

    @classmethod
    def cleared(cls) -> TwoFactorConfig:
        """Configuration with every method, secret and code removed."""
        return cls()


@dataclass
class Account:
    """Identity record as seen by the 2FA flow.

    Attributes:
        account_id: Primary key.
        email: Unique login email, stored lowercase.
        password_hash: bcrypt hash of the account password.
        role: Marketplace role (STUDENT, TUTOR, ADMIN).
        phone: Contact number used for SMS codes.
        two_factor: Embedded 2FA configuration.
    """

    account_id: str
    email: str
    password_hash: str | None = None
    role: str = "STUDENT"
    phone: str | None = None
    two_factor: TwoFactorConfig = field(default_factory=TwoFactorConfig)


__all__: list[str] = [
    "TwoFactorMethod",
    "PendingOtp",
    "PendingSetup",
    "TwoFactorConfig",
    "Account",
]
