"""Two-factor ports (protocols).

These protocols define the collaborators the 2FA flow depends on. All ports
use @runtime_checkable for isinstance checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .audit.events import TwoFactorAuditEvent, TwoFactorEventType
    from .delivery.records import DeliveryRecord
    from .models import Account, PendingOtp, TwoFactorConfig
    from .pending import PendingSession


# ═══════════════════════════════════════════════════════════════
# CREDENTIAL STORE PORT
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class IAccountRepository(Protocol):
    """Protocol for the account (credential) store.

    Every write is a single-row update. The two conditional methods must
    be implemented as one atomic compare-and-update against the store so
    that concurrent verifications cannot both succeed on the same code.
    """

    async def get_by_id(self, account_id: str) -> Account | None:
        """Load an account by primary key."""
        ...

    async def get_by_email(self, email: str) -> Account | None:
        """Load an account by normalised (lowercase) email."""
        ...

    async def save_two_factor(self, account_id: str, config: TwoFactorConfig) -> None:
        """Replace the account's 2FA configuration.

        Args:
            account_id: Account primary key.
            config: New configuration, written as one update.
        """
        ...

    async def set_pending_otp(self, account_id: str, otp: PendingOtp) -> None:
        """Store a freshly issued OTP, overwriting any previous one."""
        ...

    async def clear_pending_otp_if_matches(self, account_id: str, code: str) -> bool:
        """Clear the pending OTP only if it still equals ``code``.

        Returns:
            True if this call cleared the OTP, False if it was already
            gone or replaced by another request.
        """
        ...

    async def remove_backup_code(self, account_id: str, hashed_code: str) -> bool:
        """Remove one stored backup-code hash.

        Returns:
            True if this call removed the entry, False if it was
            already consumed.
        """
        ...


# ═══════════════════════════════════════════════════════════════
# DELIVERY PORT
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class IOtpDeliveryHook(Protocol):
    """Protocol for delivering one-time codes.

    Implementations report failures through the returned record rather
    than raising; a failed delivery does not invalidate the stored code.
    """

    async def send_email_otp(self, email: str, code: str) -> DeliveryRecord:
        """Send a code by email."""
        ...

    async def send_sms_otp(self, phone: str, code: str) -> DeliveryRecord:
        """Send a code by SMS."""
        ...


# ═══════════════════════════════════════════════════════════════
# PENDING SESSION PORT
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class IPendingSessionStore(Protocol):
    """Protocol for the pending-session bridge.

    A pending session proves that an account passed its 2FA challenge.
    The login finalisation step exchanges it for a real session.
    """

    async def create(self, account_id: str) -> str:
        """Mint a token for ``account_id`` and return it."""
        ...

    async def consume(self, token: str) -> PendingSession:
        """Look up a token.

        Raises:
            NotFoundError: Token unknown or expired.
        """
        ...

    async def evict_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        ...


# ═══════════════════════════════════════════════════════════════
# RATE LIMIT PORT
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class IOtpRateLimitStore(Protocol):
    """Protocol for OTP resend rate limiting."""

    async def record_send(self, identifier: str) -> None:
        """Record that a code was sent to ``identifier``."""
        ...

    async def seconds_since_last_send(self, identifier: str) -> float | None:
        """Seconds since the last send, or None if never sent."""
        ...


# ═══════════════════════════════════════════════════════════════
# AUDIT PORT
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class IAuditStore(Protocol):
    """Protocol for storing 2FA audit events."""

    async def record(self, event: TwoFactorAuditEvent) -> None:
        """Persist an audit event."""
        ...

    async def get_events(
        self,
        account_id: str,
        *,
        event_types: list[TwoFactorEventType] | None = None,
        limit: int = 100,
    ) -> list[TwoFactorAuditEvent]:
        """Most recent events for an account, newest first."""
        ...


__all__: list[str] = [
    "IAccountRepository",
    "IOtpDeliveryHook",
    "IPendingSessionStore",
    "IOtpRateLimitStore",
    "IAuditStore",
]
