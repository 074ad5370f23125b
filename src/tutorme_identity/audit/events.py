"""Audit events for two-factor operations.

Event naming follows the pattern: ``auth.2fa.<action>``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class TwoFactorEventType(Enum):
    """Types of two-factor audit events."""

    SETUP_STARTED = "auth.2fa.setup_started"
    ENABLED = "auth.2fa.enabled"
    DISABLED = "auth.2fa.disabled"
    CHALLENGE_ISSUED = "auth.2fa.challenge_issued"
    VERIFIED = "auth.2fa.verified"
    FAILED = "auth.2fa.failed"
    BACKUP_CODE_USED = "auth.2fa.backup_code_used"
    BACKUP_CODES_REGENERATED = "auth.2fa.backup_codes_regenerated"


@dataclass(frozen=True)
class TwoFactorAuditEvent:
    """Two-factor audit event.

    Attributes:
        event_type: The type of event.
        account_id: Account the event concerns.
        method: 2FA method involved (TOTP, EMAIL, SMS).
        timestamp: When the event occurred (UTC).
        success: Whether the operation was successful.
        error_code: Error code if operation failed.
        metadata: Additional event-specific data. Never holds codes or secrets.
    """

    event_type: TwoFactorEventType
    account_id: str | None = None
    method: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    success: bool = True
    error_code: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.success and not self.error_code:
            object.__setattr__(self, "error_code", "UNKNOWN_ERROR")

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for serialization."""
        return {
            "event_type": self.event_type.value,
            "account_id": self.account_id,
            "method": self.method,
            "timestamp": self.timestamp.isoformat(),
            "success": self.success,
            "error_code": self.error_code,
            "metadata": self.metadata,
        }


def verification_failed_event(
    account_id: str, method: str, error_code: str, **metadata: Any
) -> TwoFactorAuditEvent:
    """Create a failed-verification event."""
    return TwoFactorAuditEvent(
        event_type=TwoFactorEventType.FAILED,
        account_id=account_id,
        method=method,
        success=False,
        error_code=error_code,
        metadata=metadata,
    )


__all__: list[str] = [
    "TwoFactorEventType",
    "TwoFactorAuditEvent",
    "verification_failed_event",
]
