"""Delivery tracking types and channel enum."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class DeliveryChannel(Enum):
    """Channels a one-time code can be delivered on."""

    EMAIL = "email"
    SMS = "sms"


class DeliveryStatus(Enum):
    """Delivery status outcomes."""

    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True)
class DeliveryRecord:
    """Immutable record of a code delivery attempt."""

    recipient: str
    channel: DeliveryChannel
    status: DeliveryStatus
    provider: str
    provider_id: str | None = None
    sent_at: datetime | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if self.sent_at is None:
            object.__setattr__(self, "sent_at", datetime.now(timezone.utc))

    @property
    def ok(self) -> bool:
        return self.status is DeliveryStatus.SENT

    @classmethod
    def sent(
        cls,
        recipient: str,
        channel: DeliveryChannel,
        provider: str,
        provider_id: str | None = None,
    ) -> DeliveryRecord:
        """Create a successful delivery record."""
        return cls(
            recipient=recipient,
            channel=channel,
            status=DeliveryStatus.SENT,
            provider=provider,
            provider_id=provider_id,
        )

    @classmethod
    def failed(
        cls,
        recipient: str,
        channel: DeliveryChannel,
        provider: str,
        error: str | None = None,
    ) -> DeliveryRecord:
        """Create a failed delivery record."""
        return cls(
            recipient=recipient,
            channel=channel,
            status=DeliveryStatus.FAILED,
            provider=provider,
            error=error,
        )


@dataclass(frozen=True)
class OtpMessage:
    """Immutable rendered message ready for delivery."""

    body_text: str
    subject: str | None = None
    body_html: str | None = None
    code: str | None = None


__all__: list[str] = [
    "DeliveryChannel",
    "DeliveryStatus",
    "DeliveryRecord",
    "OtpMessage",
]
