"""Audit trail for two-factor operations."""

from .events import TwoFactorAuditEvent, TwoFactorEventType, verification_failed_event
from .memory import InMemoryAuditStore

__all__: list[str] = [
    "TwoFactorAuditEvent",
    "TwoFactorEventType",
    "verification_failed_event",
    "InMemoryAuditStore",
]
