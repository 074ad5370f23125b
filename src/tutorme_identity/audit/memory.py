"""In-memory audit store for testing and development."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from ..ports import IAuditStore

if TYPE_CHECKING:
    from .events import TwoFactorAuditEvent, TwoFactorEventType


class InMemoryAuditStore(IAuditStore):
    """In-memory implementation of IAuditStore.

    Note:
        Events are stored in memory and will be lost on restart.
        Not suitable for production use.
    """

    def __init__(self) -> None:
        self._events: list[TwoFactorAuditEvent] = []
        self._by_account: dict[str, list[int]] = defaultdict(list)

    async def record(self, event: TwoFactorAuditEvent) -> None:
        index = len(self._events)
        self._events.append(event)
        if event.account_id:
            self._by_account[event.account_id].append(index)

    async def get_events(
        self,
        account_id: str,
        *,
        event_types: list[TwoFactorEventType] | None = None,
        limit: int = 100,
    ) -> list[TwoFactorAuditEvent]:
        events = [self._events[i] for i in reversed(self._by_account.get(account_id, []))]
        if event_types:
            wanted = set(event_types)
            events = [e for e in events if e.event_type in wanted]
        return events[:limit]

    def __len__(self) -> int:
        return len(self._events)
