"""Pending-session bridge.

A pending session is the short-lived proof that an account passed its
two-factor challenge. The login finalisation step exchanges the token for
a full session without asking for the password again.

Two stores are provided:

- ``InMemoryPendingSessionStore``: process-local. Does not survive a
  restart and is not shared between instances; single-instance only.
- ``RedisPendingSessionStore``: shared store with server-side TTL for
  horizontally scaled deployments.
"""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from .exceptions import NotFoundError
from .ports import IPendingSessionStore

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 600  # 10 minutes


@dataclass(frozen=True)
class PendingSession:
    """Token proving a completed 2FA challenge."""

    token: str
    account_id: str
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now > self.expires_at


def _new_token() -> str:
    return secrets.token_hex(32)


class InMemoryPendingSessionStore(IPendingSessionStore):
    """Process-local pending-session store.

    ⚠️ WARNING: Entries live in a dict of this process. Use
    RedisPendingSessionStore when running more than one worker.

    Eviction is scheduled on the running event loop at creation time;
    ``evict_expired()`` sweeps anything a timer has not removed yet.

    Args:
        ttl_seconds: Token lifetime (default 600).
        single_use: Delete the entry on the first successful consume.
            With ``False`` a token can be read repeatedly until it expires.
    """

    def __init__(
        self, *, ttl_seconds: int = DEFAULT_TTL_SECONDS, single_use: bool = True
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.single_use = single_use
        self._sessions: dict[str, PendingSession] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}

    async def create(self, account_id: str) -> str:
        token = _new_token()
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self.ttl_seconds)
        self._sessions[token] = PendingSession(token, account_id, expires_at)

        loop = asyncio.get_running_loop()
        self._timers[token] = loop.call_later(self.ttl_seconds, self._discard, token)
        return token

    def _discard(self, token: str) -> None:
        self._sessions.pop(token, None)
        timer = self._timers.pop(token, None)
        if timer is not None:
            timer.cancel()

    async def consume(self, token: str) -> PendingSession:
        session = self._sessions.get(token)
        if session is None:
            raise NotFoundError("Pending session not found")

        if session.is_expired():
            self._discard(token)
            raise NotFoundError("Pending session expired")

        if self.single_use:
            self._discard(token)
        return session

    async def evict_expired(self) -> int:
        now = datetime.now(timezone.utc)
        expired = [t for t, s in self._sessions.items() if s.is_expired(now)]
        for token in expired:
            self._discard(token)
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)

    def clear_all(self) -> None:
        """Drop every entry and cancel pending timers.

        Useful for testing cleanup.
        """
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._sessions.clear()


class RedisPendingSessionStore(IPendingSessionStore):
    """Redis-backed pending-session store.

    Keys are ``<prefix><token>`` holding JSON ``{"account_id", "expires_at"}``
    with a server-side expiry, so Redis performs the eviction. Single-use
    consumption uses GETDEL, making read-and-delete one atomic command.
    """

    def __init__(
        self,
        redis_client: Redis[bytes],
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        single_use: bool = True,
        key_prefix: str = "tutorme:2fa:pending:",
    ) -> None:
        self._redis = redis_client
        self.ttl_seconds = ttl_seconds
        self.single_use = single_use
        self.key_prefix = key_prefix

    def _key(self, token: str) -> str:
        return f"{self.key_prefix}{token}"

    async def create(self, account_id: str) -> str:
        token = _new_token()
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self.ttl_seconds)
        payload = json.dumps(
            {"account_id": account_id, "expires_at": expires_at.isoformat()}
        )
        await self._redis.set(self._key(token), payload, ex=self.ttl_seconds)
        return token

    async def consume(self, token: str) -> PendingSession:
        key = self._key(token)
        raw = await (self._redis.getdel(key) if self.single_use else self._redis.get(key))
        if not raw:
            raise NotFoundError("Pending session not found")

        try:
            data = json.loads(raw)
            session = PendingSession(
                token=token,
                account_id=data["account_id"],
                expires_at=datetime.fromisoformat(data["expires_at"]),
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding malformed pending session %s: %s", key, e)
            await self._redis.delete(key)
            raise NotFoundError("Pending session not found") from e

        if session.is_expired():
            await self._redis.delete(key)
            raise NotFoundError("Pending session expired")
        return session

    async def evict_expired(self) -> int:
        # Redis expires keys itself.
        return 0


__all__: list[str] = [
    "PendingSession",
    "InMemoryPendingSessionStore",
    "RedisPendingSessionStore",
    "DEFAULT_TTL_SECONDS",
]
