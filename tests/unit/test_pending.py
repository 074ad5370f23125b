"""Tests for the pending-session stores."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from tutorme_identity.exceptions import NotFoundError
from tutorme_identity.pending import (
    InMemoryPendingSessionStore,
    PendingSession,
    RedisPendingSessionStore,
)


class TestInMemoryPendingSessionStore:
    @pytest.mark.asyncio
    async def test_create_and_consume(self) -> None:
        store = InMemoryPendingSessionStore()

        token = await store.create("acct-1")
        session = await store.consume(token)

        assert len(token) == 64
        assert session.account_id == "acct-1"
        assert session.token == token

    @pytest.mark.asyncio
    async def test_tokens_are_unique(self) -> None:
        store = InMemoryPendingSessionStore()
        tokens = {await store.create("acct-1") for _ in range(20)}
        assert len(tokens) == 20
        store.clear_all()

    @pytest.mark.asyncio
    async def test_single_use_by_default(self) -> None:
        store = InMemoryPendingSessionStore()
        token = await store.create("acct-1")

        await store.consume(token)
        with pytest.raises(NotFoundError):
            await store.consume(token)

    @pytest.mark.asyncio
    async def test_multi_use_until_expiry(self) -> None:
        store = InMemoryPendingSessionStore(single_use=False)
        token = await store.create("acct-1")

        first = await store.consume(token)
        second = await store.consume(token)

        assert first == second
        store.clear_all()

    @pytest.mark.asyncio
    async def test_unknown_token(self) -> None:
        store = InMemoryPendingSessionStore()
        with pytest.raises(NotFoundError):
            await store.consume("nope")

    @pytest.mark.asyncio
    async def test_timer_evicts_entry(self) -> None:
        store = InMemoryPendingSessionStore(ttl_seconds=0)
        await store.create("acct-1")

        await asyncio.sleep(0.01)

        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_expired_entry_rejected_and_swept(self) -> None:
        store = InMemoryPendingSessionStore()
        token = await store.create("acct-1")
        expired = PendingSession(
            token, "acct-1", datetime.now(timezone.utc) - timedelta(seconds=1)
        )
        store._sessions[token] = expired

        assert await store.evict_expired() == 1
        with pytest.raises(NotFoundError):
            await store.consume(token)


class TestRedisPendingSessionStore:
    @pytest.fixture
    def redis(self) -> AsyncMock:
        return AsyncMock()

    @staticmethod
    def _payload(account_id: str = "acct-1", seconds: int = 600) -> bytes:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=seconds)
        return json.dumps(
            {"account_id": account_id, "expires_at": expires_at.isoformat()}
        ).encode()

    @pytest.mark.asyncio
    async def test_create_sets_key_with_ttl(self, redis: AsyncMock) -> None:
        store = RedisPendingSessionStore(redis, ttl_seconds=600)

        token = await store.create("acct-1")

        key, value = redis.set.await_args.args
        assert key == f"tutorme:2fa:pending:{token}"
        assert json.loads(value)["account_id"] == "acct-1"
        assert redis.set.await_args.kwargs == {"ex": 600}

    @pytest.mark.asyncio
    async def test_single_use_consume_uses_getdel(self, redis: AsyncMock) -> None:
        redis.getdel.return_value = self._payload()
        store = RedisPendingSessionStore(redis)

        session = await store.consume("tok")

        assert session.account_id == "acct-1"
        redis.getdel.assert_awaited_once_with("tutorme:2fa:pending:tok")
        redis.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_multi_use_consume_uses_get(self, redis: AsyncMock) -> None:
        redis.get.return_value = self._payload()
        store = RedisPendingSessionStore(redis, single_use=False)

        await store.consume("tok")

        redis.get.assert_awaited_once_with("tutorme:2fa:pending:tok")
        redis.getdel.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_key(self, redis: AsyncMock) -> None:
        redis.getdel.return_value = None
        store = RedisPendingSessionStore(redis)

        with pytest.raises(NotFoundError):
            await store.consume("tok")

    @pytest.mark.asyncio
    async def test_malformed_entry_deleted(self, redis: AsyncMock) -> None:
        redis.get.return_value = b"{not json"
        store = RedisPendingSessionStore(redis, single_use=False)

        with pytest.raises(NotFoundError):
            await store.consume("tok")

        redis.delete.assert_awaited_once_with("tutorme:2fa:pending:tok")

    @pytest.mark.asyncio
    async def test_expired_entry_rejected(self, redis: AsyncMock) -> None:
        redis.get.return_value = self._payload(seconds=-5)
        store = RedisPendingSessionStore(redis, single_use=False)

        with pytest.raises(NotFoundError, match="expired"):
            await store.consume("tok")

    @pytest.mark.asyncio
    async def test_evict_expired_is_server_side(self, redis: AsyncMock) -> None:
        assert await RedisPendingSessionStore(redis).evict_expired() == 0
