"""Test configuration and fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta, timezone

import pytest

from tutorme_identity import (
    Account,
    InMemoryAccountRepository,
    InMemoryAuditStore,
    InMemoryPendingSessionStore,
    PasswordHasher,
    TwoFactorService,
    TwoFactorSettings,
)
from tutorme_identity.delivery import DeliveryChannel, DeliveryRecord

PASSWORD = "correct-horse-battery"


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests that require external services",
    )


class FakeClock:
    """Settable UTC clock."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class RecordingDeliveryHook:
    """Delivery hook that keeps every code instead of sending it."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.emails_sent: list[tuple[str, str]] = []
        self.sms_sent: list[tuple[str, str]] = []

    def _record(self, recipient: str, channel: DeliveryChannel) -> DeliveryRecord:
        if self.fail:
            return DeliveryRecord.failed(recipient, channel, provider="test", error="down")
        return DeliveryRecord.sent(recipient, channel, provider="test")

    async def send_email_otp(self, email: str, code: str) -> DeliveryRecord:
        self.emails_sent.append((email, code))
        return self._record(email, DeliveryChannel.EMAIL)

    async def send_sms_otp(self, phone: str, code: str) -> DeliveryRecord:
        self.sms_sent.append((phone, code))
        return self._record(phone, DeliveryChannel.SMS)

    @property
    def last_code(self) -> str:
        return (self.emails_sent + self.sms_sent)[-1][1]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hasher() -> PasswordHasher:
    # Minimum bcrypt cost keeps the suite fast.
    return PasswordHasher(rounds=4)


@pytest.fixture
def account(hasher: PasswordHasher) -> Account:
    return Account(
        account_id="acct-1",
        email="Alice@Example.com",
        password_hash=hasher.hash(PASSWORD),
        phone="5551234567",
    )


@pytest.fixture
def repository(account: Account) -> InMemoryAccountRepository:
    return InMemoryAccountRepository([account])


@pytest.fixture
def delivery_hook() -> RecordingDeliveryHook:
    return RecordingDeliveryHook()


@pytest.fixture
def failing_hook() -> RecordingDeliveryHook:
    return RecordingDeliveryHook(fail=True)


@pytest.fixture
def pending_store() -> Iterator[InMemoryPendingSessionStore]:
    store = InMemoryPendingSessionStore()
    yield store
    store.clear_all()


@pytest.fixture
def audit_store() -> InMemoryAuditStore:
    return InMemoryAuditStore()


@pytest.fixture
def settings() -> TwoFactorSettings:
    return TwoFactorSettings(bcrypt_rounds=4)


@pytest.fixture
def service(
    repository: InMemoryAccountRepository,
    delivery_hook: RecordingDeliveryHook,
    pending_store: InMemoryPendingSessionStore,
    audit_store: InMemoryAuditStore,
    settings: TwoFactorSettings,
    clock: FakeClock,
) -> TwoFactorService:
    return TwoFactorService(
        repository=repository,
        delivery_hook=delivery_hook,
        pending_store=pending_store,
        settings=settings,
        audit_store=audit_store,
        clock=clock,
    )
