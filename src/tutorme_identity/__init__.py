"""tutorme-identity: two-factor authentication for the TutorMe marketplace.

Provides:
- TOTP, email OTP and SMS OTP second factors with single-use backup codes
- A setup state machine (NONE -> PENDING -> ENABLED) and login challenge
- A pending-session bridge (in-memory or Redis) for passed challenges
- Email (SMTP) and SMS (HTTP API, Twilio) delivery with a console fallback
- A FastAPI router under ``tutorme_identity.contrib.fastapi``
"""

from .adapters import InMemoryAccountRepository
from .audit import InMemoryAuditStore, TwoFactorAuditEvent, TwoFactorEventType
from .delivery import OtpDeliveryHook
from .exceptions import (
    AccountNotFoundError,
    InvalidCodeError,
    MissingContactError,
    NoBackupCodesError,
    NotFoundError,
    OtpExpiredError,
    OtpNotFoundError,
    ResendCooldownError,
    TwoFactorError,
    TwoFactorServiceError,
    UnauthorizedError,
    ValidationError,
)
from .hasher import PasswordHasher
from .models import (
    Account,
    PendingOtp,
    PendingSetup,
    TwoFactorConfig,
    TwoFactorMethod,
)
from .pending import (
    InMemoryPendingSessionStore,
    PendingSession,
    RedisPendingSessionStore,
)
from .ports import (
    IAccountRepository,
    IAuditStore,
    IOtpDeliveryHook,
    IOtpRateLimitStore,
    IPendingSessionStore,
)
from .service import LoginChallenge, SetupChallenge, TwoFactorService, TwoFactorStatus
from .settings import (
    TwoFactorSettings,
    build_delivery_hook,
    build_pending_session_store,
)

__version__ = "0.1.0"

__all__: list[str] = [
    # Service
    "TwoFactorService",
    "SetupChallenge",
    "LoginChallenge",
    "TwoFactorStatus",
    # Models
    "Account",
    "TwoFactorConfig",
    "TwoFactorMethod",
    "PendingOtp",
    "PendingSetup",
    "PendingSession",
    # Ports
    "IAccountRepository",
    "IOtpDeliveryHook",
    "IPendingSessionStore",
    "IOtpRateLimitStore",
    "IAuditStore",
    # Adapters
    "InMemoryAccountRepository",
    "InMemoryPendingSessionStore",
    "RedisPendingSessionStore",
    "InMemoryAuditStore",
    "OtpDeliveryHook",
    "PasswordHasher",
    # Audit
    "TwoFactorAuditEvent",
    "TwoFactorEventType",
    # Configuration
    "TwoFactorSettings",
    "build_delivery_hook",
    "build_pending_session_store",
    # Exceptions
    "TwoFactorError",
    "UnauthorizedError",
    "NotFoundError",
    "AccountNotFoundError",
    "ValidationError",
    "OtpNotFoundError",
    "OtpExpiredError",
    "InvalidCodeError",
    "NoBackupCodesError",
    "MissingContactError",
    "ResendCooldownError",
    "TwoFactorServiceError",
]
