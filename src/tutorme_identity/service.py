"""Two-factor service facade.

Drives the setup state machine (NONE -> PENDING -> ENABLED, and back to
NONE on disable) and the login challenge, on top of the issuer, verifier
and backup-code manager.

Every public operation is a boundary: domain errors propagate unchanged,
anything else is logged and re-raised as TwoFactorServiceError.

Example:
    ```python
    service = TwoFactorService(
        repository=account_repository,
        delivery_hook=build_delivery_hook(settings),
        pending_store=InMemoryPendingSessionStore(),
        settings=settings,
    )

    challenge = await service.begin_setup(account_id, "TOTP")
    backup_codes = await service.confirm_setup(account_id, "TOTP", "123456")

    login = await service.issue_login_challenge("alice@example.com")
    token = await service.verify_login_challenge("alice@example.com", "654321")
    ```
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager, nullcontext
from dataclasses import dataclass, replace
from datetime import datetime
from typing import TYPE_CHECKING

from .audit.events import (
    TwoFactorAuditEvent,
    TwoFactorEventType,
    verification_failed_event,
)
from .exceptions import (
    AccountNotFoundError,
    NotFoundError,
    TwoFactorError,
    TwoFactorServiceError,
    UnauthorizedError,
    ValidationError,
)
from .hasher import PasswordHasher
from .masking import mask_email, mask_phone
from .mfa.backup_codes import BackupCodeManager
from .mfa.otp import OtpConfig, OtpIssuer, utcnow
from .mfa.totp import TotpService, TotpSetup
from .mfa.verifier import VerificationResult, Verifier
from .models import Account, TwoFactorConfig, TwoFactorMethod
from .settings import TwoFactorSettings

if TYPE_CHECKING:
    from .delivery.records import DeliveryRecord
    from .models import PendingOtp
    from .observability.metrics import TwoFactorMetrics
    from .ports import (
        IAccountRepository,
        IAuditStore,
        IOtpDeliveryHook,
        IOtpRateLimitStore,
        IPendingSessionStore,
    )

logger = logging.getLogger(__name__)

_CODE_PATTERN = re.compile(r"^\d{6}$")
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_MIN_BACKUP_CODE_LENGTH = 8
_SETUP_METHODS = (TwoFactorMethod.TOTP, TwoFactorMethod.EMAIL, TwoFactorMethod.SMS)


@dataclass(frozen=True)
class SetupChallenge:
    """Material returned when setup starts.

    Attributes:
        method: Method being enrolled.
        totp: Secret, QR code and manual key (TOTP only).
        masked_destination: Where the code was sent (EMAIL/SMS only).
        expires_at: Expiry of the code that was sent (EMAIL/SMS only).
    """

    method: TwoFactorMethod
    totp: TotpSetup | None = None
    masked_destination: str | None = None
    expires_at: datetime | None = None


@dataclass(frozen=True)
class LoginChallenge:
    """Outcome of a login challenge request.

    TOTP accounts get no delivery; the authenticator app computes the code.
    """

    method: TwoFactorMethod
    masked_destination: str | None = None
    expires_at: datetime | None = None


@dataclass(frozen=True)
class TwoFactorStatus:
    enabled: bool
    method: TwoFactorMethod
    pending_setup: bool
    backup_codes_remaining: int


# ═══════════════════════════════════════════════════════════════
# INPUT VALIDATION
# ═══════════════════════════════════════════════════════════════


def parse_method(method: TwoFactorMethod | str) -> TwoFactorMethod:
    """Parse a method name accepted for setup (TOTP, EMAIL, SMS)."""
    if isinstance(method, TwoFactorMethod):
        parsed = method
    else:
        try:
            parsed = TwoFactorMethod(str(method).strip().upper())
        except ValueError:
            parsed = TwoFactorMethod.NONE
    if parsed not in _SETUP_METHODS:
        raise ValidationError({"method": ["Method must be one of TOTP, EMAIL, SMS"]})
    return parsed


def normalize_email(email: str) -> str:
    """Lowercase and strip an email, rejecting malformed input."""
    normalized = (email or "").strip().lower()
    if not _EMAIL_PATTERN.match(normalized):
        raise ValidationError({"email": ["Invalid email address"]})
    return normalized


def validate_code(code: str, *, is_backup_code: bool = False) -> str:
    """Check the shape of a submitted code.

    Verification codes are exactly 6 digits; backup codes carry at least
    8 alphanumerics once separators are removed.
    """
    code = (code or "").strip()
    if is_backup_code:
        if len(BackupCodeManager.normalize(code)) < _MIN_BACKUP_CODE_LENGTH:
            raise ValidationError(
                {"code": ["Backup codes must be at least 8 characters"]}
            )
        return code
    if not _CODE_PATTERN.match(code):
        raise ValidationError({"code": ["Code must be 6 digits"]})
    return code


# ═══════════════════════════════════════════════════════════════
# SERVICE
# ═══════════════════════════════════════════════════════════════


class TwoFactorService:
    """Setup, login challenge and disable operations for 2FA."""

    def __init__(
        self,
        *,
        repository: IAccountRepository,
        delivery_hook: IOtpDeliveryHook,
        pending_store: IPendingSessionStore,
        settings: TwoFactorSettings | None = None,
        rate_limit_store: IOtpRateLimitStore | None = None,
        audit_store: IAuditStore | None = None,
        metrics: TwoFactorMetrics | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the service.

        Args:
            repository: Credential store.
            delivery_hook: Email/SMS code delivery.
            pending_store: Pending-session bridge for passed challenges.
            settings: Tunables; defaults match the TutorMe deployment.
            rate_limit_store: Resend cooldown storage (in-memory if not provided).
            audit_store: Receives an event per state change or failure.
            metrics: Prometheus metrics; disabled when not provided.
            clock: Source of the current UTC time.
        """
        self.settings = settings or TwoFactorSettings()
        self.repository = repository
        self.pending_store = pending_store
        self.audit_store = audit_store
        self.metrics = metrics
        self.clock = clock

        self.password_hasher = PasswordHasher(rounds=self.settings.bcrypt_rounds)
        self.totp_service = TotpService(
            issuer=self.settings.issuer,
            valid_window=self.settings.totp_valid_window,
        )
        self.otp_issuer = OtpIssuer(
            repository=repository,
            delivery_hook=delivery_hook,
            config=OtpConfig(
                ttl_seconds=self.settings.otp_ttl_seconds,
                cooldown_seconds=self.settings.otp_cooldown_seconds,
            ),
            rate_limit_store=rate_limit_store,
            clock=clock,
        )
        self.backup_codes = BackupCodeManager(
            repository=repository,
            hasher=self.password_hasher,
            default_count=self.settings.backup_code_count,
        )
        self.verifier = Verifier(
            repository=repository,
            totp_service=self.totp_service,
            backup_codes=self.backup_codes,
            clock=clock,
        )

    # ───────────────────────────────────────────────────────────
    # Setup
    # ───────────────────────────────────────────────────────────

    async def begin_setup(
        self, account_id: str, method: TwoFactorMethod | str
    ) -> SetupChallenge:
        """Start enrolling ``method``.

        An account without 2FA stays disabled until the method is confirmed.
        An account with 2FA enabled keeps its current method and backup codes
        in force; they are replaced only by a successful ``confirm_setup``.

        Raises:
            ValidationError: Unknown method.
            NotFoundError: Account does not exist.
            MissingContactError: SMS without a phone number on file.
        """
        method = parse_method(method)
        async with self._boundary("begin_setup", method):
            account = await self._load_by_id(account_id)
            config = account.two_factor

            if method is TwoFactorMethod.TOTP:
                totp = self.totp_service.generate(account.email)
                await self.repository.save_two_factor(
                    account.account_id,
                    config.with_setup(method, totp_secret=totp.secret),
                )
                challenge = SetupChallenge(method=method, totp=totp)
            else:
                otp = await self.otp_issuer.prepare(account, method)
                await self.repository.save_two_factor(
                    account.account_id,
                    config.with_setup(method, pending_otp=otp),
                )
                await self._dispatch(account, otp)
                challenge = SetupChallenge(
                    method=method,
                    masked_destination=self._destination(account, method),
                    expires_at=otp.expires_at,
                )

            logger.info(
                "2FA setup started for account %s with %s", account_id, method.value
            )
            await self._audit(
                TwoFactorAuditEvent(
                    event_type=TwoFactorEventType.SETUP_STARTED,
                    account_id=account_id,
                    method=method.value,
                )
            )
            return challenge

    async def confirm_setup(
        self, account_id: str, method: TwoFactorMethod | str, code: str
    ) -> list[str]:
        """Verify the first code and enable 2FA.

        Returns:
            Freshly generated plaintext backup codes. Shown once; only
            their hashes are stored.

        Raises:
            ValidationError: Malformed method or code.
            NotFoundError: Account missing or no setup pending for ``method``.
            OtpNotFoundError, OtpExpiredError, InvalidCodeError: Verification failed.
        """
        method = parse_method(method)
        code = validate_code(code)
        async with self._boundary("confirm_setup", method):
            account = await self._load_by_id(account_id)
            if not account.two_factor.is_pending(method):
                raise NotFoundError(
                    f"No {method.value} setup pending for account {account_id}"
                )

            await self._verify(account, code, method=method, setup=True)

            plaintext = self.backup_codes.generate()
            hashes = await self.backup_codes.hash_all(plaintext)
            await self.repository.save_two_factor(
                account.account_id,
                TwoFactorConfig(
                    method=method,
                    enabled=True,
                    totp_secret=account.two_factor.setup_totp_secret
                    if method is TwoFactorMethod.TOTP
                    else None,
                    backup_codes=hashes,
                ),
            )

            logger.info("2FA enabled for account %s with %s", account_id, method.value)
            await self._audit(
                TwoFactorAuditEvent(
                    event_type=TwoFactorEventType.ENABLED,
                    account_id=account_id,
                    method=method.value,
                    metadata={"backup_codes": len(plaintext)},
                )
            )
            return plaintext

    # ───────────────────────────────────────────────────────────
    # Login challenge
    # ───────────────────────────────────────────────────────────

    async def issue_login_challenge(self, email: str) -> LoginChallenge:
        """Prepare the second step of a login.

        EMAIL/SMS accounts receive a new code, replacing any outstanding one.

        Raises:
            ValidationError: Malformed email.
            NotFoundError: Unknown email or 2FA not enabled.
            MissingContactError: SMS account without a phone number.
            ResendCooldownError: A code was sent too recently.
        """
        email = normalize_email(email)
        async with self._boundary("issue_login_challenge"):
            account = await self._load_enabled_by_email(email)
            method = account.two_factor.method

            if method is TwoFactorMethod.TOTP:
                return LoginChallenge(method=method)

            otp = await self._issue(account, method)
            await self._audit(
                TwoFactorAuditEvent(
                    event_type=TwoFactorEventType.CHALLENGE_ISSUED,
                    account_id=account.account_id,
                    method=method.value,
                )
            )
            return LoginChallenge(
                method=method,
                masked_destination=self._destination(account, method),
                expires_at=otp.expires_at,
            )

    async def verify_login_challenge(
        self, email: str, code: str, is_backup_code: bool = False
    ) -> str:
        """Verify a login code and mint a pending-session token.

        Returns:
            Token the login finalisation step exchanges for a session.

        Raises:
            ValidationError: Malformed email or code.
            NotFoundError: Unknown email or 2FA not enabled.
            NoBackupCodesError, OtpNotFoundError, OtpExpiredError,
            InvalidCodeError: Verification failed.
        """
        email = normalize_email(email)
        code = validate_code(code, is_backup_code=is_backup_code)
        async with self._boundary("verify_login_challenge"):
            account = await self._load_enabled_by_email(email)
            result = await self._verify(account, code, is_backup_code=is_backup_code)

            if result.used_backup_code:
                logger.warning(
                    "Account %s signed in with a backup code (%d left)",
                    account.account_id,
                    result.remaining_backup_codes,
                )
                await self._audit(
                    TwoFactorAuditEvent(
                        event_type=TwoFactorEventType.BACKUP_CODE_USED,
                        account_id=account.account_id,
                        method=result.method.value,
                        metadata={"remaining": result.remaining_backup_codes},
                    )
                )

            token = await self.pending_store.create(account.account_id)
            await self._audit(
                TwoFactorAuditEvent(
                    event_type=TwoFactorEventType.VERIFIED,
                    account_id=account.account_id,
                    method=result.method.value,
                    metadata={"backup_code": result.used_backup_code},
                )
            )
            return token

    async def resend_otp(self, account_id: str) -> LoginChallenge:
        """Send a new code for the account's pending or enabled EMAIL/SMS method.

        Raises:
            NotFoundError: Account missing or its method does not use codes.
            MissingContactError: SMS account without a phone number.
            ResendCooldownError: A code was sent too recently.
        """
        async with self._boundary("resend_otp"):
            account = await self._load_by_id(account_id)
            config = account.two_factor
            method = config.setup_method
            if not method.uses_otp:
                method = config.method
            if not method.uses_otp:
                raise NotFoundError(
                    f"Account {account_id} has no email or SMS method configured"
                )

            otp = await self._issue(account, method)
            return LoginChallenge(
                method=method,
                masked_destination=self._destination(account, method),
                expires_at=otp.expires_at,
            )

    # ───────────────────────────────────────────────────────────
    # Management
    # ───────────────────────────────────────────────────────────

    async def disable(self, account_id: str, current_password: str) -> None:
        """Clear every 2FA secret after confirming the account password.

        Raises:
            UnauthorizedError: Wrong password; nothing is changed.
            NotFoundError: Account does not exist.
        """
        async with self._boundary("disable"):
            account = await self._load_by_id(account_id)
            await self._check_password(account, current_password)

            previous = account.two_factor.method
            await self.repository.save_two_factor(
                account.account_id, TwoFactorConfig.cleared()
            )

            logger.info("2FA disabled for account %s", account_id)
            await self._audit(
                TwoFactorAuditEvent(
                    event_type=TwoFactorEventType.DISABLED,
                    account_id=account_id,
                    method=previous.value,
                )
            )

    async def regenerate_backup_codes(
        self, account_id: str, current_password: str
    ) -> list[str]:
        """Replace all backup codes with a fresh batch.

        Raises:
            UnauthorizedError: Wrong password.
            NotFoundError: Account missing or 2FA not enabled.
        """
        async with self._boundary("regenerate_backup_codes"):
            account = await self._load_by_id(account_id)
            if not account.two_factor.enabled:
                raise NotFoundError(f"2FA not enabled for account {account_id}")
            await self._check_password(account, current_password)

            plaintext = self.backup_codes.generate()
            hashes = await self.backup_codes.hash_all(plaintext)
            config = account.two_factor
            await self.repository.save_two_factor(
                account.account_id, replace(config, backup_codes=hashes)
            )

            await self._audit(
                TwoFactorAuditEvent(
                    event_type=TwoFactorEventType.BACKUP_CODES_REGENERATED,
                    account_id=account_id,
                    method=config.method.value,
                )
            )
            return plaintext

    async def get_status(self, account_id: str) -> TwoFactorStatus:
        async with self._boundary("get_status"):
            account = await self._load_by_id(account_id)
            config = account.two_factor
            return TwoFactorStatus(
                enabled=config.enabled,
                method=config.method,
                pending_setup=config.setup_method is not TwoFactorMethod.NONE,
                backup_codes_remaining=len(config.backup_codes),
            )

    # ───────────────────────────────────────────────────────────
    # Helpers
    # ───────────────────────────────────────────────────────────

    @asynccontextmanager
    async def _boundary(
        self, operation: str, method: TwoFactorMethod | None = None
    ) -> AsyncIterator[None]:
        timer = (
            self.metrics.operation(operation, method=method.value if method else "unknown")
            if self.metrics
            else nullcontext()
        )
        with timer:
            try:
                yield
            except TwoFactorError:
                raise
            except Exception as e:
                logger.exception("2FA %s failed unexpectedly", operation)
                raise TwoFactorServiceError(f"{operation} failed: {e}") from e

    async def _load_by_id(self, account_id: str) -> Account:
        account = await self.repository.get_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return account

    async def _load_enabled_by_email(self, email: str) -> Account:
        account = await self.repository.get_by_email(email)
        if account is None or not account.two_factor.enabled:
            # Same error for both cases; callers cannot probe for accounts.
            raise NotFoundError("Two-factor authentication is not enabled")
        return account

    async def _check_password(self, account: Account, password: str) -> None:
        if not account.password_hash or not password:
            raise UnauthorizedError(f"Password check failed for {account.account_id}")
        matches = await asyncio.to_thread(
            self.password_hasher.verify, account.password_hash, password
        )
        if not matches:
            await self._audit(
                verification_failed_event(
                    account.account_id,
                    account.two_factor.method.value,
                    UnauthorizedError.code,
                )
            )
            raise UnauthorizedError(f"Password check failed for {account.account_id}")

    async def _verify(
        self,
        account: Account,
        code: str,
        *,
        is_backup_code: bool = False,
        method: TwoFactorMethod | None = None,
        setup: bool = False,
    ) -> VerificationResult:
        try:
            return await self.verifier.verify(
                account,
                code,
                is_backup_code=is_backup_code,
                method=method,
                setup=setup,
            )
        except TwoFactorError as e:
            logger.info(
                "2FA verification failed for account %s: %s",
                account.account_id,
                e.code,
            )
            await self._audit(
                verification_failed_event(
                    account.account_id,
                    (method or account.two_factor.method).value,
                    e.code,
                    backup_code=is_backup_code,
                )
            )
            raise

    async def _issue(self, account: Account, method: TwoFactorMethod) -> PendingOtp:
        otp, record = await self.otp_issuer.issue(account, method)
        self._record_delivery(record)
        return otp

    async def _dispatch(self, account: Account, otp: PendingOtp) -> None:
        record = await self.otp_issuer.dispatch(account, otp)
        if not record.ok:
            logger.warning(
                "Setup code for account %s stored but not delivered", account.account_id
            )
        self._record_delivery(record)

    def _record_delivery(self, record: DeliveryRecord) -> None:
        if self.metrics:
            self.metrics.record_delivery(record)

    @staticmethod
    def _destination(account: Account, method: TwoFactorMethod) -> str:
        if method is TwoFactorMethod.SMS and account.phone:
            return mask_phone(account.phone)
        return mask_email(account.email)

    async def _audit(self, event: TwoFactorAuditEvent) -> None:
        if self.metrics:
            self.metrics.record_event(event)
        if self.audit_store is not None:
            await self.audit_store.record(event)


__all__: list[str] = [
    "TwoFactorService",
    "SetupChallenge",
    "LoginChallenge",
    "TwoFactorStatus",
    "parse_method",
    "normalize_email",
    "validate_code",
]
