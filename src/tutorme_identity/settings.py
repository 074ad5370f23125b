"""Configuration for the two-factor flow.

All values have development defaults; ``TwoFactorSettings.from_env()``
reads overrides from the process environment.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .delivery import (
    ConsoleSender,
    HttpApiSmsSender,
    IMessageSender,
    OtpDeliveryHook,
    SmtpEmailSender,
    TwilioSmsSender,
)
from .pending import InMemoryPendingSessionStore, RedisPendingSessionStore
from .ports import IPendingSessionStore

logger = logging.getLogger(__name__)


def _to_int(val: str | None, default: int) -> int:
    try:
        return int(val) if val is not None else default
    except ValueError:
        return default


def _to_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


def _to_json(val: str | None) -> dict[str, Any]:
    if not val:
        return {}
    try:
        parsed = json.loads(val)
    except ValueError:
        logger.warning("Ignoring malformed JSON setting: %r", val)
        return {}
    return parsed if isinstance(parsed, dict) else {}


@dataclass(frozen=True)
class SmtpSettings:
    """SMTP server settings. Email falls back to the console when incomplete."""

    host: str | None = None
    port: int = 587
    username: str | None = None
    password: str | None = None
    from_email: str = "noreply@tutorme.com"

    @property
    def configured(self) -> bool:
        return bool(self.host and self.username and self.password)


@dataclass(frozen=True)
class SmsSettings:
    """SMS provider settings.

    Attributes:
        provider: ``console``, ``api`` or ``twilio``.
    """

    provider: str = "console"
    api_url: str | None = None
    api_key: str | None = None
    api_headers: dict[str, str] = field(default_factory=dict)
    api_extra_data: dict[str, Any] = field(default_factory=dict)
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_from_number: str | None = None


@dataclass(frozen=True)
class TwoFactorSettings:
    """Top-level settings.

    Attributes:
        issuer: Name shown in authenticator apps and messages.
        otp_ttl_seconds: Lifetime of email/SMS codes (10 minutes).
        otp_cooldown_seconds: Minimum seconds between sends (0 disables).
        totp_valid_window: Accepted TOTP steps either side of now.
        backup_code_count: Codes generated on confirm-setup.
        pending_session_ttl_seconds: Lifetime of pending-session tokens.
        pending_session_single_use: Delete pending sessions on first read.
        redis_url: Shared store for pending sessions; in-memory when unset.
    """

    issuer: str = "TutorMe"
    otp_ttl_seconds: int = 600
    otp_cooldown_seconds: int = 0
    totp_valid_window: int = 2
    backup_code_count: int = 10
    bcrypt_rounds: int = 10
    pending_session_ttl_seconds: int = 600
    pending_session_single_use: bool = True
    redis_url: str | None = None
    smtp: SmtpSettings = field(default_factory=SmtpSettings)
    sms: SmsSettings = field(default_factory=SmsSettings)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TwoFactorSettings:
        """Build settings from environment variables."""
        env = os.environ if environ is None else environ
        smtp = SmtpSettings(
            host=env.get("SMTP_HOST"),
            port=_to_int(env.get("SMTP_PORT"), 587),
            username=env.get("SMTP_USER"),
            password=env.get("SMTP_PASS") or env.get("SMTP_PASSWORD"),
            from_email=env.get("SMTP_FROM") or env.get("SMTP_USER") or "noreply@tutorme.com",
        )
        sms = SmsSettings(
            provider=env.get("SMS_PROVIDER", "console").lower(),
            api_url=env.get("SMS_API_URL"),
            api_key=env.get("SMS_API_KEY"),
            api_headers=_to_json(env.get("SMS_API_HEADERS")),
            api_extra_data=_to_json(env.get("SMS_API_EXTRA_DATA")),
            twilio_account_sid=env.get("TWILIO_ACCOUNT_SID"),
            twilio_auth_token=env.get("TWILIO_AUTH_TOKEN"),
            twilio_from_number=env.get("TWILIO_FROM_NUMBER"),
        )
        return cls(
            issuer=env.get("TWO_FACTOR_ISSUER", "TutorMe"),
            otp_ttl_seconds=_to_int(env.get("TWO_FACTOR_OTP_TTL"), 600),
            otp_cooldown_seconds=_to_int(env.get("TWO_FACTOR_OTP_COOLDOWN"), 0),
            totp_valid_window=_to_int(env.get("TWO_FACTOR_TOTP_WINDOW"), 2),
            backup_code_count=_to_int(env.get("TWO_FACTOR_BACKUP_CODES"), 10),
            bcrypt_rounds=_to_int(env.get("TWO_FACTOR_BCRYPT_ROUNDS"), 10),
            pending_session_ttl_seconds=_to_int(env.get("TWO_FACTOR_PENDING_TTL"), 600),
            pending_session_single_use=_to_bool(
                env.get("TWO_FACTOR_PENDING_SINGLE_USE"), True
            ),
            redis_url=env.get("REDIS_URL"),
            smtp=smtp,
            sms=sms,
        )


def build_email_sender(settings: SmtpSettings) -> IMessageSender:
    if not settings.configured:
        logger.warning(
            "SMTP not configured (SMTP_HOST, SMTP_USER, SMTP_PASSWORD); "
            "email codes will be logged to the console"
        )
        return ConsoleSender()
    assert settings.host is not None
    return SmtpEmailSender(
        host=settings.host,
        port=settings.port,
        username=settings.username,
        password=settings.password,
        from_email=settings.from_email,
    )


def build_sms_sender(settings: SmsSettings) -> IMessageSender:
    if settings.provider == "api":
        if not settings.api_url or not settings.api_key:
            raise ValueError("SMS_API_URL and SMS_API_KEY must be set for API provider")
        return HttpApiSmsSender(
            api_url=settings.api_url,
            api_key=settings.api_key,
            extra_headers=settings.api_headers,
            extra_data=settings.api_extra_data,
        )
    if settings.provider == "twilio":
        if not (
            settings.twilio_account_sid
            and settings.twilio_auth_token
            and settings.twilio_from_number
        ):
            raise ValueError(
                "TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_FROM_NUMBER "
                "must be set for Twilio provider"
            )
        return TwilioSmsSender(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            from_number=settings.twilio_from_number,
        )
    if settings.provider != "console":
        logger.warning("Unknown SMS_PROVIDER %r, using console", settings.provider)
    return ConsoleSender()


def build_delivery_hook(settings: TwoFactorSettings) -> OtpDeliveryHook:
    """Create the delivery hook described by ``settings``."""
    return OtpDeliveryHook(
        email_sender=build_email_sender(settings.smtp),
        sms_sender=build_sms_sender(settings.sms),
        brand=settings.issuer,
        ttl_seconds=settings.otp_ttl_seconds,
    )


def build_pending_session_store(settings: TwoFactorSettings) -> IPendingSessionStore:
    """Redis-backed store when ``REDIS_URL`` is set, process-local otherwise."""
    if settings.redis_url:
        from redis.asyncio import from_url

        return RedisPendingSessionStore(
            from_url(settings.redis_url),
            ttl_seconds=settings.pending_session_ttl_seconds,
            single_use=settings.pending_session_single_use,
        )
    logger.warning(
        "REDIS_URL not set; pending 2FA sessions are process-local "
        "and limited to a single instance"
    )
    return InMemoryPendingSessionStore(
        ttl_seconds=settings.pending_session_ttl_seconds,
        single_use=settings.pending_session_single_use,
    )


__all__: list[str] = [
    "TwoFactorSettings",
    "SmtpSettings",
    "SmsSettings",
    "build_email_sender",
    "build_sms_sender",
    "build_delivery_hook",
    "build_pending_session_store",
]
