"""Two-factor authentication errors.

Every failure raised by the 2FA flow is a TwoFactorError. Each error carries
a stable ``code`` for clients and a ``public_message`` that is safe to show
to the caller; the exception's own message may contain more detail and is
meant for logs only.
"""

from __future__ import annotations

# ═══════════════════════════════════════════════════════════════
# BASE ERROR
# ═══════════════════════════════════════════════════════════════


class TwoFactorError(Exception):
    """Root exception for the two-factor authentication flow."""

    code: str = "TWO_FACTOR_ERROR"
    public_message: str = "Two-factor authentication failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)


# ═══════════════════════════════════════════════════════════════
# CALLER / LOOKUP ERRORS
# ═══════════════════════════════════════════════════════════════


class UnauthorizedError(TwoFactorError):
    """Raised when the caller identity or password confirmation is invalid.

    Never reveals which part of the check failed.
    """

    code = "UNAUTHORIZED"
    public_message = "Unauthorized"


class NotFoundError(TwoFactorError):
    """Raised when an account, configuration or pending challenge is absent.

    The public message is deliberately generic so that callers cannot
    probe for account existence.
    """

    code = "NOT_FOUND"
    public_message = "Two-factor authentication is not enabled for this account"


class AccountNotFoundError(NotFoundError):
    """Raised when an authenticated caller's account record is missing."""

    code = "ACCOUNT_NOT_FOUND"
    public_message = "Not found"


class ValidationError(TwoFactorError):
    """Raised when request input is malformed.

    Carries structured errors: ``{field: [messages]}``.
    """

    code = "VALIDATION_ERROR"
    public_message = "Invalid request data"

    def __init__(self, errors: dict[str, list[str]] | str | None = None) -> None:
        if isinstance(errors, str):
            self.errors: dict[str, list[str]] = {"__root__": [errors]}
        elif errors is None:
            self.errors = {}
        else:
            self.errors = errors
        super().__init__(str(self.errors))


# ═══════════════════════════════════════════════════════════════
# CHALLENGE ERRORS
# ═══════════════════════════════════════════════════════════════


class OtpNotFoundError(TwoFactorError):
    """Raised when no one-time code was issued for the active method."""

    code = "OTP_NOT_FOUND"
    public_message = "Verification code not found. Please request a new code."


class OtpExpiredError(TwoFactorError):
    """Raised when the pending one-time code is past its expiry."""

    code = "OTP_EXPIRED"
    public_message = "Verification code has expired. Please request a new one."


class InvalidCodeError(TwoFactorError):
    """Raised when a submitted code does not match.

    Covers TOTP, email/SMS OTP and backup code mismatches alike.
    """

    code = "INVALID_CODE"
    public_message = "Invalid verification code"


class NoBackupCodesError(TwoFactorError):
    """Raised when a backup code is submitted but none remain."""

    code = "NO_BACKUP_CODES"
    public_message = "No backup codes found"


class MissingContactError(TwoFactorError):
    """Raised when SMS is requested for an account without a phone number."""

    code = "MISSING_CONTACT"
    public_message = (
        "Phone number is required for SMS 2FA. "
        "Please add a phone number in your profile settings."
    )


class ResendCooldownError(TwoFactorError):
    """Raised when a new code is requested before the cooldown elapsed.

    Attributes:
        retry_after: Seconds the caller should wait before retrying.
    """

    code = "RESEND_COOLDOWN"
    public_message = "Please wait before requesting a new code"

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(
            f"Please wait {retry_after} seconds before requesting a new code"
        )


# ═══════════════════════════════════════════════════════════════
# INTERNAL ERRORS
# ═══════════════════════════════════════════════════════════════


class TwoFactorServiceError(TwoFactorError):
    """Raised when a collaborator (store, transport) fails unexpectedly."""

    code = "INTERNAL_ERROR"
    public_message = "Internal server error"


__all__: list[str] = [
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
