"""MFA building blocks.

Supports:
- TOTP (Google Authenticator, Microsoft Authenticator, Authy, etc.)
- Email OTP and SMS OTP (delivered through IOtpDeliveryHook)
- Backup codes (single-use recovery codes)
"""

from .backup_codes import BackupCodeManager
from .otp import InMemoryOtpRateLimitStore, OtpConfig, OtpIssuer
from .totp import TotpService, TotpSetup
from .verifier import VerificationResult, Verifier

__all__: list[str] = [
    "TotpService",
    "TotpSetup",
    "OtpConfig",
    "OtpIssuer",
    "InMemoryOtpRateLimitStore",
    "BackupCodeManager",
    "Verifier",
    "VerificationResult",
]
