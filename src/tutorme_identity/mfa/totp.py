"""TOTP (Time-based One-Time Password) service.

Works with any RFC 6238 authenticator app (Google Authenticator,
Microsoft Authenticator, Authy, 1Password). The secret is generated once
at setup time; there is no per-challenge issuance.
"""

from __future__ import annotations

import base64
import io
from dataclasses import dataclass
from datetime import datetime

import pyotp
import qrcode


@dataclass(frozen=True)
class TotpSetup:
    """TOTP setup data returned when setting up TOTP.

    Attributes:
        secret: Base32-encoded TOTP secret.
        otpauth_uri: otpauth:// URI encoded in the QR code.
        qr_code_data_url: PNG QR code as a ``data:`` URL.
        manual_entry_key: Secret grouped in fours for manual entry.
    """

    secret: str
    otpauth_uri: str
    qr_code_data_url: str
    manual_entry_key: str


class TotpService:
    """TOTP secret provisioning and code verification.

    Example:
        ```python
        totp_service = TotpService(issuer="TutorMe")

        setup = totp_service.generate("alice@example.com")
        # store setup.secret on the account, show setup.qr_code_data_url

        if totp_service.verify(setup.secret, "123456"):
            print("Valid!")
        ```
    """

    def __init__(
        self,
        *,
        issuer: str = "TutorMe",
        digits: int = 6,
        interval: int = 30,
        valid_window: int = 2,
        secret_length: int = 32,
    ) -> None:
        """Initialize TOTP service.

        Args:
            issuer: Application name shown in authenticator app.
            digits: Number of digits in code (default 6).
            interval: Time step in seconds (default 30).
            valid_window: Accept codes ±N steps for clock drift (default 2).
            secret_length: Length of the base32 secret (default 32).
        """
        self.issuer = issuer
        self.digits = digits
        self.interval = interval
        self.valid_window = valid_window
        self.secret_length = secret_length

    def _totp(self, secret: str) -> pyotp.TOTP:
        return pyotp.TOTP(
            secret,
            digits=self.digits,
            interval=self.interval,
            issuer=self.issuer,
        )

    def generate(self, email: str) -> TotpSetup:
        """Generate a new secret and the material to enrol it.

        Args:
            email: Account email, used in the authenticator label.

        Returns:
            TotpSetup with secret, provisioning URI and QR code.
        """
        secret = pyotp.random_base32(length=self.secret_length)
        uri = self._totp(secret).provisioning_uri(
            name=f"{self.issuer} ({email})",
            issuer_name=self.issuer,
        )
        return TotpSetup(
            secret=secret,
            otpauth_uri=uri,
            qr_code_data_url=self._qr_data_url(uri),
            manual_entry_key=self._format_secret(secret),
        )

    def _qr_data_url(self, uri: str) -> str:
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_L,
            box_size=10,
            border=4,
        )
        qr.add_data(uri)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        encoded = base64.b64encode(buffer.getvalue()).decode()
        return f"data:image/png;base64,{encoded}"

    def _format_secret(self, secret: str) -> str:
        """Format secret as groups of 4 characters."""
        secret = secret.rstrip("=")
        return " ".join(secret[i : i + 4] for i in range(0, len(secret), 4))

    def verify(self, secret: str, code: str, *, for_time: datetime | None = None) -> bool:
        """Check a code against ``secret`` within the drift window.

        Args:
            secret: Base32 secret stored on the account.
            code: Code typed by the user.
            for_time: Instant to verify at (default now).

        Returns:
            True if the code is valid.
        """
        if not code.isdigit() or len(code) != self.digits:
            return False
        return self._totp(secret).verify(
            code, for_time=for_time, valid_window=self.valid_window
        )


__all__: list[str] = ["TotpSetup", "TotpService"]
