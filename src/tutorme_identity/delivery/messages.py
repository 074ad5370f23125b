"""Message bodies for one-time code delivery."""

from __future__ import annotations

from string import Template

from .records import OtpMessage

EMAIL_SUBJECT = "Your Two-Factor Authentication Code"

_EMAIL_TEXT = Template(
    """$brand - Two-Factor Authentication Code

Your verification code is: $code

This code will expire in $minutes minutes.

If you didn't request this code, please ignore this email or contact support if you have concerns."""
)

_EMAIL_HTML = Template(
    """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>Your Verification Code</title>
  </head>
  <body style="font-family: Arial, sans-serif; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background: linear-gradient(135deg, #ec4899 0%, #8b5cf6 100%); padding: 30px; text-align: center;">
      <h1 style="color: white; margin: 0;">$brand</h1>
    </div>
    <div style="background: #f9fafb; padding: 30px; border: 1px solid #e5e7eb;">
      <h2 style="margin-top: 0;">Two-Factor Authentication Code</h2>
      <p>Your verification code for $brand is:</p>
      <div style="border: 2px dashed #ec4899; padding: 20px; text-align: center; font-size: 32px; font-weight: bold; letter-spacing: 8px; font-family: 'Courier New', monospace;">
        $code
      </div>
      <p>This code will expire in <strong>$minutes minutes</strong>.</p>
      <p style="color: #9ca3af; font-size: 12px;">
        If you didn't request this code, please ignore this email or contact support if you have concerns.
      </p>
    </div>
  </body>
</html>"""
)

_SMS_TEXT = Template(
    "Your $brand verification code is: $code. This code expires in $minutes minutes."
)


def render_email_otp(code: str, *, brand: str = "TutorMe", ttl_seconds: int = 600) -> OtpMessage:
    """Build the text and HTML email carrying ``code``."""
    values = {"brand": brand, "code": code, "minutes": ttl_seconds // 60}
    return OtpMessage(
        subject=EMAIL_SUBJECT,
        body_text=_EMAIL_TEXT.substitute(values),
        body_html=_EMAIL_HTML.substitute(values),
        code=code,
    )


def render_sms_otp(code: str, *, brand: str = "TutorMe", ttl_seconds: int = 600) -> OtpMessage:
    """Build the SMS text carrying ``code``."""
    return OtpMessage(
        body_text=_SMS_TEXT.substitute(
            brand=brand, code=code, minutes=ttl_seconds // 60
        ),
        code=code,
    )


__all__: list[str] = ["EMAIL_SUBJECT", "render_email_otp", "render_sms_otp"]
