"""Masking of delivery destinations shown back to the caller."""

from __future__ import annotations

import re

_US_PHONE = re.compile(r"(\d{3})(\d{3})(\d{4})")


def mask_phone(phone: str) -> str:
    """Mask a phone number, e.g. ``1234567890`` -> ``(123) ***-7890``.

    Numbers that do not contain ten consecutive digits keep only their
    last four digits.
    """
    masked, count = _US_PHONE.subn(r"(\1) ***-\3", phone, count=1)
    if count:
        return masked
    digits = re.sub(r"\D", "", phone)
    return f"***{digits[-4:]}" if digits else "***"


def mask_email(email: str) -> str:
    """Mask the local part of an email, e.g. ``alice@x.com`` -> ``a***e@x.com``."""
    local, sep, domain = email.partition("@")
    if not sep:
        return "***"
    if len(local) <= 2:
        return f"{local[:1]}***@{domain}"
    return f"{local[0]}***{local[-1]}@{domain}"


__all__: list[str] = ["mask_phone", "mask_email"]
