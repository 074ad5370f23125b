"""Tests for destination masking."""

from __future__ import annotations

import pytest

from tutorme_identity.masking import mask_email, mask_phone


@pytest.mark.parametrize(
    ("phone", "expected"),
    [
        ("1234567890", "(123) ***-7890"),
        ("+1 555", "***1555"),
        ("", "***"),
    ],
)
def test_mask_phone(phone: str, expected: str) -> None:
    assert mask_phone(phone) == expected


@pytest.mark.parametrize(
    ("email", "expected"),
    [
        ("alice@example.com", "a***e@example.com"),
        ("al@example.com", "a***@example.com"),
        ("not-an-email", "***"),
    ],
)
def test_mask_email(email: str, expected: str) -> None:
    assert mask_email(email) == expected
