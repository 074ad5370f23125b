"""Tests for the account and two-factor configuration records."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from tutorme_identity.models import (
    PendingOtp,
    PendingSetup,
    TwoFactorConfig,
    TwoFactorMethod,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class TestTwoFactorMethod:
    @pytest.mark.parametrize(
        ("method", "expected"),
        [
            (TwoFactorMethod.TOTP, False),
            (TwoFactorMethod.EMAIL, True),
            (TwoFactorMethod.SMS, True),
            (TwoFactorMethod.NONE, False),
        ],
    )
    def test_uses_otp(self, method: TwoFactorMethod, expected: bool) -> None:
        assert method.uses_otp is expected


class TestPendingOtp:
    def test_not_expired_at_expiry_instant(self) -> None:
        otp = PendingOtp(code="123456", expires_at=NOW, method=TwoFactorMethod.EMAIL)
        assert not otp.is_expired(NOW)

    def test_expired_one_millisecond_later(self) -> None:
        otp = PendingOtp(code="123456", expires_at=NOW, method=TwoFactorMethod.EMAIL)
        assert otp.is_expired(NOW + timedelta(milliseconds=1))


class TestTwoFactorConfig:
    def test_default_is_unconfigured(self) -> None:
        config = TwoFactorConfig()
        assert config.method is TwoFactorMethod.NONE
        assert not config.enabled
        assert config.backup_codes == ()

    def test_is_pending_only_for_started_method(self) -> None:
        config = TwoFactorConfig(method=TwoFactorMethod.TOTP, totp_secret="S")
        assert config.is_pending(TwoFactorMethod.TOTP)
        assert not config.is_pending(TwoFactorMethod.EMAIL)

    def test_enabled_config_is_not_pending(self) -> None:
        config = TwoFactorConfig(method=TwoFactorMethod.TOTP, enabled=True)
        assert not config.is_pending(TwoFactorMethod.TOTP)

    def test_unconfigured_is_not_pending(self) -> None:
        assert not TwoFactorConfig().is_pending(TwoFactorMethod.NONE)

    def test_with_setup_replaces_unconfirmed_config(self) -> None:
        config = TwoFactorConfig(method=TwoFactorMethod.TOTP, totp_secret="OLD")
        otp = PendingOtp("123456", NOW, TwoFactorMethod.EMAIL)

        staged = config.with_setup(TwoFactorMethod.EMAIL, pending_otp=otp)

        assert staged == TwoFactorConfig(method=TwoFactorMethod.EMAIL, pending_otp=otp)
        assert staged.is_pending(TwoFactorMethod.EMAIL)

    def test_with_setup_stages_beside_enabled_method(self) -> None:
        config = TwoFactorConfig(
            method=TwoFactorMethod.TOTP,
            enabled=True,
            totp_secret="OLD",
            backup_codes=("h1", "h2"),
        )

        staged = config.with_setup(TwoFactorMethod.TOTP, totp_secret="NEW")

        assert staged.enabled
        assert staged.method is TwoFactorMethod.TOTP
        assert staged.totp_secret == "OLD"
        assert staged.backup_codes == ("h1", "h2")
        assert staged.replacement == PendingSetup(TwoFactorMethod.TOTP, "NEW")
        assert staged.setup_totp_secret == "NEW"
        assert staged.is_pending(TwoFactorMethod.TOTP)

    def test_without_backup_code_removes_one_entry(self) -> None:
        config = TwoFactorConfig(backup_codes=("h1", "h2", "h3"))
        assert config.without_backup_code("h2").backup_codes == ("h1", "h3")
        assert config.backup_codes == ("h1", "h2", "h3")

    def test_cleared(self) -> None:
        assert TwoFactorConfig.cleared() == TwoFactorConfig()
