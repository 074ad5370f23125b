"""Tests for backup code generation and consumption."""

from __future__ import annotations

import re
from dataclasses import replace

import pytest

from tutorme_identity import InMemoryAccountRepository
from tutorme_identity.exceptions import InvalidCodeError, NoBackupCodesError
from tutorme_identity.mfa import BackupCodeManager
from tutorme_identity.models import TwoFactorConfig, TwoFactorMethod


@pytest.fixture
def manager(repository, hasher) -> BackupCodeManager:
    return BackupCodeManager(repository=repository, hasher=hasher)


async def _enable_with_codes(
    repository: InMemoryAccountRepository, manager: BackupCodeManager, count: int = 3
) -> list[str]:
    codes = manager.generate(count)
    await repository.save_two_factor(
        "acct-1",
        TwoFactorConfig(
            method=TwoFactorMethod.TOTP,
            enabled=True,
            totp_secret="JBSWY3DPEHPK3PXP",
            backup_codes=await manager.hash_all(codes),
        ),
    )
    return codes


class TestGenerate:
    def test_default_batch(self, manager: BackupCodeManager) -> None:
        codes = manager.generate()

        assert len(codes) == 10
        assert len(set(codes)) == 10
        assert all(re.fullmatch(r"[A-Z2-9]{4}-[A-Z2-9]{4}", code) for code in codes)

    def test_no_ambiguous_characters(self, manager: BackupCodeManager) -> None:
        joined = "".join(manager.generate(50))
        assert not set(joined) & set("O0I1")

    def test_normalize(self) -> None:
        assert BackupCodeManager.normalize(" abcd-efgh ") == "ABCDEFGH"


class TestHashing:
    @pytest.mark.asyncio
    async def test_hashes_are_not_plaintext(self, manager: BackupCodeManager) -> None:
        codes = manager.generate(2)
        hashes = await manager.hash_all(codes)

        assert len(hashes) == 2
        assert not set(hashes) & set(codes)

    @pytest.mark.asyncio
    async def test_find_match_accepts_unformatted_input(
        self, manager: BackupCodeManager
    ) -> None:
        codes = manager.generate(3)
        hashes = await manager.hash_all(codes)

        typed = codes[1].replace("-", "").lower()
        assert await manager.find_match(typed, hashes) == hashes[1]
        assert await manager.find_match("ZZZZ-ZZZZ", hashes) is None


class TestConsume:
    @pytest.mark.asyncio
    async def test_consume_removes_exactly_one(
        self, manager: BackupCodeManager, repository: InMemoryAccountRepository
    ) -> None:
        codes = await _enable_with_codes(repository, manager)
        account = await repository.get_by_id("acct-1")

        remaining = await manager.consume(account, codes[0])

        stored = (await repository.get_by_id("acct-1")).two_factor.backup_codes
        assert remaining == 2
        assert len(stored) == 2

    @pytest.mark.asyncio
    async def test_reuse_rejected(
        self, manager: BackupCodeManager, repository: InMemoryAccountRepository
    ) -> None:
        codes = await _enable_with_codes(repository, manager)
        await manager.consume(await repository.get_by_id("acct-1"), codes[0])

        with pytest.raises(InvalidCodeError):
            await manager.consume(await repository.get_by_id("acct-1"), codes[0])

    @pytest.mark.asyncio
    async def test_concurrent_reuse_from_stale_read_rejected(
        self, manager: BackupCodeManager, repository: InMemoryAccountRepository
    ) -> None:
        codes = await _enable_with_codes(repository, manager)
        stale = await repository.get_by_id("acct-1")
        await manager.consume(await repository.get_by_id("acct-1"), codes[0])

        with pytest.raises(InvalidCodeError, match="already consumed"):
            await manager.consume(stale, codes[0])

    @pytest.mark.asyncio
    async def test_no_codes(
        self, manager: BackupCodeManager, repository: InMemoryAccountRepository
    ) -> None:
        account = await repository.get_by_id("acct-1")
        with pytest.raises(NoBackupCodesError):
            await manager.consume(account, "ABCD-EFGH")

    @pytest.mark.asyncio
    async def test_wrong_code_leaves_codes(
        self, manager: BackupCodeManager, repository: InMemoryAccountRepository
    ) -> None:
        await _enable_with_codes(repository, manager)
        account = await repository.get_by_id("acct-1")

        with pytest.raises(InvalidCodeError):
            await manager.consume(replace(account), "ZZZZ-ZZZZ")

        assert len((await repository.get_by_id("acct-1")).two_factor.backup_codes) == 3
