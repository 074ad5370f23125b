"""Tests for the bcrypt hasher."""

from __future__ import annotations

from tutorme_identity.hasher import PasswordHasher


class TestPasswordHasher:
    def test_hash_and_verify(self, hasher: PasswordHasher) -> None:
        hashed = hasher.hash("secret")

        assert hashed.startswith("$2")
        assert hasher.verify(hashed, "secret")
        assert not hasher.verify(hashed, "other")

    def test_hashes_are_salted(self, hasher: PasswordHasher) -> None:
        assert hasher.hash("secret") != hasher.hash("secret")

    def test_malformed_hash_never_matches(self, hasher: PasswordHasher) -> None:
        assert not hasher.verify("not-a-bcrypt-hash", "secret")

    def test_needs_rehash_when_cost_increases(self, hasher: PasswordHasher) -> None:
        hashed = hasher.hash("secret")

        assert not hasher.needs_rehash(hashed)
        assert PasswordHasher(rounds=10).needs_rehash(hashed)
