"""Credential store adapters."""

from .memory import InMemoryAccountRepository

__all__: list[str] = ["InMemoryAccountRepository"]
