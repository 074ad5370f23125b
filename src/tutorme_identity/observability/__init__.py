"""Observability helpers for the two-factor flow."""

from .metrics import TwoFactorMetrics

__all__: list[str] = ["TwoFactorMetrics"]
