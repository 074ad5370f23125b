"""Prometheus metrics for the two-factor flow.

Usage:
    ```python
    from prometheus_client import CollectorRegistry
    from tutorme_identity.observability import TwoFactorMetrics

    metrics = TwoFactorMetrics(registry=CollectorRegistry())

    with metrics.operation("verify_login", method="EMAIL"):
        ...

    metrics.record_delivery(record)
    ```
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

from ..exceptions import TwoFactorError

if TYPE_CHECKING:
    from collections.abc import Generator

    from ..audit.events import TwoFactorAuditEvent
    from ..delivery.records import DeliveryRecord


class TwoFactorMetrics:
    """Counters and timings for 2FA operations and code deliveries.

    Each instance registers its collectors once; pass a private
    ``CollectorRegistry`` when more than one instance lives in a process.
    """

    def __init__(
        self,
        *,
        registry: CollectorRegistry | None = None,
        namespace: str = "tutorme",
    ) -> None:
        registry = registry or REGISTRY
        self.duration = Histogram(
            "two_factor_operation_duration_seconds",
            "Two-factor operation duration",
            ["operation", "method"],
            namespace=namespace,
            registry=registry,
        )
        self.operations = Counter(
            "two_factor_operations_total",
            "Two-factor operation count",
            ["operation", "method", "result"],
            namespace=namespace,
            registry=registry,
        )
        self.deliveries = Counter(
            "two_factor_deliveries_total",
            "One-time code deliveries",
            ["channel", "provider", "status"],
            namespace=namespace,
            registry=registry,
        )

    @contextmanager
    def operation(
        self, operation: str, *, method: str = "unknown"
    ) -> Generator[None, None, None]:
        """Time an operation and count it by result.

        Domain errors count as ``failure``, anything else as ``error``.
        """
        result = "success"
        start = time.monotonic()
        try:
            yield
        except TwoFactorError:
            result = "failure"
            raise
        except Exception:
            result = "error"
            raise
        finally:
            self.duration.labels(operation=operation, method=method).observe(
                time.monotonic() - start
            )
            self.operations.labels(
                operation=operation, method=method, result=result
            ).inc()

    def record_event(self, event: TwoFactorAuditEvent) -> None:
        self.operations.labels(
            operation=event.event_type.value,
            method=event.method or "unknown",
            result="success" if event.success else "failure",
        ).inc()

    def record_delivery(self, record: DeliveryRecord) -> None:
        self.deliveries.labels(
            channel=record.channel.value,
            provider=record.provider,
            status=record.status.value,
        ).inc()


__all__: list[str] = ["TwoFactorMetrics"]
