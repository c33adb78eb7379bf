"""
Metrics Collection with Prometheus.

Counts coordinator operation outcomes and tracks held entitlement state.
Exposition is left to the embedding application (prometheus_client's
start_http_server or generate_latest).
"""

from enum import Enum

from prometheus_client import Counter, Gauge

from purchasing.config import settings


class Outcome(str, Enum):
    """Outcome label values."""

    SUCCESS = "success"
    FAILURE = "failure"


class PurchasingMetrics:
    """Centralized metrics for PurchaseManager instances."""

    def __init__(self) -> None:
        """Initialize all Prometheus metrics."""
        self.operations_total = Counter(
            "purchasing_operations_total",
            "Purchase manager operations by outcome",
            ["operation", "outcome"],
        )
        self.entitlement_refresh_retries_total = Counter(
            "purchasing_entitlement_refresh_retries_total",
            "Background entitlement refresh attempts that failed and were rescheduled",
        )
        self.entitlements = Gauge(
            "purchasing_entitlements",
            "Entitlements held by the most recently updated purchase manager",
            ["state"],
        )

    def record_operation(self, operation: str, success: bool) -> None:
        if not settings.metrics_enabled:
            return
        outcome = Outcome.SUCCESS if success else Outcome.FAILURE
        self.operations_total.labels(operation=operation, outcome=outcome.value).inc()

    def record_refresh_retry(self) -> None:
        if not settings.metrics_enabled:
            return
        self.entitlement_refresh_retries_total.inc()

    def record_entitlements(self, total: int, active: int) -> None:
        if not settings.metrics_enabled:
            return
        self.entitlements.labels(state="all").set(total)
        self.entitlements.labels(state="active").set(active)


# Global metrics instance
metrics = PurchasingMetrics()
