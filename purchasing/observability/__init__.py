"""
Observability module - Logging, Metrics, and the analytics sink.
"""

from purchasing.observability.logging import get_logger, log_context, setup_logging
from purchasing.observability.metrics import metrics
from purchasing.observability.purchase_logger import (
    PurchaseLogger,
    RecordingPurchaseLogger,
    StructlogPurchaseLogger,
)

__all__ = [
    "get_logger",
    "log_context",
    "setup_logging",
    "metrics",
    "PurchaseLogger",
    "RecordingPurchaseLogger",
    "StructlogPurchaseLogger",
]
