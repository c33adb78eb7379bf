"""
Exception Classes - Strongly typed exception hierarchy.

Backends raise these; PurchaseManager logs and re-raises them unchanged.
"""

from collections.abc import Iterable


class PurchasingError(Exception):
    """Base exception for all purchasing errors."""

    pass


class ConfigurationError(PurchasingError):
    """Raised when configuration is missing or invalid."""

    pass


class ProductNotFoundError(PurchasingError):
    """Raised when the storefront catalog has none of the requested products."""

    def __init__(self, product_ids: Iterable[str]) -> None:
        self.product_ids = tuple(sorted(product_ids))
        super().__init__(f"Product not found: {', '.join(self.product_ids)}")


class UserCancelledError(PurchasingError):
    """Raised when the user dismisses the purchase sheet."""

    def __init__(self, product_id: str) -> None:
        self.product_id = product_id
        super().__init__(f"User cancelled purchase of {product_id}")


class PurchaseFailedError(PurchasingError):
    """Raised when the storefront did not complete the purchase."""

    def __init__(self, product_id: str, reason: str) -> None:
        self.product_id = product_id
        self.reason = reason
        super().__init__(f"Purchase of {product_id} failed: {reason}")


class InvalidTransactionError(PurchasingError):
    """Raised when a signed transaction from the storefront cannot be decoded."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Invalid transaction: {message}")
