"""
StoreKit domain models - Immutable dataclasses for the on-device storefront.

The storefront hands transactions over as JWS (JSON Web Signature) strings,
already checked against Apple's certificate chain on device.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum


class PurchaseStatus(str, Enum):
    """Outcome of presenting the storefront purchase sheet."""

    SUCCESS = "success"
    USER_CANCELLED = "user_cancelled"
    PENDING = "pending"  # Ask to Buy, SCA, deferred payment


@dataclass(frozen=True)
class StoreKitProduct:
    """A product as returned by the storefront catalog."""

    id: str
    display_name: str
    description: str
    display_price: str
    subscription_period_unit: str | None = None  # "day", "week", "month", "year"
    is_subscription: bool = False


@dataclass(frozen=True)
class VerificationResult:
    """A signed transaction and whether the platform could verify it."""

    jws_representation: str
    is_verified: bool


@dataclass(frozen=True)
class PurchaseResult:
    """Result of a storefront purchase call."""

    status: PurchaseStatus
    verification: VerificationResult | None = None

    def __post_init__(self) -> None:
        """Validate purchase result fields."""
        if self.status == PurchaseStatus.SUCCESS and self.verification is None:
            raise ValueError("Successful purchase requires a verification result")


@dataclass(frozen=True)
class StoreKitTransaction:
    """Decoded StoreKit transaction."""

    transaction_id: str
    original_transaction_id: str
    product_id: str
    purchase_date: datetime
    original_purchase_date: datetime
    environment: str  # "Production", "Sandbox" or "Xcode"

    # Optional fields
    in_app_ownership_type: str | None = None  # "PURCHASED" or "FAMILY_SHARED"
    expires_date: datetime | None = None  # For subscriptions
    revocation_date: datetime | None = None  # If refunded or revoked

    def is_sandbox(self) -> bool:
        """Check if this is a sandbox (test) transaction."""
        return self.environment.lower() == "sandbox"

    def is_active(self, now: datetime | None = None) -> bool:
        """
        Subscriptions are active until they expire; everything else is
        active unless revoked.
        """
        if self.expires_date is not None:
            return self.expires_date >= (now or datetime.now(UTC))
        return self.revocation_date is None
