"""
Entitlement models - rights the user currently holds (or once held).

Entitlements are value objects created fresh from every backend response.
List-level views are plain functions over a sequence and never mutate it.
"""

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator

from purchasing.models.events import EventParameters, compact_parameters

# Effective expiration of an entitlement without one; sorts before every real date
DISTANT_PAST = datetime.min.replace(tzinfo=UTC)


class EntitlementOwnership(str, Enum):
    """How the user came to own an entitlement."""

    PURCHASED = "purchased"
    FAMILY_SHARED = "family_shared"
    UNKNOWN = "unknown"


class PurchasedEntitlement(BaseModel):
    """
    A purchased entitlement as reported by a backend.

    is_active is backend truth. It is deliberately not derived from
    expiration_date here: each backend decides activeness its own way.
    """

    model_config = ConfigDict(frozen=True)

    product_id: str
    expiration_date: datetime | None = None
    is_active: bool
    original_purchase_date: datetime | None = None
    latest_purchase_date: datetime | None = None
    ownership_type: EntitlementOwnership = EntitlementOwnership.UNKNOWN
    is_sandbox: bool = False
    is_verified: bool = False

    @field_validator("expiration_date", "original_purchase_date", "latest_purchase_date")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        """Treat naive datetimes as UTC so every date stays comparable."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @property
    def expiration_date_calc(self) -> datetime:
        """Expiration date, or DISTANT_PAST when there is none. For sorting only."""
        return self.expiration_date or DISTANT_PAST

    @property
    def event_parameters(self) -> EventParameters:
        """Analytics projection, every key prefixed with entitlement_."""
        return compact_parameters(
            {
                "entitlement_product_id": self.product_id,
                "entitlement_expiration_date": self.expiration_date,
                "entitlement_is_active": self.is_active,
                "entitlement_original_purchase_date": self.original_purchase_date,
                "entitlement_latest_purchase_date": self.latest_purchase_date,
                "entitlement_ownership_type": self.ownership_type,
                "entitlement_is_sandbox": self.is_sandbox,
                "entitlement_is_verified": self.is_verified,
            }
        )

    @classmethod
    def mock(cls, product_id: str = "my.product.id") -> "PurchasedEntitlement":
        """An active, week-long sandbox entitlement purchased just now."""
        now = datetime.now(UTC)
        return cls(
            product_id=product_id,
            expiration_date=now + timedelta(days=7),
            is_active=True,
            original_purchase_date=now,
            latest_purchase_date=now,
            ownership_type=EntitlementOwnership.PURCHASED,
            is_sandbox=True,
            is_verified=True,
        )


def active_entitlements(
    entitlements: Sequence[PurchasedEntitlement],
) -> list[PurchasedEntitlement]:
    """Entitlements with is_active set, in their original order."""
    return [entitlement for entitlement in entitlements if entitlement.is_active]


def has_active_entitlement(entitlements: Sequence[PurchasedEntitlement]) -> bool:
    """True if at least one entitlement is active."""
    return any(entitlement.is_active for entitlement in entitlements)


def sort_entitlements(
    entitlements: Sequence[PurchasedEntitlement],
) -> list[PurchasedEntitlement]:
    """
    Sort by effective expiration, furthest in the future first.

    The sort is stable, and entitlements without an expiration always come
    last, so active_entitlements(sorted)[0] is the one expiring last.
    """
    return sorted(entitlements, key=lambda e: e.expiration_date_calc, reverse=True)


def entitlements_event_parameters(
    entitlements: Sequence[PurchasedEntitlement],
) -> EventParameters:
    """
    Aggregate analytics projection for an entitlement list.

    Per-entitlement keys are disambiguated by appending the product id,
    e.g. entitlement_is_active_com.example.pro.
    """
    active = active_entitlements(entitlements)
    params: EventParameters = {
        "entitlements_count_all": len(entitlements),
        "entitlements_count_active": len(active),
        "entitlements_ids_all": ", ".join(sorted(e.product_id for e in entitlements)),
        "entitlements_ids_active": ", ".join(sorted(e.product_id for e in active)),
        "has_active_entitlement": bool(active),
    }
    for entitlement in entitlements:
        for key, value in entitlement.event_parameters.items():
            params[f"{key}_{entitlement.product_id}"] = value
    return params
