"""
Purchasing models.
"""

from purchasing.models.entitlement import (
    DISTANT_PAST,
    EntitlementOwnership,
    PurchasedEntitlement,
    active_entitlements,
    entitlements_event_parameters,
    has_active_entitlement,
    sort_entitlements,
)
from purchasing.models.events import EventParameters, LogType, ParamValue, PurchaseLogEvent
from purchasing.models.product import AnyProduct, ProductDuration, products_event_parameters
from purchasing.models.profile import PurchaseProfileAttributes

__all__ = [
    "DISTANT_PAST",
    "AnyProduct",
    "EntitlementOwnership",
    "EventParameters",
    "LogType",
    "ParamValue",
    "ProductDuration",
    "PurchaseLogEvent",
    "PurchaseProfileAttributes",
    "PurchasedEntitlement",
    "active_entitlements",
    "entitlements_event_parameters",
    "has_active_entitlement",
    "products_event_parameters",
    "sort_entitlements",
]
