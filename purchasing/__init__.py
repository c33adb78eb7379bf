"""
Purchasing - one interface over in-app purchase backends.

    from purchasing import PurchaseManager, StoreKitPurchaseService

    manager = await PurchaseManager.create(StoreKitPurchaseService(storefront))
    products = await manager.get_products({"pro.monthly", "pro.yearly"})
    await manager.purchase_product("pro.monthly")
"""

from purchasing.exceptions import (
    ConfigurationError,
    InvalidTransactionError,
    ProductNotFoundError,
    PurchaseFailedError,
    PurchasingError,
    UserCancelledError,
)
from purchasing.manager import Event, PurchaseManager
from purchasing.models import (
    AnyProduct,
    EntitlementOwnership,
    LogType,
    ProductDuration,
    PurchasedEntitlement,
    PurchaseLogEvent,
    PurchaseProfileAttributes,
)
from purchasing.observability import PurchaseLogger, StructlogPurchaseLogger
from purchasing.services import (
    MockPurchaseService,
    PurchaseService,
    Storefront,
    StoreKitPurchaseService,
)

__all__ = [
    "AnyProduct",
    "ConfigurationError",
    "EntitlementOwnership",
    "Event",
    "InvalidTransactionError",
    "LogType",
    "MockPurchaseService",
    "ProductDuration",
    "ProductNotFoundError",
    "PurchaseFailedError",
    "PurchaseLogEvent",
    "PurchaseLogger",
    "PurchaseManager",
    "PurchaseProfileAttributes",
    "PurchaseService",
    "PurchasedEntitlement",
    "PurchasingError",
    "Storefront",
    "StoreKitPurchaseService",
    "StructlogPurchaseLogger",
    "UserCancelledError",
]
