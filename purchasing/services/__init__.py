"""
Purchase backends.
"""

from purchasing.services.mock_purchase_service import MockPurchaseService
from purchasing.services.purchase_service import PurchaseService, TransactionsUpdatedCallback
from purchasing.services.storekit_purchase_service import Storefront, StoreKitPurchaseService

__all__ = [
    "MockPurchaseService",
    "PurchaseService",
    "Storefront",
    "StoreKitPurchaseService",
    "TransactionsUpdatedCallback",
]
