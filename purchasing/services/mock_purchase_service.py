"""
Mock Purchase Service - in-memory backend for tests and previews.

Never raises. Purchases and restores mint active, week-long sandbox
entitlements; every network-shaped call waits a fixed delay first.
"""

import asyncio
from collections.abc import Iterable, Sequence
from uuid import uuid4

from purchasing.config import settings
from purchasing.models.entitlement import PurchasedEntitlement
from purchasing.models.product import AnyProduct
from purchasing.models.profile import PurchaseProfileAttributes
from purchasing.observability.logging import get_logger
from purchasing.services.purchase_service import TransactionsUpdatedCallback

logger = get_logger(__name__)


class MockPurchaseService:
    """In-memory PurchaseService."""

    def __init__(
        self,
        entitlements: Sequence[PurchasedEntitlement] = (),
        products: Sequence[AnyProduct] = (),
        delay_seconds: float | None = None,
    ) -> None:
        """
        Initialize mock backend.

        Args:
            entitlements: Entitlements the user starts with
            products: Fixed product catalog
            delay_seconds: Simulated latency (defaults to settings.mock_delay_seconds)
        """
        self.entitlements: list[PurchasedEntitlement] = list(entitlements)
        self.products: tuple[AnyProduct, ...] = tuple(products)
        self.delay_seconds = (
            settings.mock_delay_seconds if delay_seconds is None else delay_seconds
        )
        self.user_id: str | None = None
        self.profile_attributes: PurchaseProfileAttributes | None = None

    async def _simulate_latency(self) -> None:
        await asyncio.sleep(self.delay_seconds)

    async def get_products(self, product_ids: Iterable[str]) -> list[AnyProduct]:
        wanted = set(product_ids)
        return [product for product in self.products if product.id in wanted]

    async def get_user_entitlements(self) -> list[PurchasedEntitlement]:
        return list(self.entitlements)

    async def purchase_product(self, product_id: str) -> list[PurchasedEntitlement]:
        await self._simulate_latency()
        self.entitlements.append(PurchasedEntitlement.mock(product_id=product_id))
        logger.debug("mock_purchase_completed", product_id=product_id)
        return list(self.entitlements)

    async def check_trial_eligibility(self, product_id: str) -> bool:
        return True

    async def restore_purchase(self) -> list[PurchasedEntitlement]:
        await self._simulate_latency()
        # Stands in for a purchase made on another device
        self.entitlements.append(PurchasedEntitlement.mock(product_id=str(uuid4())))
        return list(self.entitlements)

    async def listen_for_transactions(
        self, on_transactions_updated: TransactionsUpdatedCallback
    ) -> None:
        await on_transactions_updated()

    async def log_in(self, user_id: str) -> list[PurchasedEntitlement]:
        await self._simulate_latency()
        self.user_id = user_id
        return list(self.entitlements)

    async def update_profile_attributes(self, attributes: PurchaseProfileAttributes) -> None:
        self.profile_attributes = attributes

    async def log_out(self) -> None:
        self.user_id = None
        self.profile_attributes = None
        self.entitlements = []
