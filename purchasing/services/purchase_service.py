"""
Purchase Service Protocol - Backend-agnostic interface.

Any purchasing backend (the on-device storefront, a subscription-management
service, the in-memory mock) implements this interface. PurchaseManager talks
to exactly one of them, chosen at construction time.
"""

from collections.abc import Awaitable, Callable, Iterable
from typing import Protocol

from purchasing.models.entitlement import PurchasedEntitlement
from purchasing.models.product import AnyProduct
from purchasing.models.profile import PurchaseProfileAttributes

TransactionsUpdatedCallback = Callable[[], Awaitable[None]]


class PurchaseService(Protocol):
    """
    Purchase backend protocol.

    Every method may raise; implementations never swallow errors that the
    caller needs to see.
    """

    async def get_products(self, product_ids: Iterable[str]) -> list[AnyProduct]:
        """
        Look up catalog entries.

        Args:
            product_ids: Product identifiers to fetch

        Returns:
            The products found. Whether an empty result is returned or
            ProductNotFoundError raised is fixed per implementation.
        """
        ...

    async def get_user_entitlements(self) -> list[PurchasedEntitlement]:
        """Current entitlements for the signed-in (or anonymous) identity."""
        ...

    async def purchase_product(self, product_id: str) -> list[PurchasedEntitlement]:
        """
        Run the purchase flow for a product.

        Returns:
            The full refreshed entitlement list

        Raises:
            ProductNotFoundError: If the product is not in the catalog
            UserCancelledError: If the user dismissed the purchase
            PurchaseFailedError: If the storefront did not complete it
        """
        ...

    async def check_trial_eligibility(self, product_id: str) -> bool:
        """True if the user can still redeem the product's introductory offer."""
        ...

    async def restore_purchase(self) -> list[PurchasedEntitlement]:
        """Re-sync with the storefront and return the refreshed entitlements."""
        ...

    async def listen_for_transactions(
        self, on_transactions_updated: TransactionsUpdatedCallback
    ) -> None:
        """
        Await on_transactions_updated whenever entitlements change out of band.

        Long-running: the subscription lasts until the task running this
        coroutine is cancelled.
        """
        ...

    async def log_in(self, user_id: str) -> list[PurchasedEntitlement]:
        """Associate purchases with an application user id. Idempotent."""
        ...

    async def update_profile_attributes(self, attributes: PurchaseProfileAttributes) -> None:
        """Send attribution data to the backend."""
        ...

    async def log_out(self) -> None:
        """Disassociate the current identity and clear backend-local state."""
        ...
