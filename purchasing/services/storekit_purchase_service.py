"""
StoreKit Purchase Service - adapter over the on-device storefront.

The storefront itself (catalog, purchase sheet, transaction store) is an
external collaborator reached through the Storefront protocol. This module
maps its signed transactions onto PurchasedEntitlement.
"""

from collections.abc import AsyncIterator, Iterable
from datetime import UTC, datetime
from typing import Protocol

import jwt

from purchasing.exceptions import (
    InvalidTransactionError,
    ProductNotFoundError,
    PurchaseFailedError,
    UserCancelledError,
)
from purchasing.models.entitlement import EntitlementOwnership, PurchasedEntitlement
from purchasing.models.product import AnyProduct, ProductDuration
from purchasing.models.profile import PurchaseProfileAttributes
from purchasing.models.storekit import (
    PurchaseResult,
    PurchaseStatus,
    StoreKitProduct,
    StoreKitTransaction,
    VerificationResult,
)
from purchasing.observability.logging import get_logger
from purchasing.services.purchase_service import TransactionsUpdatedCallback

logger = get_logger(__name__)

_OWNERSHIP_TYPES: dict[str, EntitlementOwnership] = {
    "PURCHASED": EntitlementOwnership.PURCHASED,
    "FAMILY_SHARED": EntitlementOwnership.FAMILY_SHARED,
}


class Storefront(Protocol):
    """Platform purchase primitives."""

    async def products(self, product_ids: Iterable[str]) -> list[StoreKitProduct]:
        """Catalog lookup. Unknown ids are silently left out."""
        ...

    async def purchase(self, product_id: str) -> PurchaseResult:
        """Present the purchase sheet."""
        ...

    def current_entitlements(self) -> AsyncIterator[VerificationResult]:
        """Latest transaction for every product the user is entitled to."""
        ...

    def transaction_updates(self) -> AsyncIterator[VerificationResult]:
        """Endless stream of transactions created or changed out of band."""
        ...

    async def sync(self) -> None:
        """Force a sync with the App Store (may prompt for authentication)."""
        ...

    async def is_eligible_for_intro_offer(self, product_id: str) -> bool:
        ...

    async def finish(self, transaction_id: str) -> None:
        """Tell the storefront the transaction has been delivered."""
        ...


def product_duration_from_unit(unit: str | None) -> ProductDuration | None:
    """Map a storefront subscription period unit, None when unmapped."""
    if unit is None:
        return None
    try:
        return ProductDuration(unit.lower())
    except ValueError:
        return None


def ownership_from_type(ownership_type: str | None) -> EntitlementOwnership:
    """Map a storefront ownership type; anything unmapped is UNKNOWN."""
    if ownership_type is None:
        return EntitlementOwnership.UNKNOWN
    return _OWNERSHIP_TYPES.get(ownership_type.upper(), EntitlementOwnership.UNKNOWN)


def product_from_storekit(product: StoreKitProduct) -> AnyProduct:
    return AnyProduct(
        id=product.id,
        title=product.display_name,
        subtitle=product.description,
        price_string=product.display_price,
        product_duration=product_duration_from_unit(product.subscription_period_unit),
    )


def entitlement_from_transaction(
    transaction: StoreKitTransaction, now: datetime | None = None
) -> PurchasedEntitlement:
    return PurchasedEntitlement(
        product_id=transaction.product_id,
        expiration_date=transaction.expires_date,
        is_active=transaction.is_active(now),
        original_purchase_date=transaction.original_purchase_date,
        latest_purchase_date=transaction.purchase_date,
        ownership_type=ownership_from_type(transaction.in_app_ownership_type),
        is_sandbox=transaction.is_sandbox(),
        is_verified=True,
    )


class StoreKitPurchaseService:
    """
    PurchaseService backed by the platform storefront.

    The storefront has no notion of an application user, so log in is a
    plain entitlement fetch and profile attributes and log out are no-ops.
    """

    def __init__(self, storefront: Storefront) -> None:
        """
        Initialize StoreKit backend.

        Args:
            storefront: Platform storefront primitives
        """
        self.storefront = storefront

    def _decode_jws(self, signed_data: str) -> dict[str, object]:
        """
        Decode JWS signed transaction data.

        Signature verification already happened on device (that is what
        VerificationResult.is_verified reports), so only the payload is read.
        """
        try:
            payload = jwt.decode(
                signed_data,
                options={"verify_signature": False},
            )
        except jwt.exceptions.InvalidTokenError as e:
            raise InvalidTransactionError(f"Invalid JWS data: {e}") from e
        if not isinstance(payload, dict):
            raise InvalidTransactionError("Invalid JWS data: payload is not an object")
        return payload

    def _parse_transaction(self, data: dict[str, object]) -> StoreKitTransaction:
        """Parse transaction info from decoded JWS payload."""

        def parse_timestamp(ms: object) -> datetime | None:
            if ms is None:
                return None
            return datetime.fromtimestamp(int(ms) / 1000, tz=UTC)  # type: ignore[call-overload]

        try:
            purchase_date = parse_timestamp(data.get("purchaseDate")) or datetime.now(UTC)
            return StoreKitTransaction(
                transaction_id=str(data["transactionId"]),
                original_transaction_id=str(
                    data.get("originalTransactionId", data["transactionId"])
                ),
                product_id=str(data["productId"]),
                purchase_date=purchase_date,
                original_purchase_date=parse_timestamp(data.get("originalPurchaseDate"))
                or purchase_date,
                environment=str(data.get("environment", "Production")),
                in_app_ownership_type=data.get("inAppOwnershipType"),  # type: ignore[arg-type]
                expires_date=parse_timestamp(data.get("expiresDate")),
                revocation_date=parse_timestamp(data.get("revocationDate")),
            )
        except KeyError as e:
            raise InvalidTransactionError(f"Missing field {e}") from e
        except (TypeError, ValueError, OverflowError, OSError) as e:
            raise InvalidTransactionError(f"Malformed transaction: {e}") from e

    def _transaction(self, result: VerificationResult) -> StoreKitTransaction:
        return self._parse_transaction(self._decode_jws(result.jws_representation))

    async def get_products(self, product_ids: Iterable[str]) -> list[AnyProduct]:
        """
        Raises:
            ProductNotFoundError: If the storefront knows none of the ids
        """
        wanted = set(product_ids)
        products = await self.storefront.products(wanted)
        if not products:
            raise ProductNotFoundError(wanted)
        return [product_from_storekit(product) for product in products]

    async def get_user_entitlements(self) -> list[PurchasedEntitlement]:
        entitlements: list[PurchasedEntitlement] = []
        async for result in self.storefront.current_entitlements():
            if not result.is_verified:
                logger.warning("storekit_unverified_entitlement_skipped")
                continue
            try:
                transaction = self._transaction(result)
            except InvalidTransactionError as e:
                logger.warning("storekit_undecodable_entitlement_skipped", error=str(e))
                continue
            entitlements.append(entitlement_from_transaction(transaction))
        return entitlements

    async def purchase_product(self, product_id: str) -> list[PurchasedEntitlement]:
        products = await self.storefront.products([product_id])
        if not products:
            raise ProductNotFoundError([product_id])

        result = await self.storefront.purchase(product_id)

        if result.status == PurchaseStatus.USER_CANCELLED:
            raise UserCancelledError(product_id)
        if result.status != PurchaseStatus.SUCCESS or result.verification is None:
            raise PurchaseFailedError(product_id, result.status.value)
        if not result.verification.is_verified:
            raise PurchaseFailedError(product_id, "transaction failed verification")

        transaction = self._transaction(result.verification)
        await self.storefront.finish(transaction.transaction_id)

        logger.info(
            "storekit_purchase_completed",
            product_id=transaction.product_id,
            transaction_id=transaction.transaction_id,
            environment=transaction.environment,
        )

        return await self.get_user_entitlements()

    async def check_trial_eligibility(self, product_id: str) -> bool:
        """
        Raises:
            ProductNotFoundError: If the product is missing or not a subscription
        """
        products = await self.storefront.products([product_id])
        if not products or not products[0].is_subscription:
            raise ProductNotFoundError([product_id])
        return await self.storefront.is_eligible_for_intro_offer(product_id)

    async def restore_purchase(self) -> list[PurchasedEntitlement]:
        await self.storefront.sync()
        return await self.get_user_entitlements()

    async def listen_for_transactions(
        self, on_transactions_updated: TransactionsUpdatedCallback
    ) -> None:
        async for result in self.storefront.transaction_updates():
            if not result.is_verified:
                logger.warning("storekit_unverified_update_skipped")
                continue
            try:
                transaction = self._transaction(result)
            except InvalidTransactionError:
                logger.exception("storekit_update_decode_failed")
                continue

            await on_transactions_updated()
            await self.storefront.finish(transaction.transaction_id)

    async def log_in(self, user_id: str) -> list[PurchasedEntitlement]:
        return await self.get_user_entitlements()

    async def update_profile_attributes(self, attributes: PurchaseProfileAttributes) -> None:
        pass

    async def log_out(self) -> None:
        pass
