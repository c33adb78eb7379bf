"""
Test factories - entitlements, signed StoreKit transactions and a fake storefront.
"""

import asyncio
from collections.abc import AsyncIterator, Iterable
from datetime import UTC, datetime, timedelta

import jwt

from purchasing.models.entitlement import EntitlementOwnership, PurchasedEntitlement
from purchasing.models.storekit import (
    PurchaseResult,
    PurchaseStatus,
    StoreKitProduct,
    VerificationResult,
)

# HS256 key for test-only JWS; production transactions are ES256 signed by Apple
JWS_TEST_KEY = "storekit-test-signing-key-0123456789abcdef"

# ============================================================================
# Model Factories
# ============================================================================


def make_entitlement(
    product_id: str = "com.example.product",
    expiration_date: datetime | None = None,
    is_active: bool = True,
    ownership_type: EntitlementOwnership = EntitlementOwnership.PURCHASED,
) -> PurchasedEntitlement:
    """Create an entitlement with sensible defaults."""
    now = datetime.now(UTC)
    return PurchasedEntitlement(
        product_id=product_id,
        expiration_date=expiration_date,
        is_active=is_active,
        original_purchase_date=now,
        latest_purchase_date=now,
        ownership_type=ownership_type,
        is_sandbox=False,
        is_verified=True,
    )


def to_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def sign_transaction(
    product_id: str,
    transaction_id: str = "2000000000000001",
    expires_date: datetime | None = None,
    revocation_date: datetime | None = None,
    ownership_type: str | None = "PURCHASED",
    environment: str = "Sandbox",
    is_verified: bool = True,
) -> VerificationResult:
    """Build a StoreKit-style signed transaction."""
    purchase_date = datetime(2025, 1, 1, tzinfo=UTC)
    payload: dict[str, object] = {
        "transactionId": transaction_id,
        "originalTransactionId": transaction_id,
        "productId": product_id,
        "bundleId": "com.example.app",
        "purchaseDate": to_millis(purchase_date),
        "originalPurchaseDate": to_millis(purchase_date),
        "environment": environment,
    }
    if ownership_type is not None:
        payload["inAppOwnershipType"] = ownership_type
    if expires_date is not None:
        payload["expiresDate"] = to_millis(expires_date)
    if revocation_date is not None:
        payload["revocationDate"] = to_millis(revocation_date)

    return sign_payload(payload, is_verified=is_verified)


def sign_payload(payload: dict[str, object], is_verified: bool = True) -> VerificationResult:
    """Sign an arbitrary payload, for transactions the storefront got wrong."""
    token = jwt.encode(payload, JWS_TEST_KEY, algorithm="HS256")
    return VerificationResult(jws_representation=token, is_verified=is_verified)


# ============================================================================
# Fake Storefront
# ============================================================================


class FakeStorefront:
    """In-memory Storefront with a scripted purchase outcome."""

    def __init__(
        self,
        products: Iterable[StoreKitProduct] = (),
        transactions: Iterable[VerificationResult] = (),
    ) -> None:
        self.catalog = {product.id: product for product in products}
        self.transactions: list[VerificationResult] = list(transactions)
        self.purchase_status = PurchaseStatus.SUCCESS
        self.purchase_verified = True
        self.intro_offer_eligible = True
        self.updates: asyncio.Queue[VerificationResult] = asyncio.Queue()
        self.finished: list[str] = []
        self.sync_calls = 0

    async def products(self, product_ids: Iterable[str]) -> list[StoreKitProduct]:
        return [self.catalog[pid] for pid in sorted(set(product_ids)) if pid in self.catalog]

    async def purchase(self, product_id: str) -> PurchaseResult:
        if self.purchase_status != PurchaseStatus.SUCCESS:
            return PurchaseResult(status=self.purchase_status)
        transaction = sign_transaction(
            product_id,
            transaction_id=f"purchase-{len(self.transactions) + 1}",
            expires_date=datetime.now(UTC) + timedelta(days=30),
            is_verified=self.purchase_verified,
        )
        if self.purchase_verified:
            self.transactions.append(transaction)
        return PurchaseResult(status=PurchaseStatus.SUCCESS, verification=transaction)

    async def current_entitlements(self) -> AsyncIterator[VerificationResult]:
        for transaction in list(self.transactions):
            yield transaction

    async def transaction_updates(self) -> AsyncIterator[VerificationResult]:
        while True:
            yield await self.updates.get()

    async def sync(self) -> None:
        self.sync_calls += 1

    async def is_eligible_for_intro_offer(self, product_id: str) -> bool:
        return self.intro_offer_eligible

    async def finish(self, transaction_id: str) -> None:
        self.finished.append(transaction_id)


