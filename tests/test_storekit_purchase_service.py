"""
Tests for StoreKitPurchaseService.

Uses FakeStorefront with HS256-signed transactions in place of the device.
"""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from purchasing.exceptions import (
    InvalidTransactionError,
    ProductNotFoundError,
    PurchaseFailedError,
    UserCancelledError,
)
from purchasing.models.entitlement import EntitlementOwnership
from purchasing.models.product import ProductDuration
from purchasing.models.profile import PurchaseProfileAttributes
from purchasing.models.storekit import PurchaseStatus, StoreKitTransaction, VerificationResult
from purchasing.services.storekit_purchase_service import (
    StoreKitPurchaseService,
    ownership_from_type,
    product_duration_from_unit,
)
from tests.factories import FakeStorefront, sign_payload, sign_transaction

NOW = datetime.now(UTC)


class TestMappings:
    """Tests for storefront value mapping."""

    @pytest.mark.parametrize(
        ("unit", "expected"),
        [
            ("day", ProductDuration.DAY),
            ("WEEK", ProductDuration.WEEK),
            ("month", ProductDuration.MONTH),
            ("year", ProductDuration.YEAR),
            ("fortnight", None),
            (None, None),
        ],
    )
    def test_product_duration_from_unit(self, unit, expected):
        assert product_duration_from_unit(unit) is expected

    @pytest.mark.parametrize(
        ("ownership_type", "expected"),
        [
            ("PURCHASED", EntitlementOwnership.PURCHASED),
            ("FAMILY_SHARED", EntitlementOwnership.FAMILY_SHARED),
            ("GIFTED", EntitlementOwnership.UNKNOWN),
            (None, EntitlementOwnership.UNKNOWN),
        ],
    )
    def test_ownership_from_type(self, ownership_type, expected):
        assert ownership_from_type(ownership_type) is expected

    def test_transaction_active_until_expiration(self):
        transaction = StoreKitTransaction(
            transaction_id="1",
            original_transaction_id="1",
            product_id="pro.monthly",
            purchase_date=NOW,
            original_purchase_date=NOW,
            environment="Production",
            expires_date=NOW,
        )
        assert transaction.is_active(now=NOW) is True
        assert transaction.is_active(now=NOW + timedelta(seconds=1)) is False


class TestGetProducts:
    """Tests for catalog lookup."""

    @pytest.mark.asyncio
    async def test_maps_products(self, storefront):
        service = StoreKitPurchaseService(storefront)

        products = await service.get_products({"pro.monthly", "pro.lifetime"})

        by_id = {p.id: p for p in products}
        assert by_id["pro.monthly"].title == "Pro Monthly"
        assert by_id["pro.monthly"].subtitle == "All features, billed monthly"
        assert by_id["pro.monthly"].price_string == "$9.99"
        assert by_id["pro.monthly"].product_duration is ProductDuration.MONTH
        assert by_id["pro.lifetime"].product_duration is None

    @pytest.mark.asyncio
    async def test_none_found_raises(self, storefront):
        service = StoreKitPurchaseService(storefront)

        with pytest.raises(ProductNotFoundError) as exc_info:
            await service.get_products({"missing"})

        assert exc_info.value.product_ids == ("missing",)


class TestGetUserEntitlements:
    """Tests for transaction to entitlement mapping."""

    @pytest.mark.asyncio
    async def test_subscription_activeness_from_expiration(self):
        storefront = FakeStorefront(
            transactions=[
                sign_transaction("future", expires_date=NOW + timedelta(days=3)),
                sign_transaction("past", expires_date=NOW - timedelta(days=3)),
            ]
        )

        entitlements = await StoreKitPurchaseService(storefront).get_user_entitlements()

        by_id = {e.product_id: e for e in entitlements}
        assert by_id["future"].is_active is True
        assert by_id["past"].is_active is False
        assert by_id["future"].expiration_date is not None

    @pytest.mark.asyncio
    async def test_non_subscription_activeness_from_revocation(self):
        storefront = FakeStorefront(
            transactions=[
                sign_transaction("owned"),
                sign_transaction("refunded", revocation_date=NOW - timedelta(days=1)),
            ]
        )

        entitlements = await StoreKitPurchaseService(storefront).get_user_entitlements()

        by_id = {e.product_id: e for e in entitlements}
        assert by_id["owned"].is_active is True
        assert by_id["owned"].expiration_date is None
        assert by_id["refunded"].is_active is False

    @pytest.mark.asyncio
    async def test_field_mapping(self):
        storefront = FakeStorefront(
            transactions=[
                sign_transaction("shared", ownership_type="FAMILY_SHARED", environment="Sandbox"),
                sign_transaction("bought", ownership_type=None, environment="Production"),
            ]
        )

        entitlements = await StoreKitPurchaseService(storefront).get_user_entitlements()

        shared, bought = entitlements
        assert shared.ownership_type is EntitlementOwnership.FAMILY_SHARED
        assert shared.is_sandbox is True
        assert shared.is_verified is True
        assert shared.latest_purchase_date == datetime(2025, 1, 1, tzinfo=UTC)
        assert bought.ownership_type is EntitlementOwnership.UNKNOWN
        assert bought.is_sandbox is False

    @pytest.mark.asyncio
    async def test_unverified_transactions_skipped(self):
        storefront = FakeStorefront(
            transactions=[
                sign_transaction("good"),
                sign_transaction("forged", is_verified=False),
            ]
        )

        entitlements = await StoreKitPurchaseService(storefront).get_user_entitlements()

        assert [e.product_id for e in entitlements] == ["good"]

    @pytest.mark.asyncio
    async def test_undecodable_transactions_skipped(self):
        storefront = FakeStorefront(
            transactions=[
                VerificationResult(jws_representation="not-a-jws", is_verified=True),
                sign_payload({"transactionId": "1", "productId": "bad", "expiresDate": "soon"}),
                sign_transaction("good"),
            ]
        )

        entitlements = await StoreKitPurchaseService(storefront).get_user_entitlements()

        assert [e.product_id for e in entitlements] == ["good"]

    @pytest.mark.parametrize(
        "payload",
        [
            {"productId": "no.transaction.id"},
            {"transactionId": "1", "productId": "x", "expiresDate": "soon"},
            {"transactionId": "1", "productId": "x", "purchaseDate": [1]},
            {"transactionId": "1", "productId": "x", "revocationDate": 10**30},
        ],
    )
    def test_malformed_payload_is_invalid(self, payload):
        service = StoreKitPurchaseService(FakeStorefront())

        with pytest.raises(InvalidTransactionError):
            service._transaction(sign_payload(payload))


class TestPurchaseProduct:
    """Tests for the purchase flow."""

    @pytest.mark.asyncio
    async def test_success_finishes_and_returns_entitlements(self, storefront):
        service = StoreKitPurchaseService(storefront)

        entitlements = await service.purchase_product("pro.monthly")

        assert [e.product_id for e in entitlements] == ["pro.monthly"]
        assert entitlements[0].is_active is True
        assert storefront.finished == ["purchase-1"]

    @pytest.mark.asyncio
    async def test_unknown_product(self, storefront):
        with pytest.raises(ProductNotFoundError):
            await StoreKitPurchaseService(storefront).purchase_product("missing")

    @pytest.mark.asyncio
    async def test_user_cancelled(self, storefront):
        storefront.purchase_status = PurchaseStatus.USER_CANCELLED

        with pytest.raises(UserCancelledError):
            await StoreKitPurchaseService(storefront).purchase_product("pro.monthly")

        assert storefront.finished == []

    @pytest.mark.asyncio
    async def test_pending_is_a_failure(self, storefront):
        storefront.purchase_status = PurchaseStatus.PENDING

        with pytest.raises(PurchaseFailedError, match="pending"):
            await StoreKitPurchaseService(storefront).purchase_product("pro.monthly")

    @pytest.mark.asyncio
    async def test_unverified_purchase_is_a_failure(self, storefront):
        storefront.purchase_verified = False

        with pytest.raises(PurchaseFailedError, match="verification"):
            await StoreKitPurchaseService(storefront).purchase_product("pro.monthly")

        assert storefront.finished == []


class TestOtherOperations:
    """Tests for trial eligibility, restore, identity and listening."""

    @pytest.mark.asyncio
    async def test_trial_eligibility_passes_through(self, storefront):
        service = StoreKitPurchaseService(storefront)
        assert await service.check_trial_eligibility("pro.monthly") is True

        storefront.intro_offer_eligible = False
        assert await service.check_trial_eligibility("pro.monthly") is False

    @pytest.mark.asyncio
    async def test_trial_eligibility_requires_subscription(self, storefront):
        with pytest.raises(ProductNotFoundError):
            await StoreKitPurchaseService(storefront).check_trial_eligibility("pro.lifetime")

    @pytest.mark.asyncio
    async def test_restore_syncs_first(self):
        storefront = FakeStorefront(transactions=[sign_transaction("pro.lifetime")])

        entitlements = await StoreKitPurchaseService(storefront).restore_purchase()

        assert storefront.sync_calls == 1
        assert [e.product_id for e in entitlements] == ["pro.lifetime"]

    @pytest.mark.asyncio
    async def test_identity_operations(self):
        storefront = FakeStorefront(transactions=[sign_transaction("pro.lifetime")])
        service = StoreKitPurchaseService(storefront)

        assert len(await service.log_in("user-1")) == 1
        await service.update_profile_attributes(PurchaseProfileAttributes(email="a@example.com"))
        await service.log_out()

        assert len(await service.get_user_entitlements()) == 1

    @pytest.mark.asyncio
    async def test_listener_calls_back_and_finishes(self, storefront):
        service = StoreKitPurchaseService(storefront)
        updated = asyncio.Event()

        async def on_update() -> None:
            updated.set()

        task = asyncio.create_task(service.listen_for_transactions(on_update))
        try:
            storefront.updates.put_nowait(sign_transaction("x", is_verified=False))
            storefront.updates.put_nowait(sign_transaction("pro.monthly", transaction_id="renewal-1"))
            await asyncio.wait_for(updated.wait(), timeout=1)
            await asyncio.sleep(0)
        finally:
            task.cancel()

        assert storefront.finished == ["renewal-1"]

    @pytest.mark.asyncio
    async def test_listener_survives_malformed_update(self, storefront):
        service = StoreKitPurchaseService(storefront)
        updated = asyncio.Event()

        async def on_update() -> None:
            updated.set()

        task = asyncio.create_task(service.listen_for_transactions(on_update))
        try:
            storefront.updates.put_nowait(
                sign_payload({"transactionId": "bad-1", "productId": "x", "expiresDate": "soon"})
            )
            storefront.updates.put_nowait(sign_transaction("pro.monthly", transaction_id="renewal-2"))
            await asyncio.wait_for(updated.wait(), timeout=1)
            await asyncio.sleep(0)
            assert not task.done()
        finally:
            task.cancel()

        assert storefront.finished == ["renewal-2"]
