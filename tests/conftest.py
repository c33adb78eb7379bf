"""
Pytest Configuration and Centralized Fixtures.

Provides reusable fixtures for testing:
- Mock backend with no simulated latency
- In-memory analytics logger
- Fake on-device storefront with a small catalog
- Started PurchaseManager, closed after each test
"""

from collections.abc import AsyncGenerator

import pytest

from purchasing.manager import PurchaseManager
from purchasing.models.entitlement import PurchasedEntitlement
from purchasing.models.storekit import StoreKitProduct
from purchasing.observability.purchase_logger import RecordingPurchaseLogger
from purchasing.services.mock_purchase_service import MockPurchaseService
from tests.factories import FakeStorefront, make_entitlement

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def active_entitlement() -> PurchasedEntitlement:
    """Active entitlement without an expiration date."""
    return make_entitlement()


@pytest.fixture
def recording_logger() -> RecordingPurchaseLogger:
    return RecordingPurchaseLogger()


@pytest.fixture
def mock_service() -> MockPurchaseService:
    """Mock backend with no entitlements, no products and no latency."""
    return MockPurchaseService(delay_seconds=0)


@pytest.fixture
def monthly_product() -> StoreKitProduct:
    return StoreKitProduct(
        id="pro.monthly",
        display_name="Pro Monthly",
        description="All features, billed monthly",
        display_price="$9.99",
        subscription_period_unit="month",
        is_subscription=True,
    )


@pytest.fixture
def lifetime_product() -> StoreKitProduct:
    return StoreKitProduct(
        id="pro.lifetime",
        display_name="Pro Lifetime",
        description="All features, forever",
        display_price="$49.99",
    )


@pytest.fixture
def storefront(monthly_product: StoreKitProduct, lifetime_product: StoreKitProduct) -> FakeStorefront:
    return FakeStorefront(products=[monthly_product, lifetime_product])


@pytest.fixture
async def manager(
    mock_service: MockPurchaseService, recording_logger: RecordingPurchaseLogger
) -> AsyncGenerator[PurchaseManager, None]:
    """Started manager over the empty mock backend."""
    purchase_manager = await PurchaseManager.create(
        mock_service, logger=recording_logger, retry_interval_seconds=0
    )
    yield purchase_manager
    await purchase_manager.close()
