"""
Purchase Manager - the single object application code talks to.

Wraps exactly one PurchaseService, holds the current entitlements, keeps a
transaction listener running and reports every operation outcome to a
PurchaseLogger.

All operations on one manager must run on the same event loop. Held state is
replaced wholesale, never mutated in place, so there is no locking.
"""

import asyncio
import contextlib
from collections.abc import Callable, Iterable, Sequence
from enum import Enum
from typing import Any

from purchasing.config import settings
from purchasing.models.entitlement import (
    PurchasedEntitlement,
    active_entitlements,
    entitlements_event_parameters,
    has_active_entitlement,
    sort_entitlements,
)
from purchasing.models.events import (
    EventParameters,
    LogType,
    PurchaseLogEvent,
    error_event_parameters,
)
from purchasing.models.product import AnyProduct, products_event_parameters
from purchasing.models.profile import PurchaseProfileAttributes
from purchasing.observability.logging import get_logger, log_context
from purchasing.observability.metrics import metrics
from purchasing.observability.purchase_logger import PurchaseLogger, StructlogPurchaseLogger
from purchasing.services.purchase_service import PurchaseService

logger = get_logger(__name__)

EntitlementsObserver = Callable[[tuple[PurchasedEntitlement, ...]], None]


class Event(str, Enum):
    """Events emitted by PurchaseManager."""

    ENTITLEMENTS_SUCCESS = "purchase_manager_entitlements_success"
    ENTITLEMENTS_FAIL = "purchase_manager_entitlements_fail"
    GET_PRODUCTS_START = "purchase_manager_get_products_start"
    GET_PRODUCTS_SUCCESS = "purchase_manager_get_products_success"
    GET_PRODUCTS_FAIL = "purchase_manager_get_products_fail"
    PURCHASE_START = "purchase_manager_purchase_start"
    PURCHASE_SUCCESS = "purchase_manager_purchase_success"
    PURCHASE_FAIL = "purchase_manager_purchase_fail"
    RESTORE_START = "purchase_manager_restore_start"
    RESTORE_SUCCESS = "purchase_manager_restore_success"
    RESTORE_FAIL = "purchase_manager_restore_fail"
    LOGIN_START = "purchase_manager_login_start"
    LOGIN_SUCCESS = "purchase_manager_login_success"
    LOGIN_FAIL = "purchase_manager_login_fail"
    LOGOUT_SUCCESS = "purchase_manager_logout_success"
    LOGOUT_FAIL = "purchase_manager_logout_fail"
    UPDATE_PROFILE_ATTRIBUTES_FAIL = "purchase_manager_update_profile_attributes_fail"

    @property
    def log_type(self) -> LogType:
        return _EVENT_LOG_TYPES[self]


_EVENT_LOG_TYPES: dict[Event, LogType] = {
    Event.ENTITLEMENTS_SUCCESS: LogType.INFO,
    Event.ENTITLEMENTS_FAIL: LogType.SEVERE,
    Event.GET_PRODUCTS_START: LogType.INFO,
    Event.GET_PRODUCTS_SUCCESS: LogType.INFO,
    Event.GET_PRODUCTS_FAIL: LogType.SEVERE,
    Event.PURCHASE_START: LogType.INFO,
    Event.PURCHASE_SUCCESS: LogType.ANALYTIC,
    Event.PURCHASE_FAIL: LogType.SEVERE,
    Event.RESTORE_START: LogType.INFO,
    Event.RESTORE_SUCCESS: LogType.ANALYTIC,
    Event.RESTORE_FAIL: LogType.SEVERE,
    Event.LOGIN_START: LogType.INFO,
    Event.LOGIN_SUCCESS: LogType.INFO,
    Event.LOGIN_FAIL: LogType.SEVERE,
    Event.LOGOUT_SUCCESS: LogType.INFO,
    Event.LOGOUT_FAIL: LogType.SEVERE,
    Event.UPDATE_PROFILE_ATTRIBUTES_FAIL: LogType.SEVERE,
}


class PurchaseManager:
    """
    Coordinates one purchase backend.

    Usage:
        async with PurchaseManager(StoreKitPurchaseService(storefront)) as manager:
            await manager.log_in(user_id)
            if manager.has_active_entitlement:
                ...
    """

    def __init__(
        self,
        service: PurchaseService,
        logger: PurchaseLogger | None = None,
        retry_interval_seconds: float | None = None,
    ) -> None:
        """
        Initialize purchase manager.

        Args:
            service: The backend; fixed for the manager's lifetime
            logger: Analytics sink (defaults to StructlogPurchaseLogger)
            retry_interval_seconds: Delay between background refresh attempts
                (defaults to settings.entitlements_retry_interval_seconds)
        """
        self.service = service
        self.logger: PurchaseLogger = logger or StructlogPurchaseLogger()
        self.retry_interval_seconds = (
            settings.entitlements_retry_interval_seconds
            if retry_interval_seconds is None
            else retry_interval_seconds
        )
        self._entitlements: tuple[PurchasedEntitlement, ...] = ()
        self._observers: list[EntitlementsObserver] = []
        self._listener: asyncio.Task[None] | None = None
        self._user_id: str | None = None

    @classmethod
    async def create(
        cls,
        service: PurchaseService,
        logger: PurchaseLogger | None = None,
        retry_interval_seconds: float | None = None,
    ) -> "PurchaseManager":
        """Construct and start a manager."""
        manager = cls(service, logger=logger, retry_interval_seconds=retry_interval_seconds)
        await manager.start()
        return manager

    async def __aenter__(self) -> "PurchaseManager":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # ========================================================================
    # State
    # ========================================================================

    @property
    def entitlements(self) -> tuple[PurchasedEntitlement, ...]:
        """User's entitlements, furthest expiration first."""
        return self._entitlements

    @property
    def active_entitlements(self) -> list[PurchasedEntitlement]:
        return active_entitlements(self._entitlements)

    @property
    def has_active_entitlement(self) -> bool:
        """True if the user has at least one active entitlement."""
        return has_active_entitlement(self._entitlements)

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def is_signed_in(self) -> bool:
        return self._user_id is not None

    def add_entitlements_observer(self, observer: EntitlementsObserver) -> Callable[[], None]:
        """
        Call observer with the new entitlements after every replacement.

        Returns:
            A callable that removes the observer
        """
        self._observers.append(observer)

        def remove() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return remove

    def _set_entitlements(self, entitlements: Sequence[PurchasedEntitlement]) -> None:
        self._entitlements = tuple(sort_entitlements(entitlements))
        is_premium = self.has_active_entitlement

        metrics.record_entitlements(
            total=len(self._entitlements),
            active=len(self.active_entitlements),
        )
        self.logger.add_user_properties(
            entitlements_event_parameters(self._entitlements), is_high_priority=False
        )
        self.logger.add_user_properties({"user_is_premium": is_premium}, is_high_priority=True)

        for observer in list(self._observers):
            try:
                observer(self._entitlements)
            except Exception:
                logger.exception("entitlements_observer_failed")

    def _track(self, event: Event, parameters: EventParameters | None = None) -> None:
        self.logger.track_event(
            PurchaseLogEvent(event_name=event.value, parameters=parameters, type=event.log_type)
        )

    def _entitlements_parameters(self) -> EventParameters:
        return entitlements_event_parameters(self._entitlements)

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def start(self) -> None:
        """
        Load initial entitlements and start listening for transactions.

        The initial fetch is best effort: a failure is logged and left to
        the transaction listener to correct.
        """
        try:
            entitlements = await self.service.get_user_entitlements()
        except Exception as exc:
            logger.warning("initial_entitlements_fetch_failed", error=str(exc))
            metrics.record_operation("initial_entitlements", success=False)
            self._track(Event.ENTITLEMENTS_FAIL, error_event_parameters(exc))
        else:
            metrics.record_operation("initial_entitlements", success=True)
            self._set_entitlements(entitlements)
            self._track(Event.ENTITLEMENTS_SUCCESS, self._entitlements_parameters())

        await self._add_entitlement_listener()

    async def close(self) -> None:
        """Stop the transaction listener."""
        await self._cancel_entitlement_listener()

    async def _add_entitlement_listener(self) -> None:
        await self._cancel_entitlement_listener()
        self._listener = asyncio.create_task(
            self._listen_for_transactions(), name="purchase-manager-transaction-listener"
        )

    async def _cancel_entitlement_listener(self) -> None:
        listener, self._listener = self._listener, None
        if listener is None or listener.done():
            return
        listener.cancel()
        if listener is not asyncio.current_task():
            with contextlib.suppress(asyncio.CancelledError):
                await listener

    async def _listen_for_transactions(self) -> None:
        try:
            await self.service.listen_for_transactions(self._refresh_entitlements)
        except asyncio.CancelledError:
            raise
        except Exception:
            # Nobody awaits this task; surface the failure in the logs instead
            logger.exception("transaction_listener_failed")

    async def _refresh_entitlements(self) -> None:
        """
        Replace entitlements with a fresh fetch.

        Runs inside the listener task and never raises: failures are logged
        and retried after a fixed interval until a fetch succeeds or the
        listener is cancelled.
        """
        while True:
            try:
                entitlements = await self.service.get_user_entitlements()
            except Exception as exc:
                logger.warning(
                    "entitlements_refresh_failed",
                    error=str(exc),
                    retry_in_seconds=self.retry_interval_seconds,
                )
                metrics.record_operation("refresh_entitlements", success=False)
                metrics.record_refresh_retry()
                self._track(Event.ENTITLEMENTS_FAIL, error_event_parameters(exc))
                await asyncio.sleep(self.retry_interval_seconds)
                continue

            metrics.record_operation("refresh_entitlements", success=True)
            self._set_entitlements(entitlements)
            self._track(Event.ENTITLEMENTS_SUCCESS, self._entitlements_parameters())
            return

    # ========================================================================
    # Operations
    # ========================================================================

    async def get_products(self, product_ids: Iterable[str]) -> list[AnyProduct]:
        """Return the requested products available for purchase."""
        ids = list(product_ids)
        self._track(Event.GET_PRODUCTS_START, {"product_ids": ", ".join(sorted(ids))})

        try:
            products = await self.service.get_products(ids)
        except Exception as exc:
            metrics.record_operation("get_products", success=False)
            self._track(Event.GET_PRODUCTS_FAIL, error_event_parameters(exc))
            raise

        metrics.record_operation("get_products", success=True)
        self._track(Event.GET_PRODUCTS_SUCCESS, products_event_parameters(products))
        return products

    async def purchase_product(self, product_id: str) -> list[PurchasedEntitlement]:
        """
        Purchase a product.

        Returns:
            The user's entitlements after the purchase. The same list is
            published to observers, so callers may ignore the return value.
        """
        self._track(Event.PURCHASE_START, {"product_id": product_id})

        try:
            entitlements = await self.service.purchase_product(product_id)
        except Exception as exc:
            metrics.record_operation("purchase", success=False)
            self._track(
                Event.PURCHASE_FAIL, {"product_id": product_id, **error_event_parameters(exc)}
            )
            raise

        metrics.record_operation("purchase", success=True)
        self._set_entitlements(entitlements)
        self._track(
            Event.PURCHASE_SUCCESS, {"product_id": product_id, **self._entitlements_parameters()}
        )
        return list(self._entitlements)

    async def restore_purchase(self) -> list[PurchasedEntitlement]:
        """Restore purchases and return the user's entitlements."""
        self._track(Event.RESTORE_START)

        try:
            entitlements = await self.service.restore_purchase()
        except Exception as exc:
            metrics.record_operation("restore", success=False)
            self._track(Event.RESTORE_FAIL, error_event_parameters(exc))
            raise

        metrics.record_operation("restore", success=True)
        self._set_entitlements(entitlements)
        self._track(Event.RESTORE_SUCCESS, self._entitlements_parameters())
        return list(self._entitlements)

    async def check_trial_eligibility(self, product_id: str) -> bool:
        """True if the user can still redeem the product's introductory offer."""
        return await self.service.check_trial_eligibility(product_id)

    async def log_in(
        self,
        user_id: str,
        attributes: PurchaseProfileAttributes | None = None,
    ) -> list[PurchasedEntitlement]:
        """
        Log in to the backend.

        Safe to call on every app launch. The transaction listener is
        restarted because the previous one may be bound to the old identity.
        Attributes, when given, are forwarded after a successful log in.
        """
        with log_context(user_id=user_id):
            self._track(Event.LOGIN_START, {"user_id": user_id})

            try:
                entitlements = await self.service.log_in(user_id)
            except Exception as exc:
                metrics.record_operation("login", success=False)
                self._track(Event.LOGIN_FAIL, error_event_parameters(exc))
                raise

            metrics.record_operation("login", success=True)
            self._user_id = user_id
            self._set_entitlements(entitlements)
            await self._add_entitlement_listener()
            self._track(Event.LOGIN_SUCCESS, self._entitlements_parameters())
            logger.info("purchase_manager_signed_in", entitlements=len(self._entitlements))

            if attributes is not None and not attributes.is_empty():
                await self.update_profile_attributes(attributes)

            return list(self._entitlements)

    async def update_profile_attributes(self, attributes: PurchaseProfileAttributes) -> None:
        """Forward attribution data to the backend."""
        try:
            await self.service.update_profile_attributes(attributes)
        except Exception as exc:
            metrics.record_operation("update_profile_attributes", success=False)
            self._track(Event.UPDATE_PROFILE_ATTRIBUTES_FAIL, error_event_parameters(exc))
            raise

        metrics.record_operation("update_profile_attributes", success=True)

    async def log_out(self) -> None:
        """
        Log out of the backend and clear entitlements held in memory.

        Does not sign the user out of their store account. A new listener is
        started so the anonymous identity still receives updates.
        """
        try:
            await self.service.log_out()
        except Exception as exc:
            metrics.record_operation("logout", success=False)
            self._track(Event.LOGOUT_FAIL, error_event_parameters(exc))
            raise

        metrics.record_operation("logout", success=True)
        await self._cancel_entitlement_listener()
        self._user_id = None
        self._set_entitlements([])
        self._track(Event.LOGOUT_SUCCESS)
        await self._add_entitlement_listener()
