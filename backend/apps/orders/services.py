from __future__ import annotations

import uuid
from dataclasses import replace
from decimal import Decimal
from typing import Awaitable, Callable, Dict, List, Optional

from asgiref.sync import sync_to_async

from apps.carts.dtos import CartSnapshot
from apps.carts.services import CartService
from apps.carts.session import Shopper
from apps.common import get_logger
from apps.common.errors import BackendError

from .constants import OrderStatus, currency_symbol, delivery_cost
from .dtos import CheckoutForm, NewOrder, OrderDTO, OrderLineDTO, PlacedOrder
from .errors import (
    CheckoutValidationError,
    EmptyCartError,
    GuardMismatchError,
    OrderNotFoundError,
    persistence_error_for,
)
from .handoff import OrderHandoff
from .outbox import InventoryOutbox
from .pricing import compute_totals
from .protocols import AddressLookupProtocol, CancellationNotifierProtocol, OrderBackendProtocol
from .summary import compose_summary
from .validation import sanitize_form, validate_checkout_form

logger = get_logger(__name__).bind(component="orders", layer="service")


class CheckoutOrchestrator:
    """Turns a cart snapshot into a persisted pending order.

    Writing the header and the lines are hard steps: a failure aborts with a
    mapped, user-safe error. Inventory bookkeeping and the messaging hand-off
    are soft: failures are logged and the order still completes.
    """

    def __init__(
        self,
        orders: OrderBackendProtocol,
        outbox: InventoryOutbox,
        handoff: OrderHandoff,
        *,
        delivery_cost: Optional[Decimal] = None,
        currency: Optional[str] = None,
        id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
    ):
        self.orders = orders
        self.outbox = outbox
        self.handoff = handoff
        self.delivery_cost = delivery_cost
        self.currency = currency
        self.id_factory = id_factory
        self.logger = logger.bind(service="CheckoutOrchestrator")

    def validate(self, form: CheckoutForm) -> Dict[str, str]:
        return validate_checkout_form(form)

    async def place_order(
        self,
        snapshot: CartSnapshot,
        form: CheckoutForm,
        *,
        user_id: Optional[int] = None,
        finalize: Optional[Callable[[], Awaitable[object]]] = None,
    ) -> PlacedOrder:
        if snapshot.is_empty:
            self.logger.info("Checkout rejected: empty cart", user_id=user_id)
            raise EmptyCartError()
        errors = self.validate(form)
        if errors:
            self.logger.info("Checkout rejected: invalid form", fields=sorted(errors))
            raise CheckoutValidationError(errors)

        fee = self.delivery_cost if self.delivery_cost is not None else delivery_cost()
        totals = compute_totals(snapshot.lines, form.delivery_method, fee)
        order_id = self.id_factory()
        clean = sanitize_form(form)
        log = self.logger.bind(order_id=str(order_id), user_id=user_id)
        log.info(
            "Creating order",
            delivery_method=clean.delivery_method,
            payment_method=clean.payment_method,
            lines=len(snapshot.lines),
            total=str(totals.total),
        )

        header = NewOrder(
            id=order_id,
            user_id=user_id,
            customer_name=clean.name,
            customer_phone=clean.phone,
            customer_address=clean.address if clean.is_delivery else None,
            delivery_method=clean.delivery_method,
            payment_method=clean.payment_method,
            comment=clean.comment,
            delivery_time=clean.delivery_time if clean.is_delivery else None,
            totals=totals,
        )
        try:
            await self.orders.insert_order(header)
        except BackendError as exc:
            log.failure("Order header insert failed", exc)
            raise persistence_error_for(exc, "insert_order") from exc

        lines = [OrderLineDTO.from_cart_line(line) for line in snapshot.lines]
        try:
            await self.orders.insert_lines(order_id, lines)
        except BackendError as exc:
            # The header stays pending with no lines; it is left for manual follow-up.
            log.error(
                "Order lines insert failed; order left pending without lines",
                error_code=exc.code.value,
                lines=len(lines),
            )
            raise persistence_error_for(exc, "insert_lines") from exc

        outstanding = await self._adjust_inventory(order_id, lines, log)
        summary = compose_summary(
            order_id, clean, lines, totals, self.currency or currency_symbol()
        )
        handoff = await self.handoff.dispatch(summary, order_id=str(order_id))
        if finalize is not None:
            await finalize()
        log.info(
            "Order placed",
            handoff=handoff.channel,
            inventory_outstanding=outstanding,
        )
        return PlacedOrder(
            order_id=order_id,
            totals=totals,
            summary=summary,
            handoff=handoff,
            inventory_pending=outstanding,
        )

    async def _adjust_inventory(self, order_id: uuid.UUID, lines: List[OrderLineDTO], log) -> int:
        try:
            entries = await self.outbox.enqueue(order_id, lines)
        except Exception as exc:
            log.failure("Could not queue inventory adjustments", exc)
            return 0
        return await self.outbox.dispatch(entries, order_id=str(order_id))


class OrderCancellationService:
    def __init__(
        self,
        orders: OrderBackendProtocol,
        notifier: Optional[CancellationNotifierProtocol] = None,
    ):
        self.orders = orders
        self.notifier = notifier
        self.logger = logger.bind(service="OrderCancellationService")

    async def cancel(self, order_id: uuid.UUID, requester_id: int) -> OrderDTO:
        """Cancel a pending order owned by ``requester_id``.

        Cancelling an already cancelled order is a no-op. Any other guard miss
        (not the owner, unknown order, order already in progress) raises
        ``GuardMismatchError`` without saying which. The shop is notified only
        when this call changed the status.
        """
        log = self.logger.bind(order_id=str(order_id), user_id=requester_id)
        try:
            changed = await self.orders.cancel_if_pending(order_id, requester_id)
            order = await self.orders.get_for_user(order_id, requester_id)
        except BackendError as exc:
            log.failure("Cancel failed", exc)
            raise persistence_error_for(exc, "cancel_order") from exc
        if changed and order is not None:
            log.info("Order cancelled")
            await self._notify(order, log)
            return order
        if order is not None and order.status == OrderStatus.CANCELLED:
            log.debug("Cancel ignored; order already cancelled")
            return order
        log.info("Cancel rejected by guard", status=getattr(order, "status", None))
        raise GuardMismatchError()

    async def _notify(self, order: OrderDTO, log) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.order_cancelled(order)
        except Exception as exc:
            log.failure("Cancellation notice failed", exc)


class OrderQueryService:
    def __init__(self, orders: OrderBackendProtocol):
        self.orders = orders
        self.logger = logger.bind(service="OrderQueryService")

    async def list_orders(self, user_id: int) -> List[OrderDTO]:
        try:
            return await self.orders.list_for_user(user_id)
        except BackendError as exc:
            self.logger.failure("Listing orders failed", exc, user_id=user_id)
            raise persistence_error_for(exc, "list_orders") from exc

    async def get_order(self, order_id: uuid.UUID, user_id: int) -> OrderDTO:
        try:
            order = await self.orders.get_for_user(order_id, user_id)
        except BackendError as exc:
            self.logger.failure("Fetching order failed", exc, order_id=str(order_id))
            raise persistence_error_for(exc, "get_order") from exc
        if order is None:
            raise OrderNotFoundError(details={"id": str(order_id)})
        return order


class CheckoutService:
    """Runs checkout against the shopper's current cart and clears it afterwards."""

    def __init__(
        self,
        carts: CartService,
        orchestrator_factory: Callable[[OrderHandoff], CheckoutOrchestrator],
        handoff_factory: Callable[[bool], OrderHandoff],
        addresses: Optional[AddressLookupProtocol] = None,
    ):
        self.carts = carts
        self.orchestrator_factory = orchestrator_factory
        self.handoff_factory = handoff_factory
        self.addresses = addresses
        self.logger = logger.bind(service="CheckoutService")

    async def checkout(
        self,
        shopper: Shopper,
        form: CheckoutForm,
        *,
        messaging_available: bool = True,
    ) -> PlacedOrder:
        store = await self.carts.open_store(shopper)
        orchestrator = self.orchestrator_factory(self.handoff_factory(messaging_available))
        form = await self._prefill(shopper, form)

        async def finalize():
            await store.clear()
            self.carts.commit(shopper, store)

        return await orchestrator.place_order(
            store.snapshot(), form, user_id=shopper.user_id, finalize=finalize
        )

    async def _prefill(self, shopper: Shopper, form: CheckoutForm) -> CheckoutForm:
        if not (shopper.is_authenticated and form.is_delivery and not form.address.strip()):
            return form
        if self.addresses is None:
            return form
        address = await sync_to_async(self.addresses.default_for_user)(shopper.user_id)
        if address is None:
            return form
        self.logger.debug("Prefilled default address", user_id=shopper.user_id)
        return replace(form, address=address.address_line)
