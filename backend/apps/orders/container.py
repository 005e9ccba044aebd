from __future__ import annotations

from apps.carts.container import build_cart_service
from apps.catalog.container import build_inventory_repository
from apps.users.repositories import AddressRepository

from .constants import handoff_phone
from .handoff import ClientLinkOpener, OrderHandoff
from .notifications import AdminEmailNotifier
from .outbox import InventoryOutbox
from .repositories import DjangoOrderBackend, DjangoOutboxStore
from .services import (
    CheckoutOrchestrator,
    CheckoutService,
    OrderCancellationService,
    OrderQueryService,
)


def build_inventory_outbox() -> InventoryOutbox:
    return InventoryOutbox(store=DjangoOutboxStore(), inventory=build_inventory_repository())


def build_handoff(messaging_available: bool = True) -> OrderHandoff:
    return OrderHandoff(handoff_phone(), ClientLinkOpener(messaging_available))


def build_checkout_orchestrator(handoff: OrderHandoff = None) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(
        orders=DjangoOrderBackend(),
        outbox=build_inventory_outbox(),
        handoff=handoff or build_handoff(),
    )


def build_checkout_service() -> CheckoutService:
    return CheckoutService(
        carts=build_cart_service(),
        orchestrator_factory=build_checkout_orchestrator,
        handoff_factory=build_handoff,
        addresses=AddressRepository(),
    )


def build_cancellation_service() -> OrderCancellationService:
    return OrderCancellationService(orders=DjangoOrderBackend(), notifier=AdminEmailNotifier())


def build_order_query_service() -> OrderQueryService:
    return OrderQueryService(orders=DjangoOrderBackend())
