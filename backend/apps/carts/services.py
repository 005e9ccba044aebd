from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Tuple

from apps.common import get_logger

from .commands import AddItemCommand, SetQuantityCommand, ToggleSavedCommand
from .dtos import CartSnapshot, MergeReport
from .identity import IdentityTransition
from .protocols import CartBackendProtocol, CatalogLookupProtocol
from .session import SessionCartStorage, Shopper
from .store import CartStore
from .strategies import CartMode, strategy_for

logger = get_logger(__name__).bind(component="carts", layer="service")

ErrorTuple = Tuple[str, str, Optional[Dict[str, Any]]]


class CartService:
    """Request-scoped entry into the cart store.

    Each call opens a store for the shopper (Remote for a signed-in user, Local
    seeded from the session for a guest), applies one operation and, for guests,
    writes the resulting snapshot back to the session.
    """

    def __init__(
        self,
        backend: CartBackendProtocol,
        catalog: CatalogLookupProtocol,
        storage_factory: Callable[..., SessionCartStorage] = SessionCartStorage,
    ):
        self.backend = backend
        self.catalog = catalog
        self.storage_factory = storage_factory
        self.logger = logger.bind(service="CartService")

    async def open_store(self, shopper: Shopper) -> CartStore:
        if shopper.is_authenticated:
            strategy = strategy_for(CartMode.REMOTE, backend=self.backend, user_id=shopper.user_id)
        else:
            seed = self.storage_factory(shopper.session).load()
            strategy = strategy_for(CartMode.LOCAL, seed=seed)
        store = CartStore(strategy)
        await store.reload()
        return store

    def commit(self, shopper: Shopper, store: CartStore) -> None:
        """Persist a guest snapshot to the session. Remote carts are already persisted."""
        if not shopper.is_authenticated:
            self.storage_factory(shopper.session).save(store.snapshot())

    async def get_cart(self, shopper: Shopper) -> CartSnapshot:
        store = await self.open_store(shopper)
        return store.snapshot()

    async def add_item(
        self, shopper: Shopper, command: AddItemCommand
    ) -> Tuple[Optional[CartSnapshot], Optional[ErrorTuple]]:
        entry = await self.catalog.resolve(command.ref)
        if entry is None:
            self.logger.info("Add rejected: unknown item", ref=command.ref)
            return None, (
                "NOT_FOUND",
                "Item is not available",
                {command.ref.kind: str(command.ref.id)},
            )
        store = await self.open_store(shopper)
        snapshot = await store.add_item(
            command.ref,
            command.quantity,
            unit_price=entry.unit_price,
            meta=entry.meta,
        )
        self.commit(shopper, store)
        self.logger.debug(
            "Item added",
            ref=command.ref,
            user_id=shopper.user_id,
            lines=len(snapshot.lines),
        )
        return snapshot, None

    async def set_quantity(
        self, shopper: Shopper, command: SetQuantityCommand
    ) -> Tuple[Optional[CartSnapshot], Optional[ErrorTuple]]:
        store = await self.open_store(shopper)
        if store.snapshot().find_line(command.line_id) is None:
            return None, ("NOT_FOUND", "Cart line not found", {"id": command.line_id})
        snapshot = await store.set_quantity(command.line_id, command.quantity)
        self.commit(shopper, store)
        return snapshot, None

    async def remove_item(self, shopper: Shopper, line_id: str) -> CartSnapshot:
        store = await self.open_store(shopper)
        snapshot = await store.remove_item(line_id)
        self.commit(shopper, store)
        return snapshot

    async def clear(self, shopper: Shopper) -> CartSnapshot:
        store = await self.open_store(shopper)
        snapshot = await store.clear()
        self.commit(shopper, store)
        return snapshot

    async def toggle_saved(
        self, shopper: Shopper, command: ToggleSavedCommand
    ) -> Tuple[Optional[CartSnapshot], Optional[ErrorTuple]]:
        item = await self.catalog.resolve_product(command.product_id)
        if item is None:
            return None, (
                "NOT_FOUND",
                "Product not found",
                {"productId": str(command.product_id)},
            )
        store = await self.open_store(shopper)
        snapshot = await store.toggle_saved(item)
        self.commit(shopper, store)
        return snapshot, None

    async def sign_in(self, shopper: Shopper, user_id: int) -> MergeReport:
        """Merge the session's guest cart into ``user_id``'s cart and drop it."""
        guest = shopper.as_guest()
        store = await self.open_store(guest)
        transition = IdentityTransition(store, self.backend)
        report = await transition.sign_in(user_id)
        self.storage_factory(guest.session).clear()
        return report

    async def sign_out(self, shopper: Shopper) -> None:
        store = await self.open_store(shopper)
        transition = IdentityTransition(store, self.backend, user_id=shopper.user_id)
        await transition.sign_out()
        # The guest cart that existed before sign-in is not restored.
        self.storage_factory(shopper.session).clear()
