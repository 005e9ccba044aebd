from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Protocol, TYPE_CHECKING

from .dtos import CartLine, CartSnapshot, CatalogEntry, LineMeta, SavedItem
from .refs import LineRef

if TYPE_CHECKING:
    from .strategies import CartMode


class CartBackendProtocol(Protocol):
    """Persisted cart and saved items, scoped by identity."""

    async def list_lines(self, user_id: int) -> List[CartLine]:
        ...

    async def insert_line(
        self,
        user_id: int,
        ref: LineRef,
        quantity: int,
        unit_price: Decimal,
        meta: LineMeta,
    ) -> CartLine:
        ...

    async def update_quantity(self, user_id: int, line_id: str, quantity: int) -> None:
        ...

    async def delete_line(self, user_id: int, line_id: str) -> None:
        ...

    async def delete_all(self, user_id: int) -> None:
        ...

    async def list_saved(self, user_id: int) -> List[SavedItem]:
        ...

    async def insert_saved(self, user_id: int, item: SavedItem) -> bool:
        """Insert-or-ignore on (user_id, product_id). Returns True when a row was created."""
        ...

    async def delete_saved(self, user_id: int, product_id: int) -> None:
        ...


class PersistenceStrategyProtocol(Protocol):
    mode: "CartMode"

    async def load(self) -> CartSnapshot:
        ...

    async def add(
        self,
        state: CartSnapshot,
        ref: LineRef,
        quantity: int,
        unit_price: Decimal,
        meta: LineMeta,
    ) -> CartSnapshot:
        ...

    async def remove(self, state: CartSnapshot, line_id: str) -> CartSnapshot:
        ...

    async def set_quantity(
        self, state: CartSnapshot, line_id: str, quantity: int
    ) -> CartSnapshot:
        ...

    async def clear(self, state: CartSnapshot) -> CartSnapshot:
        ...

    async def toggle_saved(self, state: CartSnapshot, item: SavedItem) -> CartSnapshot:
        ...


class CatalogLookupProtocol(Protocol):
    async def resolve(self, ref: LineRef) -> Optional[CatalogEntry]:
        ...

    async def resolve_product(self, product_id: int) -> Optional[SavedItem]:
        ...
