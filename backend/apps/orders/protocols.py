from __future__ import annotations

import uuid
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from .dtos import NewOrder, OrderDTO, OrderLineDTO


class OrderBackendProtocol(Protocol):
    """Order persistence. Failures raise ``BackendError`` with a typed code."""

    async def insert_order(self, order: NewOrder) -> None:
        ...

    async def insert_lines(self, order_id: uuid.UUID, lines: Sequence[OrderLineDTO]) -> None:
        ...

    async def cancel_if_pending(self, order_id: uuid.UUID, user_id: int) -> int:
        """Guarded pending -> cancelled update. Returns the number of rows changed."""
        ...

    async def get_for_user(self, order_id: uuid.UUID, user_id: int) -> Optional[OrderDTO]:
        ...

    async def list_for_user(self, user_id: int) -> List[OrderDTO]:
        ...


class OutboxEntry(Protocol):
    id: int
    order_id: Any
    kind: str
    payload: Dict[str, Any]
    attempts: int


class OutboxStoreProtocol(Protocol):
    """Outbox persistence. An entry is applied only by the worker holding its claim."""

    async def add_many(self, order_id: uuid.UUID, entries: Sequence[Dict[str, Any]]) -> List[OutboxEntry]:
        """Create entries already claimed by the caller."""
        ...

    async def claim(self, entry_id: int, *, lease_seconds: int) -> bool:
        """Take a due entry, or one whose claim is older than ``lease_seconds``."""
        ...

    async def apply(self, entry_id: int, action: Callable[[], None]) -> None:
        """Run ``action`` and mark the entry done in one transaction."""
        ...

    async def mark_failed(self, entry_id: int, error: str) -> None:
        ...

    async def due(self, *, max_attempts: int, limit: int, lease_seconds: int) -> List[OutboxEntry]:
        ...

    async def backlog(self) -> int:
        ...


class InventoryGatewayProtocol(Protocol):
    def decrement_variant_stock(self, quantities: Dict[int, int]) -> None:
        ...

    def increment_purchase_counts(self, quantities: Dict[int, int]) -> None:
        ...

    def decrement_combo_stock(self, combo_id: int, quantity: int) -> None:
        ...


class LinkOpenerProtocol(Protocol):
    async def open(self, url: str) -> None:
        """Open a deep link; raise ``HandoffUnavailableError`` when it cannot be opened."""
        ...


class AddressLookupProtocol(Protocol):
    def default_for_user(self, user_id: int) -> Optional[Any]:
        ...


class CancellationNotifierProtocol(Protocol):
    async def order_cancelled(self, order: OrderDTO) -> bool:
        """Tell the shop about a cancelled order. Returns whether anything was sent."""
        ...
