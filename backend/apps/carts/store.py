from __future__ import annotations

import asyncio
from dataclasses import replace
from decimal import Decimal
from typing import Awaitable, Callable, Optional

from apps.common import get_logger

from .dtos import CartSnapshot, LineMeta, SavedItem
from .protocols import PersistenceStrategyProtocol
from .refs import LineRef

logger = get_logger(__name__).bind(component="carts", layer="store")


class MutationQueue:
    """Single-flight FIFO: at most one mutation in flight, applied in arrival order."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._waiting = 0

    @property
    def pending(self) -> int:
        return self._waiting

    async def run(self, fn: Callable[[], Awaitable[CartSnapshot]]) -> CartSnapshot:
        self._waiting += 1
        try:
            async with self._lock:
                return await fn()
        finally:
            self._waiting -= 1


class CartStore:
    """Owns the in-memory cart and delegates persistence to the active strategy.

    Each mutation reads the snapshot only once it holds the queue, so queued
    mutations always build on the latest state. ``serialize=False`` drops the
    queue and lets concurrent mutations race on a shared stale snapshot.
    """

    def __init__(
        self,
        strategy: PersistenceStrategyProtocol,
        *,
        initial: Optional[CartSnapshot] = None,
        serialize: bool = True,
    ):
        self._strategy = strategy
        self._state = initial or CartSnapshot(mode=strategy.mode.value)
        self._queue: Optional[MutationQueue] = MutationQueue() if serialize else None
        self.logger = logger.bind(store=id(self))

    @property
    def strategy(self) -> PersistenceStrategyProtocol:
        return self._strategy

    @property
    def mode(self):
        return self._strategy.mode

    def snapshot(self) -> CartSnapshot:
        return self._state

    def switch_strategy(self, strategy: PersistenceStrategyProtocol) -> None:
        """Swap persistence backends. In-memory collections restart empty."""
        self.logger.info(
            "Switching cart strategy",
            previous=self._strategy.mode.value,
            next=strategy.mode.value,
        )
        self._strategy = strategy
        self._state = CartSnapshot(mode=strategy.mode.value)

    async def reload(self) -> CartSnapshot:
        async def op(_state: CartSnapshot) -> CartSnapshot:
            return await self._strategy.load()

        return await self._mutate("reload", op)

    async def add_item(
        self,
        ref: LineRef,
        quantity: int = 1,
        *,
        unit_price: Decimal,
        meta: LineMeta,
    ) -> CartSnapshot:
        if quantity < 1:
            raise ValueError("quantity must be at least 1")

        async def op(state: CartSnapshot) -> CartSnapshot:
            return await self._strategy.add(state, ref, quantity, unit_price, meta)

        return await self._mutate("add_item", op, ref=ref.key, quantity=quantity)

    async def remove_item(self, line_id: str) -> CartSnapshot:
        async def op(state: CartSnapshot) -> CartSnapshot:
            if state.find_line(line_id) is None:
                return state
            return await self._strategy.remove(state, line_id)

        return await self._mutate("remove_item", op, line_id=line_id)

    async def set_quantity(self, line_id: str, quantity: int) -> CartSnapshot:
        async def op(state: CartSnapshot) -> CartSnapshot:
            if state.find_line(line_id) is None:
                return state
            if quantity <= 0:
                return await self._strategy.remove(state, line_id)
            return await self._strategy.set_quantity(state, line_id, quantity)

        return await self._mutate(
            "set_quantity", op, line_id=line_id, quantity=quantity
        )

    async def clear(self) -> CartSnapshot:
        async def op(state: CartSnapshot) -> CartSnapshot:
            return await self._strategy.clear(state)

        return await self._mutate("clear", op)

    async def toggle_saved(self, item: SavedItem) -> CartSnapshot:
        async def op(state: CartSnapshot) -> CartSnapshot:
            return await self._strategy.toggle_saved(state, item)

        return await self._mutate("toggle_saved", op, product_id=item.product_id)

    async def _mutate(
        self,
        name: str,
        op: Callable[[CartSnapshot], Awaitable[CartSnapshot]],
        **context,
    ) -> CartSnapshot:
        async def apply() -> CartSnapshot:
            strategy = self._strategy
            new_state = await op(self._state)
            # A strategy switch mid-flight discards the result of the old backend.
            if self._strategy is strategy:
                self._state = replace(new_state, mode=strategy.mode.value)
            return self._state

        self.logger.debug(
            "Cart mutation", operation=name, mode=self._strategy.mode.value, **context
        )
        if self._queue is None:
            return await apply()
        return await self._queue.run(apply)
