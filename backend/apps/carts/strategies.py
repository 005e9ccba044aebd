from __future__ import annotations

import uuid
from dataclasses import replace
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional

from apps.common import get_logger

from .dtos import CartSnapshot, LineMeta, SavedItem
from .protocols import CartBackendProtocol
from .refs import LineRef

logger = get_logger(__name__).bind(component="carts", layer="strategy")


class CartMode(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


def local_line_id() -> str:
    return f"local-{uuid.uuid4().hex}"


class LocalCartStrategy:
    """In-memory only. Every operation is the pure snapshot transformation."""

    mode = CartMode.LOCAL

    def __init__(
        self,
        seed: Optional[CartSnapshot] = None,
        id_factory: Callable[[], str] = local_line_id,
    ):
        self._seed = replace(seed, mode=self.mode.value) if seed else None
        self._new_id = id_factory

    async def load(self) -> CartSnapshot:
        return self._seed or CartSnapshot(mode=self.mode.value)

    async def add(
        self,
        state: CartSnapshot,
        ref: LineRef,
        quantity: int,
        unit_price: Decimal,
        meta: LineMeta,
    ) -> CartSnapshot:
        return state.with_added(ref, quantity, unit_price, meta, self._new_id())

    async def remove(self, state: CartSnapshot, line_id: str) -> CartSnapshot:
        return state.without_line(line_id)

    async def set_quantity(
        self, state: CartSnapshot, line_id: str, quantity: int
    ) -> CartSnapshot:
        return state.with_quantity(line_id, quantity)

    async def clear(self, state: CartSnapshot) -> CartSnapshot:
        return state.emptied()

    async def toggle_saved(self, state: CartSnapshot, item: SavedItem) -> CartSnapshot:
        return state.with_saved_toggled(item)


class RemoteCartStrategy:
    """Backend-synced cart for a signed-in identity.

    Writes are applied optimistically to the snapshot first. A failed backend
    call is logged and the optimistic snapshot is kept.
    """

    mode = CartMode.REMOTE

    def __init__(self, backend: CartBackendProtocol, user_id: int):
        self.backend = backend
        self.user_id = user_id
        self.logger = logger.bind(strategy="remote", user_id=user_id)

    async def load(self) -> CartSnapshot:
        empty = CartSnapshot(mode=self.mode.value)
        try:
            lines = await self.backend.list_lines(self.user_id)
            saved = await self.backend.list_saved(self.user_id)
        except Exception as exc:
            self.logger.failure("Remote cart load failed", exc)
            return empty
        self.logger.debug("Remote cart loaded", lines=len(lines), saved=len(saved))
        return replace(empty, lines=tuple(lines), saved=tuple(saved))

    async def add(
        self,
        state: CartSnapshot,
        ref: LineRef,
        quantity: int,
        unit_price: Decimal,
        meta: LineMeta,
    ) -> CartSnapshot:
        existing = state.find_by_ref(ref)
        optimistic = state.with_added(ref, quantity, unit_price, meta, local_line_id())
        try:
            if existing:
                await self.backend.update_quantity(
                    self.user_id, existing.id, existing.quantity + 1
                )
            else:
                await self.backend.insert_line(
                    self.user_id, ref, quantity, unit_price, meta
                )
            lines = await self.backend.list_lines(self.user_id)
        except Exception as exc:
            self.logger.failure("Remote add failed", exc, ref=ref.key)
            return optimistic
        return optimistic.with_lines(lines)

    async def remove(self, state: CartSnapshot, line_id: str) -> CartSnapshot:
        optimistic = state.without_line(line_id)
        try:
            await self.backend.delete_line(self.user_id, line_id)
        except Exception as exc:
            self.logger.failure("Remote remove failed", exc, line_id=line_id)
        return optimistic

    async def set_quantity(
        self, state: CartSnapshot, line_id: str, quantity: int
    ) -> CartSnapshot:
        if quantity <= 0:
            return await self.remove(state, line_id)
        optimistic = state.with_quantity(line_id, quantity)
        if state.find_line(line_id) is None:
            return optimistic
        try:
            await self.backend.update_quantity(self.user_id, line_id, quantity)
        except Exception as exc:
            self.logger.failure(
                "Remote quantity update failed", exc, line_id=line_id, quantity=quantity
            )
        return optimistic

    async def clear(self, state: CartSnapshot) -> CartSnapshot:
        try:
            await self.backend.delete_all(self.user_id)
        except Exception as exc:
            self.logger.failure("Remote clear failed", exc)
        return state.emptied()

    async def toggle_saved(self, state: CartSnapshot, item: SavedItem) -> CartSnapshot:
        was_saved = state.is_saved(item.product_id)
        optimistic = state.with_saved_toggled(item)
        try:
            if was_saved:
                await self.backend.delete_saved(self.user_id, item.product_id)
            else:
                await self.backend.insert_saved(self.user_id, item)
        except Exception as exc:
            self.logger.failure(
                "Remote saved toggle failed", exc, product_id=item.product_id
            )
        return optimistic


def strategy_for(
    mode: CartMode,
    *,
    backend: Optional[CartBackendProtocol] = None,
    user_id: Optional[int] = None,
    seed: Optional[CartSnapshot] = None,
):
    """Select the persistence strategy for one explicit mode value."""
    if CartMode(mode) is CartMode.REMOTE:
        if backend is None or user_id is None:
            raise ValueError("Remote mode requires a backend and a user id")
        return RemoteCartStrategy(backend, user_id)
    return LocalCartStrategy(seed=seed)
