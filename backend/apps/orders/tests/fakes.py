import itertools
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from apps.carts.dtos import CartLine, CartSnapshot, LineMeta
from apps.carts.refs import ComboRef, VariantRef
from apps.common.errors import BackendError, BackendErrorCode, TransientBackendError
from apps.orders.constants import AdjustmentStatus, OrderStatus
from apps.orders.dtos import CheckoutForm, OrderDTO
from apps.orders.errors import HandoffUnavailableError


def cart(*lines, mode="local"):
    return CartSnapshot(lines=tuple(lines), mode=mode)


def variant_line(variant_id=1, quantity=2, price="4500", name="Red roses", size="M"):
    return CartLine(
        id=f"local-v{variant_id}",
        ref=VariantRef(variant_id),
        quantity=quantity,
        unit_price=Decimal(price),
        meta=LineMeta(name=name, size=size, product_id=variant_id),
    )


def combo_line(combo_id=1, quantity=1, price="9500", name="Roses and chocolate"):
    return CartLine(
        id=f"local-c{combo_id}",
        ref=ComboRef(combo_id),
        quantity=quantity,
        unit_price=Decimal(price),
        meta=LineMeta(name=name),
    )


def delivery_form(**overrides):
    values = dict(
        name="Aigerim",
        phone="+7 701 123 45 67",
        delivery_method="delivery",
        payment_method="kaspi",
        address="Abay Ave 10, apt 5",
        delivery_time="18:00-20:00",
        comment="",
    )
    values.update(overrides)
    return CheckoutForm(**values)


class FakeOrderBackend:
    """Keeps headers and lines apart, like the real store. ``fail`` maps op -> code."""

    def __init__(self, fail=None):
        self.fail: Dict[str, BackendErrorCode] = dict(fail or {})
        self.orders: Dict[Any, OrderDTO] = {}
        self.lines: Dict[Any, list] = {}
        self.calls: List[str] = []

    def _check(self, op):
        self.calls.append(op)
        code = self.fail.get(op)
        if code is not None:
            error_cls = TransientBackendError if code is BackendErrorCode.NETWORK else BackendError
            raise error_cls(code, f"{op} failed: internal detail", operation=op)

    async def insert_order(self, order):
        self._check("insert_order")
        self.orders[order.id] = OrderDTO(
            id=order.id,
            user_id=order.user_id,
            status=OrderStatus.PENDING,
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            customer_address=order.customer_address,
            delivery_method=order.delivery_method,
            payment_method=order.payment_method,
            comment=order.comment,
            delivery_time=order.delivery_time,
            subtotal=order.totals.subtotal,
            delivery_cost=order.totals.delivery_cost,
            total=order.totals.total,
            created_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
        )
        self.lines[order.id] = []

    async def insert_lines(self, order_id, lines):
        self._check("insert_lines")
        self.lines[order_id] = list(lines)

    async def cancel_if_pending(self, order_id, user_id):
        self._check("cancel_if_pending")
        order = self.orders.get(order_id)
        if order is None or order.user_id != user_id or order.status != OrderStatus.PENDING:
            return 0
        self.orders[order_id] = replace(order, status=OrderStatus.CANCELLED)
        return 1

    async def get_for_user(self, order_id, user_id):
        self._check("get_for_user")
        order = self.orders.get(order_id)
        if order is None or order.user_id != user_id:
            return None
        return replace(order, lines=list(self.lines.get(order_id, [])))

    async def list_for_user(self, user_id):
        self._check("list_for_user")
        return [o for o in self.orders.values() if o.user_id == user_id]

    def set_status(self, order_id, status):
        self.orders[order_id] = replace(self.orders[order_id], status=status)


@dataclass
class Entry:
    id: int
    order_id: Any
    kind: str
    payload: Dict[str, Any]
    attempts: int = 0
    status: str = AdjustmentStatus.PENDING
    last_error: str = ""
    claimed_at: Optional[float] = None


@dataclass
class FakeOutboxStore:
    """In-memory outbox. ``now`` is the clock claims are stamped with, in seconds."""

    entries: Dict[int, Entry] = field(default_factory=dict)
    fail_add: bool = False
    now: float = 0.0

    def __post_init__(self):
        self._ids = itertools.count(1)

    async def add_many(self, order_id, planned):
        if self.fail_add:
            raise BackendError(BackendErrorCode.NETWORK, "outbox unavailable")
        created = []
        for item in planned:
            entry = Entry(
                next(self._ids),
                order_id,
                item["kind"],
                item["payload"],
                status=AdjustmentStatus.IN_FLIGHT,
                claimed_at=self.now,
            )
            self.entries[entry.id] = entry
            created.append(entry)
        return created

    def queue(self, order_id, kind, payload):
        """Add an unclaimed entry, as left behind for the drain worker."""
        entry = Entry(next(self._ids), order_id, kind, payload)
        self.entries[entry.id] = entry
        return entry

    def _claimable(self, entry, lease_seconds):
        if entry.status in (AdjustmentStatus.PENDING, AdjustmentStatus.FAILED):
            return True
        return (
            entry.status == AdjustmentStatus.IN_FLIGHT
            and self.now - entry.claimed_at > lease_seconds
        )

    async def claim(self, entry_id, *, lease_seconds):
        entry = self.entries[entry_id]
        if not self._claimable(entry, lease_seconds):
            return False
        entry.status = AdjustmentStatus.IN_FLIGHT
        entry.claimed_at = self.now
        return True

    async def apply(self, entry_id, action):
        action()
        entry = self.entries[entry_id]
        entry.status = AdjustmentStatus.DONE
        entry.attempts += 1
        entry.claimed_at = None

    async def mark_failed(self, entry_id, error):
        entry = self.entries[entry_id]
        entry.status = AdjustmentStatus.FAILED
        entry.attempts += 1
        entry.last_error = error
        entry.claimed_at = None

    async def due(self, *, max_attempts, limit, lease_seconds):
        due = [
            e for e in self.entries.values()
            if self._claimable(e, lease_seconds)
            and not (e.status == AdjustmentStatus.FAILED and e.attempts >= max_attempts)
        ]
        return due[:limit]

    async def backlog(self):
        return sum(1 for e in self.entries.values() if e.status != AdjustmentStatus.DONE)

    def statuses(self):
        return [e.status for e in self.entries.values()]


class FakeInventory:
    """Records stock calls. ``errors`` holds exceptions raised by successive calls."""

    def __init__(self, errors=()):
        self.errors = list(errors)
        self.calls = []

    def _call(self, name, *args):
        self.calls.append((name,) + args)
        if self.errors:
            error = self.errors.pop(0)
            if error is not None:
                raise error

    def decrement_variant_stock(self, quantities):
        self._call("decrement_variant_stock", dict(quantities))

    def increment_purchase_counts(self, quantities):
        self._call("increment_purchase_counts", dict(quantities))

    def decrement_combo_stock(self, combo_id, quantity):
        self._call("decrement_combo_stock", combo_id, quantity)


class FakeOpener:
    def __init__(self, available=True):
        self.available = available
        self.opened = []

    async def open(self, url):
        if not self.available:
            raise HandoffUnavailableError("not installed")
        self.opened.append(url)
