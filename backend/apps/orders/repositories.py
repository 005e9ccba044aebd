import uuid
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence

from asgiref.sync import sync_to_async
from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from apps.common import get_logger
from apps.common.errors import backend_errors
from apps.common.repository import GenericRepository

from .constants import AdjustmentStatus, OrderStatus
from .dtos import NewOrder, OrderDTO, OrderLineDTO
from .mappers import OrderLineMapper, OrderMapper
from .models import InventoryAdjustment, Order, OrderItem

logger = get_logger(__name__).bind(component="orders", layer="repository")


class OrderRepository(GenericRepository[Order]):
    def __init__(self):
        super().__init__(Order)

    def for_user(self, user_id: int):
        return self.model.objects.filter(user_id=user_id).order_by("-created_at")

    def get_with_items(self, order_id, user_id: int) -> Optional[Order]:
        return (
            self.model.objects.filter(pk=order_id, user_id=user_id)
            .prefetch_related("items")
            .first()
        )

    def cancel_if_pending(self, order_id, user_id: int) -> int:
        return self.model.objects.filter(
            pk=order_id, user_id=user_id, status=OrderStatus.PENDING
        ).update(status=OrderStatus.CANCELLED)


class OrderItemRepository(GenericRepository[OrderItem]):
    def __init__(self):
        super().__init__(OrderItem)

    def bulk_insert(self, rows: List[Dict[str, Any]]) -> None:
        self.model.objects.bulk_create([self.model(**row) for row in rows])


class DjangoOrderBackend:
    """Header and lines are separate writes; there is no transaction spanning both."""

    def __init__(
        self,
        orders: Optional[OrderRepository] = None,
        items: Optional[OrderItemRepository] = None,
    ):
        self.orders = orders or OrderRepository()
        self.items = items or OrderItemRepository()

    async def insert_order(self, order: NewOrder) -> None:
        await sync_to_async(self._insert_order)(order)

    async def insert_lines(self, order_id: uuid.UUID, lines: Sequence[OrderLineDTO]) -> None:
        await sync_to_async(self._insert_lines)(order_id, list(lines))

    async def cancel_if_pending(self, order_id: uuid.UUID, user_id: int) -> int:
        return await sync_to_async(self._cancel_if_pending)(order_id, user_id)

    async def get_for_user(self, order_id: uuid.UUID, user_id: int) -> Optional[OrderDTO]:
        return await sync_to_async(self._get_for_user)(order_id, user_id)

    async def list_for_user(self, user_id: int) -> List[OrderDTO]:
        return await sync_to_async(self._list_for_user)(user_id)

    def _insert_order(self, order: NewOrder) -> None:
        with backend_errors("insert_order"), transaction.atomic():
            # create() forces an INSERT, so a reused id surfaces as a duplicate.
            self.orders.model.objects.create(
                id=order.id,
                user_id=order.user_id,
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
                status=OrderStatus.PENDING,
            )

    def _insert_lines(self, order_id: uuid.UUID, lines: List[OrderLineDTO]) -> None:
        rows = [OrderLineMapper.to_row(order_id, line) for line in lines]
        with backend_errors("insert_lines"), transaction.atomic():
            self.items.bulk_insert(rows)

    def _cancel_if_pending(self, order_id: uuid.UUID, user_id: int) -> int:
        with backend_errors("cancel_order"):
            return self.orders.cancel_if_pending(order_id, user_id)

    def _get_for_user(self, order_id: uuid.UUID, user_id: int) -> Optional[OrderDTO]:
        with backend_errors("get_order"):
            order = self.orders.get_with_items(order_id, user_id)
            return OrderMapper.to_dto(order, with_lines=True) if order else None

    def _list_for_user(self, user_id: int) -> List[OrderDTO]:
        with backend_errors("list_orders"):
            return OrderMapper.many_to_dto(self.orders.for_user(user_id))


class DjangoOutboxStore:
    def __init__(self):
        self.model = InventoryAdjustment

    async def add_many(self, order_id: uuid.UUID, entries: Sequence[Dict[str, Any]]):
        return await sync_to_async(self._add_many)(order_id, list(entries))

    async def claim(self, entry_id: int, *, lease_seconds: int) -> bool:
        return await sync_to_async(self._claim)(entry_id, lease_seconds)

    async def apply(self, entry_id: int, action: Callable[[], None]) -> None:
        await sync_to_async(self._apply)(entry_id, action)

    async def mark_failed(self, entry_id: int, error: str) -> None:
        await sync_to_async(self._mark_failed)(entry_id, error)

    async def due(self, *, max_attempts: int, limit: int, lease_seconds: int):
        return await sync_to_async(self._due)(max_attempts, limit, lease_seconds)

    async def backlog(self) -> int:
        return await sync_to_async(self.backlog_sync)()

    def backlog_sync(self) -> int:
        return self.model.objects.exclude(status=AdjustmentStatus.DONE).count()

    def _add_many(self, order_id, entries: List[Dict[str, Any]]):
        now = timezone.now()
        with backend_errors("enqueue_adjustments"), transaction.atomic():
            return [
                self.model.objects.create(
                    order_id=order_id,
                    kind=entry["kind"],
                    payload=entry["payload"],
                    status=AdjustmentStatus.IN_FLIGHT,
                    claimed_at=now,
                )
                for entry in entries
            ]

    def _claimable(self, lease_seconds: int) -> Q:
        stale = timezone.now() - timedelta(seconds=lease_seconds)
        return Q(status__in=[AdjustmentStatus.PENDING, AdjustmentStatus.FAILED]) | Q(
            status=AdjustmentStatus.IN_FLIGHT, claimed_at__lt=stale
        )

    def _claim(self, entry_id: int, lease_seconds: int) -> bool:
        with backend_errors("claim_adjustment"):
            # Conditional update: only one worker sees a changed row.
            claimed = (
                self.model.objects.filter(self._claimable(lease_seconds), pk=entry_id)
                .update(status=AdjustmentStatus.IN_FLIGHT, claimed_at=timezone.now())
            )
        return claimed == 1

    def _apply(self, entry_id: int, action: Callable[[], None]) -> None:
        with backend_errors("apply_adjustment"), transaction.atomic():
            action()
            self.model.objects.filter(pk=entry_id).update(
                status=AdjustmentStatus.DONE,
                attempts=F("attempts") + 1,
                last_error="",
                claimed_at=None,
            )

    def _mark_failed(self, entry_id: int, error: str) -> None:
        with backend_errors("mark_adjustment"):
            self.model.objects.filter(pk=entry_id).update(
                status=AdjustmentStatus.FAILED,
                attempts=F("attempts") + 1,
                last_error=error[:2000],
                claimed_at=None,
            )

    def _due(self, max_attempts: int, limit: int, lease_seconds: int):
        query = self._claimable(lease_seconds) & ~Q(
            status=AdjustmentStatus.FAILED, attempts__gte=max_attempts
        )
        return list(self.model.objects.filter(query).order_by("id")[:limit])
