from decimal import Decimal
from typing import List, Optional

from asgiref.sync import sync_to_async
from django.db import IntegrityError, transaction

from apps.common import get_logger
from apps.common.repository import GenericRepository

from .dtos import CartLine, LineMeta, SavedItem
from .mappers import CartLineMapper, SavedItemMapper
from .models import CartItem, SavedProduct
from .refs import LineRef

logger = get_logger(__name__).bind(component="carts", layer="repository")


def _parse_pk(line_id: str) -> Optional[int]:
    try:
        return int(line_id)
    except (TypeError, ValueError):
        return None


class CartItemRepository(GenericRepository[CartItem]):
    def __init__(self):
        super().__init__(CartItem)

    def list_for_user(self, user_id: int):
        return self.model.objects.filter(user_id=user_id).order_by("created_at", "id")

    def get_for_ref(self, user_id: int, ref: LineRef) -> Optional[CartItem]:
        return self.model.objects.filter(
            user_id=user_id, kind=ref.kind, target_id=ref.id
        ).first()

    def set_quantity(self, user_id: int, pk: int, quantity: int) -> int:
        return self.model.objects.filter(user_id=user_id, pk=pk).update(quantity=quantity)

    def delete_one(self, user_id: int, pk: int) -> None:
        self.model.objects.filter(user_id=user_id, pk=pk).delete()

    def delete_for_user(self, user_id: int) -> int:
        deleted, _ = self.model.objects.filter(user_id=user_id).delete()
        return deleted


class SavedProductRepository(GenericRepository[SavedProduct]):
    def __init__(self):
        super().__init__(SavedProduct)

    def list_for_user(self, user_id: int):
        return (
            self.model.objects.filter(user_id=user_id)
            .select_related("product")
            .order_by("created_at", "id")
        )

    def insert_or_ignore(self, user_id: int, product_id: int) -> bool:
        _, created = self.model.objects.get_or_create(
            user_id=user_id, product_id=product_id
        )
        return created

    def delete_product(self, user_id: int, product_id: int) -> None:
        self.model.objects.filter(user_id=user_id, product_id=product_id).delete()


class DjangoCartBackend:
    """ORM-backed cart collaborator for signed-in shoppers."""

    def __init__(
        self,
        items: Optional[CartItemRepository] = None,
        saved: Optional[SavedProductRepository] = None,
        line_mapper: Optional[CartLineMapper] = None,
        saved_mapper: Optional[SavedItemMapper] = None,
    ):
        self.items = items or CartItemRepository()
        self.saved = saved or SavedProductRepository()
        self.line_mapper = line_mapper or CartLineMapper()
        self.saved_mapper = saved_mapper or SavedItemMapper()
        self.logger = logger.bind(backend="DjangoCartBackend")

    async def list_lines(self, user_id: int) -> List[CartLine]:
        return await sync_to_async(self._list_lines)(user_id)

    async def insert_line(
        self,
        user_id: int,
        ref: LineRef,
        quantity: int,
        unit_price: Decimal,
        meta: LineMeta,
    ) -> CartLine:
        return await sync_to_async(self._insert_line)(
            user_id, ref, quantity, unit_price, meta
        )

    async def update_quantity(self, user_id: int, line_id: str, quantity: int) -> None:
        pk = _parse_pk(line_id)
        if pk is None:
            self.logger.debug("Ignoring update for unsaved line", line_id=line_id)
            return
        await sync_to_async(self.items.set_quantity)(user_id, pk, quantity)

    async def delete_line(self, user_id: int, line_id: str) -> None:
        pk = _parse_pk(line_id)
        if pk is None:
            return
        await sync_to_async(self.items.delete_one)(user_id, pk)

    async def delete_all(self, user_id: int) -> None:
        deleted = await sync_to_async(self.items.delete_for_user)(user_id)
        self.logger.debug("Cleared persisted cart", user_id=user_id, deleted=deleted)

    async def list_saved(self, user_id: int) -> List[SavedItem]:
        return await sync_to_async(self._list_saved)(user_id)

    async def insert_saved(self, user_id: int, item: SavedItem) -> bool:
        return await sync_to_async(self.saved.insert_or_ignore)(user_id, item.product_id)

    async def delete_saved(self, user_id: int, product_id: int) -> None:
        await sync_to_async(self.saved.delete_product)(user_id, product_id)

    def _list_lines(self, user_id: int) -> List[CartLine]:
        return self.line_mapper.many_to_dto(self.items.list_for_user(user_id))

    def _list_saved(self, user_id: int) -> List[SavedItem]:
        return self.saved_mapper.many_to_dto(self.saved.list_for_user(user_id))

    def _insert_line(self, user_id, ref, quantity, unit_price, meta) -> CartLine:
        try:
            with transaction.atomic():
                item = self.items.create(
                    user_id=user_id,
                    kind=ref.kind,
                    target_id=ref.id,
                    quantity=quantity,
                    unit_price=unit_price,
                    name=meta.name,
                    image=meta.image or "",
                    size=meta.size,
                    product_id=meta.product_id,
                )
        except IntegrityError:
            # Another session inserted the same ref first; fold into that row.
            item = self.items.get_for_ref(user_id, ref)
            if item is None:
                raise
            item.quantity += quantity
            item.save(update_fields=["quantity"])
            self.logger.info(
                "Insert collided with existing line", user_id=user_id, ref=ref.key
            )
        return self.line_mapper.to_dto(item)
