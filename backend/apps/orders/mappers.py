from decimal import Decimal
from typing import Iterable, List

from apps.carts.refs import ComboRef, VariantRef

from .dtos import OrderDTO, OrderLineDTO


class OrderLineMapper:
    @staticmethod
    def to_dto(item) -> OrderLineDTO:
        if item.combo_id:
            ref = ComboRef(item.combo_id)
        else:
            ref = VariantRef(item.product_variant_id)
        return OrderLineDTO(
            ref=ref,
            name=item.product_name,
            quantity=item.quantity,
            price_at_purchase=Decimal(item.price_at_purchase),
            image=item.product_image or "",
            size=item.variant_size or None,
            product_id=item.product_id,
        )

    @staticmethod
    def to_row(order_id, line: OrderLineDTO) -> dict:
        return {
            "order_id": order_id,
            "kind": line.ref.kind,
            "product_variant_id": line.variant_id,
            "combo_id": line.combo_id,
            "product_id": line.product_id,
            "product_name": line.name,
            "product_image": line.image or "",
            "variant_size": None if line.is_combo else line.size,
            "quantity": line.quantity,
            "price_at_purchase": line.price_at_purchase,
        }


class OrderMapper:
    @staticmethod
    def to_dto(order, *, with_lines: bool = False) -> OrderDTO:
        lines: List[OrderLineDTO] = []
        if with_lines:
            lines = [OrderLineMapper.to_dto(item) for item in order.items.all()]
        return OrderDTO(
            id=order.id,
            user_id=order.user_id,
            status=order.status,
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            customer_address=order.customer_address,
            delivery_method=order.delivery_method,
            payment_method=order.payment_method,
            comment=order.comment,
            delivery_time=order.delivery_time,
            subtotal=Decimal(order.subtotal),
            delivery_cost=Decimal(order.delivery_cost),
            total=Decimal(order.total),
            created_at=order.created_at,
            lines=lines,
        )

    @staticmethod
    def many_to_dto(orders: Iterable) -> List[OrderDTO]:
        return [OrderMapper.to_dto(o) for o in orders]
