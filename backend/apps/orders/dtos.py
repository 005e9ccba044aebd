from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from apps.carts.dtos import CartLine
from apps.carts.refs import ComboRef, LineRef, VariantRef

from .constants import DeliveryMethod, OrderStatus, PaymentMethod


@dataclass(frozen=True)
class CheckoutForm:
    name: str
    phone: str
    delivery_method: str = DeliveryMethod.DELIVERY
    payment_method: str = PaymentMethod.KASPI
    address: str = ""
    delivery_time: str = ""
    comment: str = ""

    @property
    def is_delivery(self) -> bool:
        return self.delivery_method == DeliveryMethod.DELIVERY


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    delivery_cost: Decimal
    total: Decimal


@dataclass(frozen=True)
class NewOrder:
    """Order header as written at checkout, always pending."""

    id: uuid.UUID
    user_id: Optional[int]
    customer_name: str
    customer_phone: str
    customer_address: Optional[str]
    delivery_method: str
    payment_method: str
    comment: str
    delivery_time: Optional[str]
    totals: OrderTotals


@dataclass(frozen=True)
class OrderLineDTO:
    ref: LineRef
    name: str
    quantity: int
    price_at_purchase: Decimal
    image: str = ""
    size: Optional[str] = None
    product_id: Optional[int] = None

    @property
    def line_total(self) -> Decimal:
        return self.price_at_purchase * self.quantity

    @property
    def is_combo(self) -> bool:
        return isinstance(self.ref, ComboRef)

    @property
    def variant_id(self) -> Optional[int]:
        return self.ref.variant_id if isinstance(self.ref, VariantRef) else None

    @property
    def combo_id(self) -> Optional[int]:
        return self.ref.combo_id if isinstance(self.ref, ComboRef) else None

    @classmethod
    def from_cart_line(cls, line: CartLine) -> "OrderLineDTO":
        return cls(
            ref=line.ref,
            name=line.meta.name,
            quantity=line.quantity,
            price_at_purchase=line.unit_price,
            image=line.meta.image,
            size=line.meta.size,
            product_id=line.meta.product_id,
        )


@dataclass(frozen=True)
class OrderDTO:
    id: uuid.UUID
    user_id: Optional[int]
    status: str
    customer_name: str
    customer_phone: str
    customer_address: Optional[str]
    delivery_method: str
    payment_method: str
    comment: str
    delivery_time: Optional[str]
    subtotal: Decimal
    delivery_cost: Decimal
    total: Decimal
    created_at: datetime
    lines: List[OrderLineDTO] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status in (OrderStatus.CANCELLED, OrderStatus.DELIVERED)


@dataclass(frozen=True)
class HandoffResult:
    channel: str
    url: str
    phone: str = ""

    @property
    def used_fallback(self) -> bool:
        return self.channel == "phone"


@dataclass(frozen=True)
class PlacedOrder:
    order_id: uuid.UUID
    totals: OrderTotals
    summary: str
    handoff: Optional[HandoffResult] = None
    inventory_pending: int = 0

    @property
    def short_id(self) -> str:
        return str(self.order_id)[:8]
