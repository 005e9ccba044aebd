from decimal import Decimal
from typing import Iterable

from apps.carts.dtos import CartLine

from .constants import DeliveryMethod
from .dtos import OrderTotals


def compute_totals(
    lines: Iterable[CartLine], delivery_method: str, delivery_cost: Decimal
) -> OrderTotals:
    subtotal = sum((line.unit_price * line.quantity for line in lines), Decimal("0"))
    fee = Decimal(delivery_cost) if delivery_method == DeliveryMethod.DELIVERY else Decimal("0")
    return OrderTotals(subtotal=subtotal, delivery_cost=fee, total=subtotal + fee)
