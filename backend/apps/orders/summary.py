from decimal import Decimal
from typing import Iterable
import uuid

from .constants import ORDER_ID_PREFIX_LENGTH, DeliveryMethod, PaymentMethod
from .dtos import CheckoutForm, OrderLineDTO, OrderTotals


def format_amount(amount: Decimal, currency: str) -> str:
    value = Decimal(amount)
    if value == value.to_integral_value():
        text = f"{int(value):,}"
    else:
        text = f"{value:,.2f}"
    return f"{text.replace(',', ' ')} {currency}"


def describe_line(line: OrderLineDTO, currency: str) -> str:
    if line.is_combo:
        detail = f"Combo, {line.quantity} pcs"
    else:
        detail = f"Size: {line.size or '-'}, {line.quantity} pcs"
    return f"- {line.name} ({detail}) - {format_amount(line.line_total, currency)}"


def compose_summary(
    order_id: uuid.UUID,
    form: CheckoutForm,
    lines: Iterable[OrderLineDTO],
    totals: OrderTotals,
    currency: str,
) -> str:
    """Plain-text order summary sent to the shop. Same inputs, same text."""
    parts = [
        f"*New order #{str(order_id)[:ORDER_ID_PREFIX_LENGTH]}*",
        "",
        f"*Name:* {form.name}",
        f"*Phone:* {form.phone}",
        f"*Fulfilment:* {DeliveryMethod(form.delivery_method).label}",
    ]
    if form.is_delivery:
        parts.append(f"*Address:* {form.address}")
        parts.append(f"*Delivery time:* {form.delivery_time}")
    parts.append(f"*Payment:* {PaymentMethod(form.payment_method).label}")
    if form.comment:
        parts.append(f"*Comment:* {form.comment}")
    parts.append("")
    parts.append("*Items:*")
    parts.extend(describe_line(line, currency) for line in lines)
    parts.append("")
    parts.append(f"*Subtotal:* {format_amount(totals.subtotal, currency)}")
    parts.append(f"*Delivery:* {format_amount(totals.delivery_cost, currency)}")
    parts.append(f"*Total:* {format_amount(totals.total, currency)}")
    return "\n".join(parts)
