from __future__ import annotations

from typing import Optional, Tuple

from asgiref.sync import sync_to_async
from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone

from apps.common import get_logger

from .constants import currency_symbol
from .dtos import OrderDTO
from .summary import format_amount

logger = get_logger(__name__).bind(component="orders", layer="notifications")


def compose_cancellation_email(order: OrderDTO, currency: str) -> Tuple[str, str]:
    created = timezone.localtime(order.created_at).strftime("%d.%m.%Y %H:%M")
    body = "\n".join(
        [
            f"Order #{order.id} was cancelled by the customer.",
            "",
            f"Order ID: {order.id}",
            f"Customer: {order.customer_name}",
            f"Phone: {order.customer_phone or 'not provided'}",
            f"Address: {order.customer_address or 'not provided'}",
            f"Delivery time: {order.delivery_time or 'not provided'}",
            f"Total: {format_amount(order.total, currency)}",
            f"Created: {created}",
        ]
    )
    return f"Order #{order.id} was cancelled", body


class AdminEmailNotifier:
    """Mails the shop admin about cancelled orders. No recipient configured, no mail."""

    def __init__(
        self,
        recipient: Optional[str] = None,
        sender: Optional[str] = None,
        currency: Optional[str] = None,
    ):
        self.recipient = recipient if recipient is not None else getattr(
            settings, "STOREFRONT_ADMIN_EMAIL", ""
        )
        self.sender = sender or settings.DEFAULT_FROM_EMAIL
        self.currency = currency
        self.logger = logger.bind(service="AdminEmailNotifier")

    async def order_cancelled(self, order: OrderDTO) -> bool:
        if not self.recipient:
            self.logger.debug("No admin email configured; skipping", order_id=str(order.id))
            return False
        subject, body = compose_cancellation_email(order, self.currency or currency_symbol())
        await sync_to_async(send_mail)(subject, body, self.sender, [self.recipient])
        self.logger.info("Cancellation mailed to admin", order_id=str(order.id))
        return True
