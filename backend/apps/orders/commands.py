from dataclasses import dataclass
from typing import Any, Dict

from .constants import DeliveryMethod, PaymentMethod
from .dtos import CheckoutForm


def _text(raw: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return str(value)
    return ""


@dataclass
class CheckoutCommand:
    form: CheckoutForm
    messaging_available: bool = True

    @staticmethod
    def from_raw(raw: Dict[str, Any]) -> "CheckoutCommand":
        if not isinstance(raw, dict):
            raise ValueError("Payload must be a dict")
        form = CheckoutForm(
            name=_text(raw, "name", "customerName"),
            phone=_text(raw, "phone", "customerPhone"),
            delivery_method=_text(raw, "deliveryMethod", "delivery_method")
            or DeliveryMethod.DELIVERY,
            payment_method=_text(raw, "paymentMethod", "payment_method")
            or PaymentMethod.KASPI,
            address=_text(raw, "address", "customerAddress"),
            delivery_time=_text(raw, "deliveryTime", "delivery_time"),
            comment=_text(raw, "comment", "orderComment"),
        )
        messaging = raw.get("messagingAvailable", True)
        return CheckoutCommand(form=form, messaging_available=bool(messaging))
