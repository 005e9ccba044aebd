from decimal import Decimal

from django.conf import settings
from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    OUT_FOR_DELIVERY = "out_for_delivery", "Out for delivery"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


class DeliveryMethod(models.TextChoices):
    DELIVERY = "delivery", "Delivery"
    PICKUP = "pickup", "Pickup"


class PaymentMethod(models.TextChoices):
    KASPI = "kaspi", "Kaspi transfer"
    CASH = "cash", "Cash"


class AdjustmentKind(models.TextChoices):
    DECREMENT_VARIANT_STOCK = "decrement_variant_stock", "Decrement variant stock"
    INCREMENT_PURCHASE_COUNTS = "increment_purchase_counts", "Increment purchase counts"
    DECREMENT_COMBO_STOCK = "decrement_combo_stock", "Decrement combo stock"


class AdjustmentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    IN_FLIGHT = "in_flight", "In flight"
    DONE = "done", "Done"
    FAILED = "failed", "Failed"


NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
PHONE_DIGITS = 11
PHONE_PREFIX = "7"
ADDRESS_MIN_LENGTH = 5
ADDRESS_MAX_LENGTH = 200
ORDER_ID_PREFIX_LENGTH = 8

# Fixed user-facing messages; backend error text is never shown.
USER_MESSAGES = {
    "EMPTY_CART": "Your cart is empty",
    "VALIDATION_ERROR": "Please fill in all required fields correctly",
    "NETWORK_ERROR": "Connection problem. Please try again",
    "DUPLICATE_ORDER": "Database error. Please try again",
    "INSUFFICIENT_STOCK": "Not enough items in stock",
    "ORDER_FAILED": "Could not place the order",
    "ORDER_NOT_CANCELLABLE": "The order could not be cancelled",
    "NOT_FOUND": "Order not found",
}


def delivery_cost() -> Decimal:
    return Decimal(str(getattr(settings, "STOREFRONT_DELIVERY_COST", 500)))


def currency_symbol() -> str:
    return getattr(settings, "STOREFRONT_CURRENCY_SYMBOL", "₸")


def handoff_phone() -> str:
    return getattr(settings, "STOREFRONT_HANDOFF_PHONE", "")
