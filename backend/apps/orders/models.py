import uuid

from django.db import models
from django.utils import timezone

from apps.users.models import User

from .constants import (
    AdjustmentKind,
    AdjustmentStatus,
    DeliveryMethod,
    OrderStatus,
    PaymentMethod,
)


class Order(models.Model):
    # Generated by the caller before the header is written.
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="orders"
    )
    customer_name = models.CharField(max_length=100)
    customer_phone = models.CharField(max_length=50)
    customer_address = models.CharField(max_length=255, null=True, blank=True)
    delivery_method = models.CharField(max_length=20, choices=DeliveryMethod.choices)
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    comment = models.TextField(blank=True, default="")
    delivery_time = models.CharField(max_length=50, null=True, blank=True)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    delivery_cost = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(
        max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "orders"
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=["user", "status"], name="order_user_status_idx"),
        ]

    def __str__(self):
        return f"{str(self.id)[:8]} ({self.status})"


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    kind = models.CharField(max_length=10)
    product_variant_id = models.PositiveIntegerField(null=True, blank=True)
    combo_id = models.PositiveIntegerField(null=True, blank=True)
    product_id = models.PositiveIntegerField(null=True, blank=True)
    product_name = models.CharField(max_length=255)
    product_image = models.TextField(blank=True, default="")
    variant_size = models.CharField(max_length=50, null=True, blank=True)
    quantity = models.PositiveIntegerField()
    price_at_purchase = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        db_table = "order_items"
        ordering = ("id",)


class InventoryAdjustment(models.Model):
    """Outbox entry for one stock bookkeeping call of an order."""

    order = models.ForeignKey(
        Order, on_delete=models.CASCADE, related_name="inventory_adjustments"
    )
    kind = models.CharField(max_length=40, choices=AdjustmentKind.choices)
    payload = models.JSONField(default=dict)
    status = models.CharField(
        max_length=10, choices=AdjustmentStatus.choices, default=AdjustmentStatus.PENDING
    )
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True, default="")
    # Set while a worker applies the entry; a stale claim may be taken over.
    claimed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "inventory_adjustments"
        ordering = ("id",)
        indexes = [
            models.Index(fields=["status", "attempts"], name="adjustment_due_idx"),
        ]

    def __str__(self):
        return f"{self.kind} for {self.order_id} ({self.status})"
