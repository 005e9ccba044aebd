from django.db import models
from django.utils import timezone

from apps.catalog.models import Product
from apps.users.models import User


class LineKind(models.TextChoices):
    VARIANT = "variant", "Product variant"
    COMBO = "combo", "Combo"


class CartItem(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="cart_items")
    kind = models.CharField(max_length=10, choices=LineKind.choices)
    target_id = models.PositiveIntegerField()
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    name = models.CharField(max_length=255)
    image = models.TextField(blank=True, default="")
    size = models.CharField(max_length=50, blank=True, null=True)
    product_id = models.PositiveIntegerField(blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "cart_items"
        ordering = ("created_at", "id")
        constraints = [
            models.UniqueConstraint(
                fields=["user", "kind", "target_id"], name="cart_item_unique_ref"
            ),
        ]

    def __str__(self):
        return f"{self.kind}:{self.target_id} x{self.quantity} for {self.user_id}"


class SavedProduct(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="saved_products")
    product = models.ForeignKey(Product, on_delete=models.CASCADE)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "saved_products"
        ordering = ("created_at", "id")
        unique_together = ("user", "product")
