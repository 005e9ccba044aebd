import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("customer_name", models.CharField(max_length=100)),
                ("customer_phone", models.CharField(max_length=50)),
                ("customer_address", models.CharField(blank=True, max_length=255, null=True)),
                ("delivery_method", models.CharField(choices=[("delivery", "Delivery"), ("pickup", "Pickup")], max_length=20)),
                ("payment_method", models.CharField(choices=[("kaspi", "Kaspi transfer"), ("cash", "Cash")], max_length=20)),
                ("comment", models.TextField(blank=True, default="")),
                ("delivery_time", models.CharField(blank=True, max_length=50, null=True)),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=12)),
                ("delivery_cost", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("total", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("out_for_delivery", "Out for delivery"),
                            ("delivered", "Delivered"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "orders",
                "ordering": ("-created_at",),
                "indexes": [models.Index(fields=["user", "status"], name="order_user_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(max_length=10)),
                ("product_variant_id", models.PositiveIntegerField(blank=True, null=True)),
                ("combo_id", models.PositiveIntegerField(blank=True, null=True)),
                ("product_id", models.PositiveIntegerField(blank=True, null=True)),
                ("product_name", models.CharField(max_length=255)),
                ("product_image", models.TextField(blank=True, default="")),
                ("variant_size", models.CharField(blank=True, max_length=50, null=True)),
                ("quantity", models.PositiveIntegerField()),
                ("price_at_purchase", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "db_table": "order_items",
                "ordering": ("id",),
            },
        ),
        migrations.CreateModel(
            name="InventoryAdjustment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("decrement_variant_stock", "Decrement variant stock"),
                            ("increment_purchase_counts", "Increment purchase counts"),
                            ("decrement_combo_stock", "Decrement combo stock"),
                        ],
                        max_length=40,
                    ),
                ),
                ("payload", models.JSONField(default=dict)),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("done", "Done"), ("failed", "Failed")],
                        default="pending",
                        max_length=10,
                    ),
                ),
                ("attempts", models.PositiveIntegerField(default=0)),
                ("last_error", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="inventory_adjustments",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "db_table": "inventory_adjustments",
                "ordering": ("id",),
                "indexes": [models.Index(fields=["status", "attempts"], name="adjustment_due_idx")],
            },
        ),
    ]
