from django.db import models


class Product(models.Model):
    name = models.CharField(max_length=255)
    image = models.TextField(blank=True, default="")
    description = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.name


class ProductVariant(models.Model):
    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="variants"
    )
    size = models.CharField(max_length=50, blank=True, default="")
    price = models.DecimalField(max_digits=10, decimal_places=2)
    stock_quantity = models.IntegerField(default=0)
    purchase_count = models.IntegerField(default=0)

    class Meta:
        db_table = "product_variants"
        unique_together = ("product", "size")

    def __str__(self):
        return f"{self.product_id}:{self.size or '-'}"


class Combo(models.Model):
    name = models.CharField(max_length=255)
    image = models.TextField(blank=True, default="")
    price = models.DecimalField(max_digits=10, decimal_places=2)
    stock_quantity = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    variants = models.ManyToManyField(
        ProductVariant, related_name="combos", through="ComboItem"
    )

    def __str__(self):
        return self.name


class ComboItem(models.Model):
    combo = models.ForeignKey(Combo, on_delete=models.CASCADE, related_name="items")
    variant = models.ForeignKey(ProductVariant, on_delete=models.CASCADE)
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = "combo_items"
        unique_together = ("combo", "variant")
