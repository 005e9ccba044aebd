from typing import Dict, Iterable

from django.db import transaction
from django.db.models import F

from apps.common.errors import BackendError, BackendErrorCode, backend_errors
from apps.common.repository import GenericRepository
from .models import Combo, Product, ProductVariant


class ProductRepository(GenericRepository[Product]):
    def __init__(self):
        super().__init__(Product)


class ProductVariantRepository(GenericRepository[ProductVariant]):
    def __init__(self):
        super().__init__(ProductVariant)

    def get(self, **filters):  # type: ignore[override]
        return self.model.objects.filter(**filters).select_related("product").first()


class ComboRepository(GenericRepository[Combo]):
    def __init__(self):
        super().__init__(Combo)


class InventoryRepository:
    """Stock bookkeeping. Every batch is applied atomically or not at all."""

    def decrement_variant_stock(self, quantities: Dict[int, int]) -> None:
        with backend_errors("decrement_variant_stock"), transaction.atomic():
            for variant_id, quantity in sorted(quantities.items()):
                updated = ProductVariant.objects.filter(
                    pk=variant_id, stock_quantity__gte=quantity
                ).update(stock_quantity=F("stock_quantity") - quantity)
                if not updated:
                    self._raise_missing_or_short(
                        ProductVariant, variant_id, "decrement_variant_stock"
                    )

    def increment_purchase_counts(self, quantities: Dict[int, int]) -> None:
        with backend_errors("increment_purchase_counts"), transaction.atomic():
            for variant_id, quantity in sorted(quantities.items()):
                ProductVariant.objects.filter(pk=variant_id).update(
                    purchase_count=F("purchase_count") + quantity
                )

    def decrement_combo_stock(self, combo_id: int, quantity: int) -> None:
        with backend_errors("decrement_combo_stock"), transaction.atomic():
            updated = Combo.objects.filter(
                pk=combo_id, stock_quantity__gte=quantity
            ).update(stock_quantity=F("stock_quantity") - quantity)
            if not updated:
                self._raise_missing_or_short(Combo, combo_id, "decrement_combo_stock")

    def stock_levels(self, variant_ids: Iterable[int]) -> Dict[int, int]:
        return dict(
            ProductVariant.objects.filter(pk__in=list(variant_ids)).values_list(
                "id", "stock_quantity"
            )
        )

    @staticmethod
    def _raise_missing_or_short(model, pk: int, operation: str) -> None:
        if model.objects.filter(pk=pk).exists():
            raise BackendError(
                BackendErrorCode.INSUFFICIENT_STOCK,
                f"{model.__name__} {pk} is out of stock",
                operation=operation,
            )
        raise BackendError(
            BackendErrorCode.NOT_FOUND,
            f"{model.__name__} {pk} does not exist",
            operation=operation,
        )
