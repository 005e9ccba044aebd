from __future__ import annotations

from django.core.cache import cache

from .repositories import (
    ComboRepository,
    InventoryRepository,
    ProductRepository,
    ProductVariantRepository,
)
from .services import CatalogLookupService


def build_catalog_lookup(*, disable_cache: bool = False) -> CatalogLookupService:
    return CatalogLookupService(
        products=ProductRepository(),
        variants=ProductVariantRepository(),
        combos=ComboRepository(),
        cache_backend=cache,
        disable_cache=disable_cache,
    )


def build_inventory_repository() -> InventoryRepository:
    return InventoryRepository()
