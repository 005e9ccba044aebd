from __future__ import annotations

from decimal import Decimal
from typing import Optional

from asgiref.sync import sync_to_async
from django.conf import settings

from apps.carts.dtos import CatalogEntry, LineMeta, SavedItem
from apps.carts.refs import ComboRef, LineRef, VariantRef
from apps.common import get_logger

from .protocols import CacheBackendProtocol, CatalogRepositoryProtocol

logger = get_logger(__name__).bind(component="catalog", layer="service")

_MISS = object()


class CatalogLookupService:
    """Resolves line references into price and display data.

    Results are cached per reference; inactive or missing targets resolve to
    ``None`` and are not cached.
    """

    def __init__(
        self,
        products: CatalogRepositoryProtocol,
        variants: CatalogRepositoryProtocol,
        combos: CatalogRepositoryProtocol,
        cache_backend: CacheBackendProtocol,
        disable_cache: bool = False,
        ttl: Optional[int] = None,
    ):
        self.products = products
        self.variants = variants
        self.combos = combos
        self.cache = cache_backend
        self.disable_cache = disable_cache
        self.ttl = ttl if ttl is not None else getattr(settings, "CACHE_TTL", 300)
        self._cache_prefix = "catalog:entry"
        self.logger = logger.bind(service="CatalogLookupService")

    def _cache_key(self, key: str) -> str:
        return f"{self._cache_prefix}:{key}"

    async def resolve(self, ref: LineRef) -> Optional[CatalogEntry]:
        return await sync_to_async(self.resolve_sync)(ref)

    async def resolve_product(self, product_id: int) -> Optional[SavedItem]:
        return await sync_to_async(self.resolve_product_sync)(product_id)

    def resolve_sync(self, ref: LineRef) -> Optional[CatalogEntry]:
        if self.disable_cache:
            return self._load(ref)
        key = self._cache_key(ref.key)
        cached = self.cache.get(key, _MISS)
        if cached is not _MISS and cached is not None:
            self.logger.debug("Catalog cache hit", cache_key=key)
            return cached
        entry = self._load(ref)
        if entry is not None:
            self.cache.set(key, entry, timeout=self.ttl)
        return entry

    def resolve_product_sync(self, product_id: int) -> Optional[SavedItem]:
        product = self.products.get(id=product_id, is_active=True)
        if product is None:
            self.logger.info("Product not found", product_id=product_id)
            return None
        return SavedItem(product_id=product.id, name=product.name, image=product.image or "")

    def _load(self, ref: LineRef) -> Optional[CatalogEntry]:
        if isinstance(ref, VariantRef):
            variant = self.variants.get(id=ref.variant_id, product__is_active=True)
            if variant is None:
                self.logger.info("Variant not found", ref=ref)
                return None
            product = variant.product
            return CatalogEntry(
                ref=ref,
                unit_price=Decimal(variant.price),
                meta=LineMeta(
                    name=product.name,
                    image=product.image or "",
                    size=variant.size or None,
                    product_id=product.id,
                ),
            )
        if isinstance(ref, ComboRef):
            combo = self.combos.get(id=ref.combo_id, is_active=True)
            if combo is None:
                self.logger.info("Combo not found", ref=ref)
                return None
            return CatalogEntry(
                ref=ref,
                unit_price=Decimal(combo.price),
                meta=LineMeta(name=combo.name, image=combo.image or ""),
            )
        raise TypeError(f"Unsupported line reference: {ref!r}")
