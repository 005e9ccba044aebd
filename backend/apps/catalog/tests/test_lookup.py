import types
import unittest
from decimal import Decimal

from apps.carts.refs import ComboRef, VariantRef
from apps.catalog.services import CatalogLookupService


class FakeCache:
    def __init__(self):
        self.store = {}

    def get(self, key, default=None):
        return self.store.get(key, default)

    def set(self, key, value, timeout=None):
        self.store[key] = value


class FakeRepository:
    """Matches rows on ``id`` plus simple boolean flags, following ``__`` lookups."""

    def __init__(self, rows):
        self.rows = list(rows)
        self.calls = 0

    def get(self, **filters):
        self.calls += 1
        for row in self.rows:
            if all(self._value(row, key) == value for key, value in filters.items()):
                return row
        return None

    @staticmethod
    def _value(row, path):
        for part in path.split("__"):
            row = getattr(row, part)
        return row


def product(pid=1, name="Red roses", active=True):
    return types.SimpleNamespace(id=pid, name=name, image="roses.jpg", is_active=active)


class CatalogLookupServiceTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.roses = product()
        self.hidden = product(2, "Old stock", active=False)
        self.products = FakeRepository([self.roses, self.hidden])
        self.variants = FakeRepository(
            [
                types.SimpleNamespace(id=10, price="4500.00", size="M", product=self.roses),
                types.SimpleNamespace(id=11, price="900.00", size="", product=self.hidden),
            ]
        )
        self.combos = FakeRepository(
            [
                types.SimpleNamespace(id=3, name="Roses and chocolate", image="", price="9500", is_active=True),
                types.SimpleNamespace(id=4, name="Retired", image="", price="100", is_active=False),
            ]
        )
        self.cache = FakeCache()
        self.service = CatalogLookupService(
            self.products, self.variants, self.combos, self.cache, ttl=60
        )

    async def test_resolves_variant_with_product_meta(self):
        entry = await self.service.resolve(VariantRef(10))
        self.assertEqual(entry.unit_price, Decimal("4500.00"))
        self.assertEqual(entry.meta.name, "Red roses")
        self.assertEqual(entry.meta.size, "M")
        self.assertEqual(entry.meta.product_id, 1)

    async def test_variant_of_inactive_product_is_unavailable(self):
        self.assertIsNone(await self.service.resolve(VariantRef(11)))

    async def test_resolves_active_combo_only(self):
        entry = await self.service.resolve(ComboRef(3))
        self.assertEqual(entry.unit_price, Decimal("9500"))
        self.assertIsNone(entry.meta.size)
        self.assertIsNone(await self.service.resolve(ComboRef(4)))

    async def test_entries_are_cached(self):
        await self.service.resolve(VariantRef(10))
        await self.service.resolve(VariantRef(10))
        self.assertEqual(self.variants.calls, 1)
        self.assertIn("catalog:entry:variant:10", self.cache.store)

    async def test_misses_are_not_cached(self):
        await self.service.resolve(VariantRef(99))
        self.assertEqual(self.cache.store, {})

    async def test_disabled_cache_always_loads(self):
        service = CatalogLookupService(
            self.products, self.variants, self.combos, self.cache, disable_cache=True
        )
        await service.resolve(VariantRef(10))
        await service.resolve(VariantRef(10))
        self.assertEqual(self.variants.calls, 2)
        self.assertEqual(self.cache.store, {})

    async def test_resolve_product(self):
        item = await self.service.resolve_product(1)
        self.assertEqual(item.name, "Red roses")
        self.assertIsNone(await self.service.resolve_product(2))
