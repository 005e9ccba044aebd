import unittest
from decimal import Decimal

from apps.carts.dtos import CartSnapshot, SavedItem
from apps.carts.identity import IdentityState, IdentityTransition, MergeProcedure
from apps.carts.refs import ComboRef, VariantRef
from apps.carts.store import CartStore
from apps.carts.strategies import CartMode, LocalCartStrategy
from apps.carts.tests.fakes import FakeCartBackend, meta


class IdentityTransitionTests(unittest.IsolatedAsyncioTestCase):
    async def guest_store(self, *items, saved=()):
        store = CartStore(LocalCartStrategy())
        for ref, quantity in items:
            await store.add_item(ref, quantity, unit_price=Decimal("1000"), meta=meta())
        for product_id in saved:
            await store.toggle_saved(SavedItem(product_id=product_id))
        return store

    async def test_sign_in_sums_quantities_for_matching_refs(self):
        backend = FakeCartBackend()
        backend.seed_line(5, VariantRef(1), 3)
        backend.seed_line(5, ComboRef(2), 1)
        store = await self.guest_store((VariantRef(1), 2), (VariantRef(9), 1))
        transition = IdentityTransition(store, backend)

        report = await transition.sign_in(5)

        self.assertTrue(report.ok)
        self.assertEqual(report.updated, [VariantRef(1)])
        self.assertEqual(report.inserted, [VariantRef(9)])
        self.assertEqual(
            backend.quantities(5),
            {VariantRef(1): 5, ComboRef(2): 1, VariantRef(9): 1},
        )
        snapshot = store.snapshot()
        self.assertEqual(snapshot.mode, CartMode.REMOTE.value)
        self.assertEqual({line.ref: line.quantity for line in snapshot.lines}, backend.quantities(5))
        self.assertIs(transition.state, IdentityState.AUTHENTICATED)

    async def test_repeated_sign_in_for_same_user_does_not_merge_twice(self):
        backend = FakeCartBackend()
        store = await self.guest_store((VariantRef(1), 2))
        transition = IdentityTransition(store, backend)
        await transition.sign_in(5)
        again = await transition.sign_in(5)
        self.assertEqual(again.merged_count, 0)
        self.assertEqual(backend.quantities(5), {VariantRef(1): 2})

    async def test_empty_guest_cart_skips_merge(self):
        backend = FakeCartBackend()
        backend.seed_line(5, VariantRef(1), 3)
        store = CartStore(LocalCartStrategy())
        report = await IdentityTransition(store, backend).sign_in(5)
        self.assertEqual(report.merged_count, 0)
        self.assertNotIn("insert_line", backend.calls)
        self.assertEqual(store.snapshot().lines[0].quantity, 3)

    async def test_failed_line_is_reported_and_others_merge(self):
        backend = FakeCartBackend(fail_refs={VariantRef(2)})
        store = await self.guest_store((VariantRef(1), 1), (VariantRef(2), 1))
        transition = IdentityTransition(store, backend)

        report = await transition.sign_in(5)

        self.assertFalse(report.ok)
        self.assertEqual(report.failed, [VariantRef(2)])
        self.assertEqual(report.inserted, [VariantRef(1)])
        self.assertEqual(backend.quantities(5), {VariantRef(1): 1})
        self.assertIs(transition.state, IdentityState.AUTHENTICATED)

    async def test_failed_fetch_inserts_nothing(self):
        backend = FakeCartBackend()
        store = await self.guest_store((VariantRef(1), 1))
        backend.failing.add("list_lines")
        report = await MergeProcedure(backend).run(5, store.snapshot())
        self.assertEqual(report.failed, [VariantRef(1)])
        self.assertNotIn("insert_line", backend.calls)

    async def test_saved_items_are_merged(self):
        backend = FakeCartBackend()
        backend.saved[5] = [SavedItem(product_id=3)]
        store = await self.guest_store(saved=(3, 4))
        report = await IdentityTransition(store, backend).sign_in(5)
        self.assertEqual(report.saved_inserted, [3, 4])
        self.assertEqual([s.product_id for s in backend.saved[5]], [3, 4])

    async def test_sign_out_resets_to_empty_local_cart(self):
        backend = FakeCartBackend()
        backend.seed_line(5, VariantRef(1), 2)
        store = CartStore(LocalCartStrategy())
        transition = IdentityTransition(store, backend)
        await transition.sign_in(5)

        await transition.sign_out()

        self.assertIs(transition.state, IdentityState.ANONYMOUS)
        self.assertEqual(store.snapshot(), CartSnapshot(mode=CartMode.LOCAL.value))
        self.assertEqual(backend.quantities(5), {VariantRef(1): 2})

    async def test_switching_user_signs_out_first(self):
        backend = FakeCartBackend()
        backend.seed_line(6, VariantRef(4), 1)
        store = await self.guest_store((VariantRef(1), 1))
        transition = IdentityTransition(store, backend)
        await transition.sign_in(5)
        await transition.sign_in(6)
        self.assertEqual(transition.user_id, 6)
        self.assertEqual(backend.quantities(6), {VariantRef(4): 1})
