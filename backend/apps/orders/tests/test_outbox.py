import unittest
import uuid
from datetime import timedelta
from decimal import Decimal

from asgiref.sync import async_to_sync
from django.test import TestCase
from django.utils import timezone

from apps.carts.refs import ComboRef, VariantRef
from apps.catalog.models import Product, ProductVariant
from apps.catalog.repositories import InventoryRepository
from apps.common.errors import BackendError, BackendErrorCode, TransientBackendError
from apps.common.retry import RetryPolicy
from apps.orders.constants import AdjustmentKind, AdjustmentStatus
from apps.orders.dtos import OrderLineDTO
from apps.orders.models import InventoryAdjustment, Order
from apps.orders.outbox import InventoryOutbox, plan_adjustments
from apps.orders.repositories import DjangoOutboxStore
from apps.orders.tests.fakes import FakeInventory, FakeOutboxStore

ORDER_ID = uuid.uuid4()
COMBO_PAYLOAD = {"combo_id": 3, "quantity": 1}


def line(ref, quantity):
    return OrderLineDTO(ref=ref, name="item", quantity=quantity, price_at_purchase=1)


class PlanAdjustmentsTests(unittest.TestCase):
    def test_variants_are_batched_and_combos_listed(self):
        planned = plan_adjustments(
            [
                line(VariantRef(2), 1),
                line(ComboRef(7), 2),
                line(VariantRef(1), 3),
                line(VariantRef(2), 4),
            ]
        )
        self.assertEqual(
            [entry["kind"] for entry in planned],
            [
                AdjustmentKind.DECREMENT_VARIANT_STOCK,
                AdjustmentKind.INCREMENT_PURCHASE_COUNTS,
                AdjustmentKind.DECREMENT_COMBO_STOCK,
            ],
        )
        self.assertEqual(
            planned[0]["payload"]["items"],
            [{"variant_id": 1, "quantity": 3}, {"variant_id": 2, "quantity": 5}],
        )
        self.assertEqual(planned[2]["payload"], {"combo_id": 7, "quantity": 2})

    def test_combo_only_order_skips_variant_calls(self):
        planned = plan_adjustments([line(ComboRef(1), 1)])
        self.assertEqual(len(planned), 1)

    def test_nothing_to_plan(self):
        self.assertEqual(plan_adjustments([]), [])


class InventoryOutboxTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.store = FakeOutboxStore()
        self.policy = RetryPolicy(max_attempts=3, delay_seconds=0, retry_on=(TransientBackendError,))

    def outbox(self, inventory, max_attempts=3):
        return InventoryOutbox(
            self.store, inventory, max_attempts=max_attempts, lease_seconds=60, policy=self.policy
        )

    async def test_dispatch_marks_entries_done(self):
        inventory = FakeInventory()
        outbox = self.outbox(inventory)
        entries = await outbox.enqueue(ORDER_ID, [line(VariantRef(1), 2)])

        outstanding = await outbox.dispatch(entries)

        self.assertEqual(outstanding, 0)
        self.assertEqual(self.store.statuses(), [AdjustmentStatus.DONE] * 2)
        self.assertEqual(inventory.calls[0], ("decrement_variant_stock", {1: 2}))
        self.assertEqual(await outbox.backlog(), 0)

    async def test_dispatch_keeps_failed_entries(self):
        inventory = FakeInventory(errors=[None, BackendError(BackendErrorCode.NOT_FOUND)])
        outbox = self.outbox(inventory)
        entries = await outbox.enqueue(ORDER_ID, [line(VariantRef(1), 1)])

        outstanding = await outbox.dispatch(entries)

        self.assertEqual(outstanding, 1)
        self.assertEqual(
            self.store.statuses(), [AdjustmentStatus.DONE, AdjustmentStatus.FAILED]
        )
        failed = self.store.entries[entries[1].id]
        self.assertEqual(failed.attempts, 1)
        self.assertEqual(failed.last_error, "not_found")
        self.assertEqual(await outbox.backlog(), 1)

    async def test_drain_retries_transient_errors(self):
        failing = FakeInventory(errors=[RuntimeError("down")])
        outbox = self.outbox(failing)
        entries = await outbox.enqueue(ORDER_ID, [line(ComboRef(3), 1)])
        await outbox.dispatch(entries)

        flaky = FakeInventory(
            errors=[TransientBackendError(BackendErrorCode.NETWORK, "timeout"), None]
        )
        report = await self.outbox(flaky).drain()

        self.assertEqual(report.done, [entries[0].id])
        self.assertEqual(len(flaky.calls), 2)
        self.assertEqual(self.store.statuses(), [AdjustmentStatus.DONE])

    async def test_drain_does_not_retry_permanent_errors(self):
        entry = self.store.queue(ORDER_ID, AdjustmentKind.DECREMENT_COMBO_STOCK, COMBO_PAYLOAD)
        inventory = FakeInventory(errors=[BackendError(BackendErrorCode.INSUFFICIENT_STOCK)])

        report = await self.outbox(inventory).drain()

        self.assertEqual(report.failed, [entry.id])
        self.assertEqual(len(inventory.calls), 1)
        self.assertEqual(self.store.statuses(), [AdjustmentStatus.FAILED])

    async def test_drain_gives_up_after_max_attempts(self):
        outbox = self.outbox(FakeInventory(), max_attempts=2)
        entries = await outbox.enqueue(ORDER_ID, [line(ComboRef(3), 1)])
        self.store.entries[entries[0].id].status = AdjustmentStatus.FAILED
        self.store.entries[entries[0].id].attempts = 2

        report = await outbox.drain()

        self.assertEqual(report.attempted, 0)
        self.assertEqual(await outbox.backlog(), 1)

    async def test_unknown_kind_fails_the_entry(self):
        outbox = self.outbox(FakeInventory())
        [entry] = await self.store.add_many(ORDER_ID, [{"kind": "refund", "payload": {}}])

        outstanding = await outbox.dispatch([entry])

        self.assertEqual(outstanding, 1)
        self.assertIn("refund", self.store.entries[entry.id].last_error)

    async def test_drain_leaves_entries_claimed_by_checkout(self):
        inventory = FakeInventory()
        checkout = self.outbox(inventory)
        worker = self.outbox(inventory)
        entries = await checkout.enqueue(ORDER_ID, [line(VariantRef(1), 2)])

        report = await worker.drain()
        outstanding = await checkout.dispatch(entries)

        self.assertEqual(report.attempted, 0)
        self.assertEqual(outstanding, 0)
        self.assertEqual(inventory.calls.count(("decrement_variant_stock", {1: 2})), 1)
        self.assertEqual(self.store.statuses(), [AdjustmentStatus.DONE] * 2)

    async def test_drain_skips_entry_claimed_after_listing(self):
        entry = self.store.queue(ORDER_ID, AdjustmentKind.DECREMENT_COMBO_STOCK, COMBO_PAYLOAD)
        list_due = self.store.due

        async def due_then_taken(**kwargs):
            listed = await list_due(**kwargs)
            await self.store.claim(entry.id, lease_seconds=60)
            return listed

        self.store.due = due_then_taken
        inventory = FakeInventory()

        report = await self.outbox(inventory).drain()

        self.assertEqual(report.attempted, 0)
        self.assertEqual(inventory.calls, [])

    async def test_claim_is_granted_once(self):
        entry = self.store.queue(ORDER_ID, AdjustmentKind.DECREMENT_COMBO_STOCK, COMBO_PAYLOAD)
        self.assertTrue(await self.store.claim(entry.id, lease_seconds=60))
        self.assertFalse(await self.store.claim(entry.id, lease_seconds=60))

    async def test_abandoned_claim_is_taken_over(self):
        entries = await self.outbox(FakeInventory()).enqueue(ORDER_ID, [line(ComboRef(3), 1)])
        self.store.now = 61
        inventory = FakeInventory()

        report = await self.outbox(inventory).drain()

        self.assertEqual(report.done, [entries[0].id])
        self.assertEqual(inventory.calls, [("decrement_combo_stock", 3, 1)])


class DjangoOutboxStoreTests(TestCase):
    def setUp(self):
        product = Product.objects.create(name="Tulips")
        self.variant = ProductVariant.objects.create(
            product=product, size="S", price=Decimal("3500"), stock_quantity=5
        )
        self.order = Order.objects.create(
            customer_name="Aigerim",
            customer_phone="+77011234567",
            delivery_method="pickup",
            payment_method="cash",
            subtotal=Decimal("7000"),
            total=Decimal("7000"),
        )
        self.store = DjangoOutboxStore()
        self.entry = InventoryAdjustment.objects.create(
            order=self.order,
            kind=AdjustmentKind.DECREMENT_VARIANT_STOCK,
            payload={"items": [{"variant_id": self.variant.id, "quantity": 2}]},
        )

    def test_claim_is_granted_once(self):
        self.assertTrue(async_to_sync(self.store.claim)(self.entry.id, lease_seconds=60))
        self.assertFalse(async_to_sync(self.store.claim)(self.entry.id, lease_seconds=60))
        self.entry.refresh_from_db()
        self.assertEqual(self.entry.status, AdjustmentStatus.IN_FLIGHT)
        self.assertIsNotNone(self.entry.claimed_at)

    def test_enqueued_entries_are_not_due_until_the_claim_expires(self):
        [queued] = async_to_sync(self.store.add_many)(
            self.order.id,
            [{"kind": AdjustmentKind.DECREMENT_COMBO_STOCK, "payload": {"combo_id": 1, "quantity": 1}}],
        )
        due = async_to_sync(self.store.due)(max_attempts=3, limit=10, lease_seconds=60)
        self.assertEqual([e.id for e in due], [self.entry.id])

        InventoryAdjustment.objects.filter(pk=queued.id).update(
            claimed_at=timezone.now() - timedelta(seconds=120)
        )
        due = async_to_sync(self.store.due)(max_attempts=3, limit=10, lease_seconds=60)
        self.assertEqual([e.id for e in due], [self.entry.id, queued.id])

    def test_failed_apply_rolls_back_stock_change(self):
        def decrement_then_fail():
            ProductVariant.objects.filter(pk=self.variant.id).update(stock_quantity=0)
            raise RuntimeError("lost connection")

        with self.assertRaises(RuntimeError):
            async_to_sync(self.store.apply)(self.entry.id, decrement_then_fail)

        self.variant.refresh_from_db()
        self.entry.refresh_from_db()
        self.assertEqual(self.variant.stock_quantity, 5)
        self.assertEqual(self.entry.status, AdjustmentStatus.PENDING)
        self.assertEqual(self.entry.attempts, 0)

    def test_apply_marks_done_with_the_stock_change(self):
        outbox = InventoryOutbox(self.store, InventoryRepository())
        async_to_sync(outbox.dispatch)([self.entry])

        self.variant.refresh_from_db()
        self.entry.refresh_from_db()
        self.assertEqual(self.variant.stock_quantity, 3)
        self.assertEqual(self.entry.status, AdjustmentStatus.DONE)
        self.assertIsNone(self.entry.claimed_at)
