import unittest
import uuid
from decimal import Decimal

from asgiref.sync import async_to_sync
from django.core import mail
from django.test import SimpleTestCase, override_settings

from apps.common.errors import BackendErrorCode
from apps.orders.constants import OrderStatus
from apps.orders.dtos import NewOrder, OrderTotals
from apps.orders.errors import GuardMismatchError, NetworkError, OrderNotFoundError
from apps.orders.notifications import AdminEmailNotifier
from apps.orders.services import OrderCancellationService, OrderQueryService
from apps.orders.tests.fakes import FakeOrderBackend, delivery_form, variant_line


def new_order(user_id=1):
    form = delivery_form()
    return NewOrder(
        id=uuid.uuid4(),
        user_id=user_id,
        customer_name=form.name,
        customer_phone=form.phone,
        customer_address=form.address,
        delivery_method=form.delivery_method,
        payment_method=form.payment_method,
        comment="",
        delivery_time=form.delivery_time,
        totals=OrderTotals(Decimal("9000"), Decimal("500"), Decimal("9500")),
    )


class OrderCancellationTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.backend = FakeOrderBackend()
        self.service = OrderCancellationService(self.backend)
        self.order = new_order(user_id=1)
        await self.backend.insert_order(self.order)

    async def test_owner_cancels_pending_order(self):
        order = await self.service.cancel(self.order.id, 1)
        self.assertEqual(order.status, OrderStatus.CANCELLED)
        self.assertTrue(order.is_terminal)

    async def test_cancelling_twice_is_a_no_op(self):
        await self.service.cancel(self.order.id, 1)
        order = await self.service.cancel(self.order.id, 1)
        self.assertEqual(order.status, OrderStatus.CANCELLED)

    async def test_other_user_cannot_cancel(self):
        with self.assertRaises(GuardMismatchError):
            await self.service.cancel(self.order.id, 2)
        self.assertEqual(self.backend.orders[self.order.id].status, OrderStatus.PENDING)

    async def test_order_in_progress_cannot_be_cancelled(self):
        for status in (OrderStatus.PROCESSING, OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED):
            with self.subTest(status=status):
                self.backend.set_status(self.order.id, status)
                with self.assertRaises(GuardMismatchError):
                    await self.service.cancel(self.order.id, 1)
                self.assertEqual(self.backend.orders[self.order.id].status, status)

    async def test_unknown_order_looks_like_guard_miss(self):
        with self.assertRaises(GuardMismatchError):
            await self.service.cancel(uuid.uuid4(), 1)

    async def test_backend_failure_is_mapped(self):
        self.backend.fail["cancel_if_pending"] = BackendErrorCode.NETWORK
        with self.assertRaises(NetworkError):
            await self.service.cancel(self.order.id, 1)

    async def test_notifier_failure_does_not_fail_the_cancel(self):
        class BrokenNotifier:
            async def order_cancelled(self, order):
                raise ConnectionRefusedError("smtp down")

        service = OrderCancellationService(self.backend, notifier=BrokenNotifier())
        order = await service.cancel(self.order.id, 1)
        self.assertEqual(order.status, OrderStatus.CANCELLED)


class OrderQueryTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.backend = FakeOrderBackend()
        self.service = OrderQueryService(self.backend)
        self.mine = new_order(user_id=1)
        await self.backend.insert_order(self.mine)
        await self.backend.insert_order(new_order(user_id=2))

    async def test_lists_only_own_orders(self):
        orders = await self.service.list_orders(1)
        self.assertEqual([o.id for o in orders], [self.mine.id])

    async def test_get_order_with_lines(self):
        await self.backend.insert_lines(self.mine.id, [variant_line()])
        order = await self.service.get_order(self.mine.id, 1)
        self.assertEqual(len(order.lines), 1)

    async def test_get_other_users_order_is_not_found(self):
        with self.assertRaises(OrderNotFoundError):
            await self.service.get_order(self.mine.id, 2)


@override_settings(
    STOREFRONT_ADMIN_EMAIL="admin@shop.test",
    STOREFRONT_CURRENCY_SYMBOL="₸",
    EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend",
)
class CancellationNoticeTests(SimpleTestCase):
    def setUp(self):
        self.backend = FakeOrderBackend()
        self.service = OrderCancellationService(self.backend, notifier=AdminEmailNotifier())
        self.order = new_order(user_id=1)
        async_to_sync(self.backend.insert_order)(self.order)

    async def test_admin_is_mailed_once(self):
        await self.service.cancel(self.order.id, 1)
        await self.service.cancel(self.order.id, 1)

        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, ["admin@shop.test"])
        self.assertIn(str(self.order.id), message.subject)
        self.assertIn("Customer: Aigerim", message.body)
        self.assertIn("Total: 9 500 ₸", message.body)

    async def test_guard_miss_sends_nothing(self):
        with self.assertRaises(GuardMismatchError):
            await self.service.cancel(self.order.id, 2)
        self.assertEqual(mail.outbox, [])

    async def test_no_recipient_sends_nothing(self):
        with self.settings(STOREFRONT_ADMIN_EMAIL=""):
            service = OrderCancellationService(self.backend, notifier=AdminEmailNotifier())
        await service.cancel(self.order.id, 1)
        self.assertEqual(mail.outbox, [])
