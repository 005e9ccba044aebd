import unittest
import uuid
from decimal import Decimal

from apps.orders.dtos import OrderLineDTO, OrderTotals
from apps.orders.handoff import ClientLinkOpener, OrderHandoff, messaging_link
from apps.orders.summary import compose_summary, format_amount
from apps.orders.tests.fakes import FakeOpener, combo_line, delivery_form, variant_line
from apps.orders.validation import (
    sanitize_form,
    sanitize_text,
    validate_checkout_form,
    validate_name,
    validate_phone,
)


class ValidationTests(unittest.TestCase):
    def test_valid_delivery_form(self):
        self.assertEqual(validate_checkout_form(delivery_form()), {})

    def test_names(self):
        self.assertEqual(validate_name("Anna-Maria"), "")
        self.assertEqual(validate_name("Айгерим"), "")
        self.assertNotEqual(validate_name("A"), "")
        self.assertNotEqual(validate_name("R2D2"), "")
        self.assertNotEqual(validate_name("x" * 51), "")

    def test_phones(self):
        self.assertEqual(validate_phone("7 701 123 45 67"), "")
        self.assertEqual(validate_phone("+7 (701) 123-45-67"), "")
        self.assertNotEqual(validate_phone("8 701 123 45 67"), "")
        self.assertNotEqual(validate_phone("+7 701 123 45"), "")
        self.assertNotEqual(validate_phone(""), "")

    def test_pickup_ignores_address_and_time(self):
        form = delivery_form(delivery_method="pickup", address="", delivery_time="")
        self.assertEqual(validate_checkout_form(form), {})

    def test_unknown_methods(self):
        form = delivery_form(delivery_method="drone", payment_method="barter")
        errors = validate_checkout_form(form)
        self.assertEqual(set(errors), {"deliveryMethod", "paymentMethod"})

    def test_every_invalid_field_is_reported(self):
        form = delivery_form(name="", phone="1", address="abc", delivery_time="")
        errors = validate_checkout_form(form)
        self.assertEqual(set(errors), {"name", "phone", "address", "deliveryTime"})


class SanitizeTests(unittest.TestCase):
    def test_strips_markup_and_handlers(self):
        self.assertEqual(sanitize_text("  <b>Hi</b> "), "bHi/b")
        self.assertEqual(sanitize_text("javascript:alert(1)"), "alert(1)")
        self.assertEqual(sanitize_text('x onmouseover="y"'), 'x "y"')
        self.assertEqual(sanitize_text("a\x00b\x07c"), "abc")

    def test_non_text_becomes_empty(self):
        self.assertEqual(sanitize_text(None), "")
        self.assertEqual(sanitize_text(42), "")

    def test_pickup_form_drops_delivery_fields(self):
        form = delivery_form(delivery_method="pickup")
        clean = sanitize_form(form)
        self.assertEqual(clean.address, "")
        self.assertEqual(clean.delivery_time, "")


class SummaryTests(unittest.TestCase):
    order_id = uuid.UUID("3f2a9c1e-0000-4000-8000-000000000001")

    def lines(self):
        return [
            OrderLineDTO.from_cart_line(variant_line(quantity=2, price="4500")),
            OrderLineDTO.from_cart_line(combo_line()),
        ]

    def totals(self):
        return OrderTotals(Decimal("18500"), Decimal("500"), Decimal("19000"))

    def test_format_amount(self):
        self.assertEqual(format_amount(Decimal("4500"), "₸"), "4 500 ₸")
        self.assertEqual(format_amount(Decimal("1234567.50"), "₸"), "1 234 567.50 ₸")
        self.assertEqual(format_amount(Decimal("0"), "₸"), "0 ₸")

    def test_summary_lists_lines_and_totals(self):
        text = compose_summary(self.order_id, delivery_form(), self.lines(), self.totals(), "₸")
        rows = text.split("\n")
        self.assertEqual(rows[0], "*New order #3f2a9c1e*")
        self.assertIn("*Address:* Abay Ave 10, apt 5", rows)
        self.assertIn("- Red roses (Size: M, 2 pcs) - 9 000 ₸", rows)
        self.assertIn("- Roses and chocolate (Combo, 1 pcs) - 9 500 ₸", rows)
        self.assertEqual(rows[-1], "*Total:* 19 000 ₸")

    def test_summary_is_deterministic(self):
        first = compose_summary(self.order_id, delivery_form(), self.lines(), self.totals(), "₸")
        second = compose_summary(self.order_id, delivery_form(), self.lines(), self.totals(), "₸")
        self.assertEqual(first, second)

    def test_pickup_summary_has_no_address(self):
        form = sanitize_form(delivery_form(delivery_method="pickup", comment="Ring twice"))
        text = compose_summary(self.order_id, form, self.lines(), self.totals(), "₸")
        self.assertNotIn("*Address:*", text)
        self.assertIn("*Comment:* Ring twice", text)


class HandoffTests(unittest.IsolatedAsyncioTestCase):
    async def test_messaging_link_encodes_text(self):
        url = messaging_link("77000000000", "*Total:* 1 000 ₸\nthanks")
        self.assertTrue(url.startswith("whatsapp://send?phone=77000000000&text="))
        self.assertNotIn(" ", url)
        self.assertNotIn("\n", url)

    async def test_opens_messaging_when_available(self):
        opener = FakeOpener()
        result = await OrderHandoff("77000000000", opener).dispatch("hello")
        self.assertEqual(result.channel, "messaging")
        self.assertEqual(opener.opened, [result.url])

    async def test_missing_phone_skips_the_hand_off(self):
        opener = FakeOpener()
        result = await OrderHandoff("", opener).dispatch("hello")
        self.assertEqual(result.channel, "none")
        self.assertEqual(result.url, "")
        self.assertFalse(result.used_fallback)
        self.assertEqual(opener.opened, [])

    async def test_client_reported_unavailable_falls_back(self):
        result = await OrderHandoff("77000000000", ClientLinkOpener(False)).dispatch("hello")
        self.assertEqual(result.url, "tel:77000000000")

    async def test_opener_crash_falls_back(self):
        class Broken:
            async def open(self, url):
                raise OSError("no handler")

        result = await OrderHandoff("77000000000", Broken()).dispatch("hello")
        self.assertTrue(result.used_fallback)
