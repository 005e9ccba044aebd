import unittest

from apps.carts.commands import AddItemCommand, SetQuantityCommand, ToggleSavedCommand
from apps.carts.refs import ComboRef, VariantRef, parse_ref_key


class AddItemCommandTests(unittest.TestCase):
    def test_variant_target(self):
        cmd = AddItemCommand.from_raw({"variantId": "4", "quantity": 2})
        self.assertEqual(cmd.ref, VariantRef(4))
        self.assertEqual(cmd.quantity, 2)

    def test_combo_target_defaults_quantity(self):
        cmd = AddItemCommand.from_raw({"combo_id": 7})
        self.assertEqual(cmd.ref, ComboRef(7))
        self.assertEqual(cmd.quantity, 1)

    def test_requires_exactly_one_target(self):
        self.assertIsNone(AddItemCommand.from_raw({}))
        self.assertIsNone(AddItemCommand.from_raw({"variantId": 1, "comboId": 2}))

    def test_rejects_bad_values(self):
        self.assertIsNone(AddItemCommand.from_raw({"variantId": "x"}))
        self.assertIsNone(AddItemCommand.from_raw({"variantId": 0}))
        self.assertIsNone(AddItemCommand.from_raw({"variantId": 1, "quantity": 0}))
        self.assertIsNone(AddItemCommand.from_raw(None))


class SetQuantityCommandTests(unittest.TestCase):
    def test_zero_removes(self):
        cmd = SetQuantityCommand.from_raw("12", {"quantity": 0})
        self.assertTrue(cmd.removes)

    def test_positive_keeps(self):
        cmd = SetQuantityCommand.from_raw("12", {"quantity": "3"})
        self.assertEqual(cmd.quantity, 3)
        self.assertFalse(cmd.removes)

    def test_invalid(self):
        self.assertIsNone(SetQuantityCommand.from_raw("12", {"quantity": "many"}))
        self.assertIsNone(SetQuantityCommand.from_raw("", {"quantity": 1}))


class ToggleSavedCommandTests(unittest.TestCase):
    def test_valid(self):
        self.assertEqual(ToggleSavedCommand.from_raw({"productId": 5}).product_id, 5)

    def test_invalid(self):
        self.assertIsNone(ToggleSavedCommand.from_raw({"productId": -1}))
        self.assertIsNone(ToggleSavedCommand.from_raw({}))


class RefTests(unittest.TestCase):
    def test_key_round_trip(self):
        for ref in (VariantRef(3), ComboRef(3)):
            self.assertEqual(parse_ref_key(ref.key), ref)

    def test_malformed_key(self):
        for key in ("", "variant", "widget:1", "combo:abc"):
            with self.assertRaises(ValueError):
                parse_ref_key(key)
