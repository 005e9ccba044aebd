import unittest
from unittest.mock import patch

from apps.auth.services import SessionService, merge_payload
from apps.carts.dtos import MergeReport
from apps.carts.refs import VariantRef
from apps.carts.session import Shopper


class FakeCartService:
    def __init__(self, report=None, error=None):
        self.report = report or MergeReport()
        self.error = error
        self.signed_in = []
        self.signed_out = []

    async def sign_in(self, shopper, user_id):
        if self.error:
            raise self.error
        self.signed_in.append(user_id)
        return self.report

    async def sign_out(self, shopper):
        self.signed_out.append(shopper.user_id)


class MergePayloadTests(unittest.TestCase):
    def test_reports_failed_refs_by_key(self):
        report = MergeReport(inserted=[VariantRef(1)], failed=[VariantRef(2)], saved_failed=[7])
        payload = merge_payload(report)
        self.assertEqual(payload["merged"], 1)
        self.assertFalse(payload["ok"])
        self.assertEqual(payload["failed"], [VariantRef(2).key])
        self.assertEqual(payload["savedFailed"], [7])


class SessionServiceTests(unittest.IsolatedAsyncioTestCase):
    async def test_sign_in_reports_merge(self):
        carts = FakeCartService(MergeReport(updated=[VariantRef(3)]))
        service = SessionService(carts)
        payload = await service.sign_in(Shopper(user_id=None, session={}), 5)
        self.assertEqual(carts.signed_in, [5])
        self.assertEqual(payload["merged"], 1)
        self.assertTrue(payload["ok"])

    async def test_sign_in_survives_merge_failure(self):
        service = SessionService(FakeCartService(error=RuntimeError("db down")))
        payload = await service.sign_in(Shopper(user_id=None, session={}), 5)
        self.assertFalse(payload["ok"])
        self.assertEqual(payload["merged"], 0)

    async def test_sign_out_without_token_is_rejected(self):
        carts = FakeCartService()
        service = SessionService(carts)
        error = await service.sign_out(Shopper(user_id=5, session={}), None)
        self.assertEqual(error[0], "VALIDATION_ERROR")
        self.assertEqual(carts.signed_out, [])

    async def test_sign_out_blacklists_and_resets_cart(self):
        carts = FakeCartService()
        service = SessionService(carts)
        with patch("apps.auth.services._blacklist") as blacklist:
            error = await service.sign_out(Shopper(user_id=5, session={}), "token")
        self.assertIsNone(error)
        blacklist.assert_called_once_with("token")
        self.assertEqual(carts.signed_out, [5])

    async def test_sign_out_with_bad_token(self):
        carts = FakeCartService()
        service = SessionService(carts)
        with patch("apps.auth.services._blacklist", side_effect=ValueError("bad")):
            error = await service.sign_out(Shopper(user_id=5, session={}), "token")
        self.assertEqual(error[0], "VALIDATION_ERROR")
        self.assertEqual(carts.signed_out, [])
