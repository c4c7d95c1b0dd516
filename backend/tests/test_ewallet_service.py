from decimal import Decimal
import unittest
import uuid

from app.core.errors import NotFound, ValidationError
from app.services import ewallet_service
from app.services.ewallet_service import connect_wallet, list_wallets, sync_wallet


class TestEWalletService(unittest.TestCase):
    def setUp(self):
        ewallet_service._wallets.clear()
        self.user_id = uuid.uuid4()

    def test_connect_defaults(self):
        """A new wallet is active, in IDR, synced daily and never synced yet."""
        wallet = connect_wallet(self.user_id, "GoPay", "0812345678")
        self.assertEqual(wallet["currency"], "IDR")
        self.assertEqual(wallet["sync_frequency"], "daily")
        self.assertTrue(wallet["is_active"])
        self.assertIsNone(wallet["last_sync"])
        self.assertEqual(wallet["balance"], Decimal("0"))

    def test_connect_requires_name_and_account(self):
        with self.assertRaises(ValidationError):
            connect_wallet(self.user_id, "", "0812345678")
        with self.assertRaises(ValidationError):
            connect_wallet(self.user_id, "OVO", None)
        self.assertEqual(list_wallets(self.user_id), [])

    def test_wallets_are_per_user(self):
        connect_wallet(self.user_id, "GoPay", "1", Decimal("50000"))
        connect_wallet(self.user_id, "OVO", "2")
        other = uuid.uuid4()

        self.assertEqual([w["wallet_name"] for w in list_wallets(self.user_id)], ["GoPay", "OVO"])
        self.assertEqual(list_wallets(other), [])

    def test_sync_refreshes_balance_and_timestamp(self):
        wallet = connect_wallet(self.user_id, "DANA", "3")
        result = sync_wallet(self.user_id, wallet["id"])

        self.assertEqual(result, {"synced_transactions": 0})
        self.assertIsNotNone(wallet["last_sync"])
        self.assertGreaterEqual(wallet["balance"], Decimal("10000"))

    def test_sync_unknown_or_foreign_wallet(self):
        wallet = connect_wallet(self.user_id, "DANA", "3")
        with self.assertRaises(NotFound):
            sync_wallet(self.user_id, "missing")
        with self.assertRaises(NotFound):
            sync_wallet(uuid.uuid4(), wallet["id"])


if __name__ == "__main__":
    unittest.main()
