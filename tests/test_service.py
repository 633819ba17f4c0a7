"""
Will Service Test Suite

End-to-end lifecycle through the service facade: registration, heartbeat,
secret escrow, beneficiary discovery and claims.
"""

import unittest

from deadswitch.errors import (
    NotFoundError,
    ServiceUnavailableError,
    StillAliveError,
    UnauthorizedError,
    ValidationError,
)
from deadswitch.identity import ANONYMOUS, Principal

from support import HEIR, OWNER, PAYOUT, START, STRANGER, FixedBalance, make_service


class ServiceTestCase(unittest.TestCase):

    def setUp(self):
        self.service = make_service()
        self.clock = self.service.clock

    def register(self, interval=3600, secret=b"sealed-secret", beneficiary=HEIR):
        return self.service.register_will(OWNER, beneficiary, PAYOUT, interval, encrypted_secret=secret)


class TestRegistration(ServiceTestCase):

    def test_register(self):
        self.assertEqual(self.register(), "Will registered successfully")
        status = self.service.get_will_status(OWNER)
        self.assertEqual(status["beneficiary"], "bob")
        self.assertEqual(status["heartbeat_interval"], 3600)
        self.assertEqual(status["last_active"], START)
        self.assertEqual(status["time_remaining"], 3600)
        self.assertFalse(status["is_expired"])
        self.assertEqual(status["state"], "ACTIVE")
        self.assertTrue(status["has_secret"])
        self.assertNotIn("encrypted_secret", status)

    def test_rejects_self_beneficiary(self):
        with self.assertRaises(ValidationError):
            self.register(beneficiary=OWNER)

    def test_rejects_anonymous(self):
        with self.assertRaises(ValidationError):
            self.service.register_will(ANONYMOUS, HEIR, PAYOUT, 3600)
        with self.assertRaises(ValidationError):
            self.register(beneficiary=ANONYMOUS)

    def test_rejects_non_positive_interval(self):
        for interval in (0, -5):
            with self.assertRaises(ValidationError):
                self.register(interval=interval)

    def test_rejects_empty_payout_address(self):
        with self.assertRaises(ValidationError):
            self.service.register_will(OWNER, HEIR, "   ", 3600)

    def test_status_without_will(self):
        with self.assertRaises(NotFoundError):
            self.service.get_will_status(OWNER)
        with self.assertRaises(NotFoundError):
            self.service.get_will_status(ANONYMOUS)


class TestHeartbeat(ServiceTestCase):

    def test_heartbeat_resets_countdown(self):
        self.register()
        self.clock.advance(3000)
        self.assertEqual(self.service.heartbeat(OWNER), START + 3000)
        self.clock.advance(3000)
        status = self.service.get_will_status(OWNER)
        self.assertFalse(status["is_expired"])
        self.assertEqual(status["time_remaining"], 600)

    def test_heartbeat_without_will(self):
        with self.assertRaises(NotFoundError):
            self.service.heartbeat(OWNER)
        with self.assertRaises(NotFoundError):
            self.service.heartbeat(ANONYMOUS)

    def test_heartbeat_after_expiry_revives(self):
        self.register(interval=10)
        self.clock.advance(11)
        self.assertTrue(self.service.get_will_status(OWNER)["is_expired"])
        self.service.heartbeat(OWNER)
        self.assertFalse(self.service.get_will_status(OWNER)["is_expired"])
        with self.assertRaises(StillAliveError):
            self.service.claim_inheritance(HEIR, OWNER)


class TestEscrow(ServiceTestCase):

    def test_update_secret(self):
        self.register(secret=None)
        self.assertFalse(self.service.get_will_status(OWNER)["has_secret"])
        self.service.update_secret(OWNER, b"v2")
        self.clock.advance(3601)
        self.assertEqual(self.service.claim_inheritance(HEIR, OWNER), b"v2")

    def test_update_secret_without_will(self):
        with self.assertRaises(NotFoundError):
            self.service.update_secret(OWNER, b"v2")
        with self.assertRaises(NotFoundError):
            self.service.update_secret(ANONYMOUS, b"v2")

    def test_update_secret_only_touches_callers_record(self):
        self.register()
        self.service.register_will(Principal("dave"), HEIR, PAYOUT, 3600, encrypted_secret=b"dave")
        self.service.update_secret(OWNER, b"alice-v2")
        self.clock.advance(3601)
        self.assertEqual(self.service.claim_inheritance(HEIR, Principal("dave")), b"dave")

    def test_read_secret_scoped_to_registration(self):
        self.register(secret=b"v1")
        will_id = self.service.get_will_status(OWNER)["will_id"]
        self.assertEqual(self.service.escrow.read_secret(OWNER, will_id), b"v1")
        self.assertIsNone(self.service.escrow.read_secret(OWNER, "stale"))
        self.assertIsNone(self.service.escrow.read_secret(STRANGER, will_id))

        self.register(secret=None)
        new_id = self.service.get_will_status(OWNER)["will_id"]
        self.assertIsNone(self.service.escrow.read_secret(OWNER, will_id))
        self.assertEqual(self.service.escrow.read_secret(OWNER, new_id), b"")

    def test_ciphertext_returned_byte_for_byte(self):
        blob = bytes(range(256))
        self.register(secret=blob)
        self.clock.advance(3601)
        self.assertEqual(self.service.claim_inheritance(HEIR, OWNER), blob)


class TestInheritances(ServiceTestCase):

    def test_list_my_inheritances(self):
        self.register()
        self.clock.advance(100)
        items = self.service.list_my_inheritances(HEIR)
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]["owner"], "alice")
        self.assertEqual(items[0]["payout_address"], PAYOUT)
        self.assertEqual(items[0]["time_remaining"], 3500)
        self.assertNotIn("encrypted_secret", items[0])

    def test_empty_for_strangers(self):
        self.register()
        self.assertEqual(self.service.list_my_inheritances(STRANGER), [])
        self.assertEqual(self.service.list_my_inheritances(ANONYMOUS), [])


class TestClaimScenarios(ServiceTestCase):

    def test_early_claim_rejected(self):
        self.register(interval=60)
        self.clock.advance(30)
        with self.assertRaises(StillAliveError):
            self.service.claim_inheritance(HEIR, OWNER)
        self.assertEqual(self.service.orchestrator.ledger.calls, [])

    def test_claim_after_expiry(self):
        self.register(interval=60)
        self.clock.advance(61)
        self.assertEqual(self.service.claim_inheritance(HEIR, OWNER), b"sealed-secret")
        self.assertEqual(self.service.get_will_status(OWNER)["state"], "CLAIMED")

    def test_stranger_rejected(self):
        self.register(interval=60)
        self.clock.advance(61)
        with self.assertRaises(UnauthorizedError):
            self.service.claim_inheritance(STRANGER, OWNER)

    def test_unknown_owner(self):
        with self.assertRaises(NotFoundError):
            self.service.claim_inheritance(HEIR, OWNER)

    def test_reregistration_moves_inheritance_to_new_beneficiary(self):
        carol = Principal("carol")
        self.register(interval=100, secret=b"for-bob")
        self.register(interval=100, secret=b"for-carol", beneficiary=carol)
        self.clock.advance(101)

        with self.assertRaises(UnauthorizedError):
            self.service.claim_inheritance(HEIR, OWNER)
        self.assertEqual(self.service.list_my_inheritances(HEIR), [])
        self.assertEqual(self.service.claim_inheritance(carol, OWNER), b"for-carol")

    def test_claimed_state_survives_heartbeat(self):
        self.register(interval=60)
        self.clock.advance(61)
        self.service.claim_inheritance(HEIR, OWNER)
        self.service.heartbeat(OWNER)

        status = self.service.get_will_status(OWNER)
        self.assertFalse(status["is_expired"])
        self.assertEqual(status["state"], "CLAIMED")

        self.register(interval=60)
        self.assertEqual(self.service.get_will_status(OWNER)["state"], "ACTIVE")

    def test_no_secret_returns_empty(self):
        self.register(secret=None, interval=60)
        self.clock.advance(61)
        self.assertEqual(self.service.claim_inheritance(HEIR, OWNER), b"")


class TestVault(ServiceTestCase):

    def test_vault_public_key_is_stable_hex(self):
        key = self.service.get_vault_public_key(OWNER)
        self.assertEqual(len(key), 64)
        self.assertEqual(key, self.service.get_vault_public_key(OWNER))
        self.assertNotEqual(key, self.service.get_vault_public_key(HEIR))

    def test_vault_balance(self):
        service = make_service(balance_service=FixedBalance(42))
        self.assertEqual(service.get_vault_balance(PAYOUT), 42)

    def test_vault_balance_without_service(self):
        with self.assertRaises(ServiceUnavailableError):
            self.service.get_vault_balance(PAYOUT)

    def test_vault_balance_validates_address(self):
        service = make_service(balance_service=FixedBalance(42))
        with self.assertRaises(ValidationError):
            service.get_vault_balance("has space")


if __name__ == "__main__":
    unittest.main()
