"""HTTP settlement collaborators against a mocked requests session."""

import unittest
from unittest import mock

import requests

from deadswitch.errors import ServiceUnavailableError, SettlementError
from deadswitch.identity import Principal
from deadswitch.settlement import EsploraBalanceService, HttpLedgerService, UnavailableLedgerService


def response(status_code, body):
    r = mock.Mock()
    r.status_code = status_code
    r.json.return_value = body
    if status_code >= 400:
        r.raise_for_status.side_effect = requests.HTTPError(f"{status_code}")
    else:
        r.raise_for_status.return_value = None
    return r


class TestHttpLedgerService(unittest.TestCase):

    def setUp(self):
        self.session = mock.Mock()
        self.ledger = HttpLedgerService("http://ledger.local/", session=self.session)

    def test_transfer(self):
        self.session.post.return_value = response(200, {"block_index": 17})
        self.assertEqual(self.ledger.transfer(Principal("bob"), 1000, memo="w1"), "17")
        url = self.session.post.call_args[0][0]
        payload = self.session.post.call_args[1]["json"]
        self.assertEqual(url, "http://ledger.local/transfer")
        self.assertEqual(payload, {"to": {"owner": "bob", "subaccount": None}, "amount": 1000, "memo": "w1"})

    def test_ledger_error(self):
        self.session.post.return_value = response(400, {"error": "InsufficientFunds"})
        with self.assertRaises(SettlementError) as ctx:
            self.ledger.transfer(Principal("bob"), 1000)
        self.assertIn("InsufficientFunds", ctx.exception.message)

    def test_transport_error(self):
        self.session.post.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(SettlementError):
            self.ledger.transfer(Principal("bob"), 1000)

    def test_missing_block_index(self):
        self.session.post.return_value = response(200, {})
        with self.assertRaises(SettlementError):
            self.ledger.transfer(Principal("bob"), 1000)

    def test_unavailable_ledger(self):
        with self.assertRaises(SettlementError):
            UnavailableLedgerService().transfer(Principal("bob"), 1)


class TestEsploraBalanceService(unittest.TestCase):

    def setUp(self):
        self.session = mock.Mock()
        self.service = EsploraBalanceService("https://esplora.local/api", session=self.session)

    def test_balance(self):
        self.session.get.return_value = response(200, {
            "chain_stats": {"funded_txo_sum": 150_000, "spent_txo_sum": 25_000}
        })
        self.assertEqual(self.service.balance("tb1qabc"), 125_000)
        self.assertEqual(self.session.get.call_args[0][0], "https://esplora.local/api/address/tb1qabc")

    def test_http_error(self):
        self.session.get.return_value = response(500, {})
        with self.assertRaises(ServiceUnavailableError):
            self.service.balance("tb1qabc")

    def test_malformed_reply(self):
        self.session.get.return_value = response(200, {"unexpected": True})
        with self.assertRaises(ServiceUnavailableError):
            self.service.balance("tb1qabc")

    def test_unconfigured(self):
        with self.assertRaises(ServiceUnavailableError):
            EsploraBalanceService("", session=self.session).balance("tb1qabc")


if __name__ == "__main__":
    unittest.main()
