import unittest
from unittest import mock

import base58
import requests

from flowviz.adapters.alephium.explorer_adapter import P2C, P2MPKH, P2PKH, AlephiumExplorerAdapter, SourceConfig
from flowviz.core.enums import NetworkType, TransactionType
from flowviz.core.errors import FetchError, RateLimitError


def _address(kind: int, body: bytes = bytes(range(32))) -> str:
    return base58.b58encode(bytes([kind]) + body).decode()


A = _address(P2PKH)
CONTRACT = _address(P2C)


def _resp(status=200, payload=None):
    r = mock.Mock()
    r.status_code = status
    r.json.return_value = payload
    if status >= 400:
        r.raise_for_status.side_effect = requests.HTTPError(f"{status}")
    return r


class ExplorerAdapterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.adapter = AlephiumExplorerAdapter(SourceConfig(network=NetworkType.TESTNET))
        self.session = mock.Mock()
        self.adapter._session = self.session

    def test_network_selects_base_url(self) -> None:
        self.assertEqual(self.adapter.network, NetworkType.TESTNET)
        self.assertEqual(self.adapter.config.resolved_url(), "https://backend.testnet.alephium.org")
        custom = SourceConfig(base_url="http://localhost:9090/")
        self.assertEqual(custom.resolved_url(), "http://localhost:9090")

    def test_balance(self) -> None:
        self.session.get.return_value = _resp(payload={"balance": "100", "lockedBalance": "5"})

        bal = self.adapter.get_balance(A)

        self.assertEqual((bal.balance, bal.locked_balance, bal.utxo_num), ("100", "5", 0))
        url = self.session.get.call_args[0][0]
        self.assertEqual(url, f"https://backend.testnet.alephium.org/addresses/{A}/balance")

    def test_transactions_are_classified(self) -> None:
        rows = [
            {
                "hash": "in",
                "timestamp": 1000,
                "inputs": [{"address": "B", "attoAlphAmount": "300"}],
                "outputs": [{"address": A, "attoAlphAmount": "250"}, {"address": "B", "attoAlphAmount": "40"}],
                "gasAmount": 20000,
                "gasPrice": "100000000000",
            },
            {
                "hash": "out",
                "timestamp": 2000,
                "inputs": [{"address": A, "attoAlphAmount": "1000"}],
                "outputs": [{"address": "C", "attoAlphAmount": "600"}, {"address": A, "attoAlphAmount": "390"}],
            },
            {
                "hash": "tok",
                "timestamp": 3000,
                "inputs": [{"address": "D", "attoAlphAmount": "10"}],
                "outputs": [{"address": A, "attoAlphAmount": "0", "tokens": [{"id": "t", "amount": "5"}]}],
            },
            {"hash": "bare", "timestamp": 4000, "inputs": [], "outputs": []},
        ]
        self.session.get.return_value = _resp(payload=rows)

        page = self.adapter.get_transactions(A, page=2, limit=500)
        by_hash = {t.hash: t for t in page.transactions}

        self.assertEqual(page.total, 4)
        self.assertEqual(self.session.get.call_args[1]["params"], {"page": 2, "limit": 100})

        incoming = by_hash["in"]
        self.assertEqual(incoming.type, TransactionType.INCOMING)
        self.assertEqual((incoming.amount, incoming.from_address, incoming.to_address), ("250", "B", A))
        self.assertEqual(incoming.fee, str(20000 * 100000000000))

        outgoing = by_hash["out"]
        self.assertEqual(outgoing.type, TransactionType.OUTGOING)
        self.assertEqual((outgoing.amount, outgoing.from_address, outgoing.to_address), ("610", A, "C"))

        token = by_hash["tok"]
        self.assertEqual(token.amount, "0")
        self.assertTrue(token.token_transfer)

        bare = by_hash["bare"]
        self.assertEqual((bare.from_address, bare.to_address), ("Unknown", "Unknown"))

    def test_session_retries_with_backoff(self) -> None:
        adapter = AlephiumExplorerAdapter(SourceConfig(max_retries=5, backoff_factor=0.25))
        retry = adapter._session.get_adapter("https://backend.mainnet.alephium.org").max_retries

        self.assertEqual(retry.total, 5)
        self.assertEqual(retry.backoff_factor, 0.25)
        self.assertIn(429, retry.status_forcelist)
        self.assertIn(503, retry.status_forcelist)
        self.assertTrue(retry.respect_retry_after_header)

    def test_connection_failure_is_fetch_error(self) -> None:
        self.session.get.side_effect = requests.ConnectionError("down")

        with self.assertRaises(FetchError):
            self.adapter.get_transactions(A)

    def test_exhausted_rate_limit_is_rate_limit_error(self) -> None:
        self.session.get.return_value = _resp(429)

        with self.assertRaises(RateLimitError):
            self.adapter.get_balance(A)

    def test_server_error_is_fetch_error(self) -> None:
        self.session.get.return_value = _resp(503)

        with self.assertRaises(FetchError):
            self.adapter.get_balance(A)

    def test_non_list_page_is_fetch_error(self) -> None:
        self.session.get.return_value = _resp(payload={"error": "nope"})

        with self.assertRaises(FetchError):
            self.adapter.get_transactions(A)

    def test_is_contract_reads_address_type(self) -> None:
        self.assertTrue(self.adapter.is_contract(CONTRACT))
        self.assertFalse(self.adapter.is_contract(A))
        self.assertFalse(self.adapter.is_contract("Unknown"))
        self.session.get.assert_not_called()

    def test_validate_address(self) -> None:
        multisig = _address(P2MPKH, bytes([2]) + bytes(64) + bytes([1]))

        self.assertTrue(self.adapter.validate_address(A))
        self.assertTrue(self.adapter.validate_address(CONTRACT))
        self.assertTrue(self.adapter.validate_address(multisig))
        self.assertFalse(self.adapter.validate_address(""))
        self.assertFalse(self.adapter.validate_address("0xabc"))
        self.assertFalse(self.adapter.validate_address(A[:-4]))
        self.assertFalse(self.adapter.validate_address(_address(0x07)))


if __name__ == "__main__":
    unittest.main()
