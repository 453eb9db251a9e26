import json
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from io import StringIO
from pathlib import Path

from flowviz.cli.main import main


FIXTURE = {
    "balances": {"A": "1500000000000000000"},
    "contracts": ["C"],
    "transactions": {
        "A": [
            {"hash": "h1", "timestamp": 1000, "type": "incoming", "amount": "2000000000000000000",
             "fromAddress": "B", "toAddress": "A"},
            {"hash": "h2", "timestamp": 2000, "type": "outgoing", "amount": "500000000000000000",
             "fromAddress": "A", "toAddress": "C"},
        ]
    },
}


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.dir = Path(self._tmp.name)
        self.fixture = self.dir / "fixture.json"
        self.fixture.write_text(json.dumps(FIXTURE), encoding="utf-8")

    def _run(self, *extra):
        argv = ["--address", "A", "--use-static", str(self.fixture), "--out", str(self.dir / "out"), *extra]
        with redirect_stdout(StringIO()), redirect_stderr(StringIO()):
            return main(argv)

    def test_writes_graph_and_summary(self) -> None:
        self.assertEqual(self._run(), 0)

        payload = json.loads((self.dir / "out" / "graph.json").read_text(encoding="utf-8"))
        view_ids = {n["id"] for n in payload["view"]["nodes"]}
        self.assertEqual(view_ids, {"central-A", "addr-B", "addr-C"})
        contract = [n for n in payload["graph"]["nodes"] if n["id"] == "addr-C"][0]
        self.assertTrue(contract["data"]["is_contract"])
        self.assertTrue((self.dir / "out" / "summary.md").exists())

    def test_show_transactions_keeps_transaction_nodes(self) -> None:
        self.assertEqual(self._run("--show-transactions", "--direction", "TB"), 0)

        payload = json.loads((self.dir / "out" / "graph.json").read_text(encoding="utf-8"))
        self.assertEqual(len(payload["view"]["nodes"]), 5)
        self.assertEqual(len(payload["view"]["edges"]), 4)

    def test_invalid_filters_exit_2(self) -> None:
        self.assertEqual(self._run("--limit", "5"), 2)
        self.assertEqual(self._run("--date-from", "not-a-date"), 2)


if __name__ == "__main__":
    unittest.main()
