import json
from pathlib import Path
from typing import Dict, List, Optional

from flowviz.core.dto import AddressBalance, AddressTransaction, TransactionPage
from flowviz.core.enums import TransactionType
from flowviz.ports.address_classifier_port import AddressClassifierPort
from flowviz.ports.transaction_source_port import TransactionSourcePort


class StaticTransactionSource(TransactionSourcePort, AddressClassifierPort):
    def __init__(self,
                 transactions: Optional[Dict[str, List[AddressTransaction]]] = None,
                 balances: Optional[Dict[str, AddressBalance]] = None,
                 contracts: Optional[Dict[str, bool]] = None,
                 ):
        self._txs = transactions or {}
        self._balances = balances or {}
        self._contract = dict(contracts or {})
        self.calls: List[tuple] = []

    @classmethod
    def from_json(cls, path: str) -> "StaticTransactionSource":
        """
        Load a fixture of the form
        {"balances": {addr: balance}, "contracts": [addr, ...],
         "transactions": {addr: [{hash, timestamp, type, amount, fromAddress, toAddress}, ...]}}
        """
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        txs = {
            addr: [
                AddressTransaction(
                    hash=t["hash"],
                    timestamp=int(t.get("timestamp", 0)),
                    type=TransactionType(t["type"]),
                    amount=str(t["amount"]),
                    from_address=t["fromAddress"],
                    to_address=t["toAddress"],
                    confirmations=t.get("confirmations"),
                    fee=t.get("fee"),
                )
                for t in rows
            ]
            for addr, rows in (raw.get("transactions") or {}).items()
        }
        balances = {
            addr: AddressBalance(balance=str(b), locked_balance="0", utxo_num=0)
            for addr, b in (raw.get("balances") or {}).items()
        }
        contracts = {addr: True for addr in raw.get("contracts") or []}
        return cls(transactions=txs, balances=balances, contracts=contracts)

    def get_balance(self, address):
        self.calls.append(("balance", address))
        return self._balances.get(address, AddressBalance(balance="0", locked_balance="0", utxo_num=0))

    def get_transactions(self, address, page=1, limit=50):
        self.calls.append(("transactions", address, page, limit))
        items = self._txs.get(address, [])
        start = (page - 1) * limit
        return TransactionPage(transactions=items[start:start + limit], total=len(items))

    def is_contract(self, address):
        return bool(self._contract.get(address, False))

    def validate_address(self, address):
        return bool(address and address.strip())
