from dataclasses import dataclass
from typing import List, Optional

from flowviz.core.enums import TransactionType


UNKNOWN_ADDRESS = "Unknown"


@dataclass(frozen=True)
class AddressTransaction:
    hash: str
    timestamp: int              # epoch milliseconds
    type: TransactionType       # relative to the queried address
    amount: str                 # atomic units, unsigned decimal string
    from_address: str
    to_address: str
    confirmations: Optional[int] = None
    fee: Optional[str] = None
    token_transfer: bool = False    # moved tokens but no native value


@dataclass(frozen=True)
class AddressBalance:
    balance: str
    locked_balance: str
    utxo_num: int


@dataclass(frozen=True)
class TransactionPage:
    transactions: List[AddressTransaction]
    total: int
