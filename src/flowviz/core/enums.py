from __future__ import annotations

from enum import Enum


class NodeCategory(str, Enum):
    CENTRAL_ADDRESS = "centralAddress"
    CONNECTED_ADDRESS = "connectedAddress"
    INCOMING_TRANSACTION = "incomingTransaction"
    OUTGOING_TRANSACTION = "outgoingTransaction"
    SELF_TRANSACTION = "selfTransaction"

    @property
    def is_transaction(self) -> bool:
        return self in (
            NodeCategory.INCOMING_TRANSACTION,
            NodeCategory.OUTGOING_TRANSACTION,
            NodeCategory.SELF_TRANSACTION,
        )


class TransactionType(str, Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"


class EdgeCategory(str, Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"
    SELF = "self"


class NetworkType(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"
    DEVNET = "devnet"


class LayoutDirection(str, Enum):
    LEFT_RIGHT = "LR"
    TOP_BOTTOM = "TB"
