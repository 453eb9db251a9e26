from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from flowviz.core.enums import EdgeCategory, NodeCategory, TransactionType
from flowviz.core.errors import InvalidAmountError, InvalidFilterError
from flowviz.utils.formatting import parse_amount



# Configuration model

@dataclass(frozen=True)
class FilterOptions:
    """
    User input for a single flow search.

    Dates are epoch milliseconds, matching transaction timestamps.
    """

    max_depth: int = 1
    transaction_limit: int = 50
    min_amount: str = "0"
    date_from: Optional[int] = None
    date_to: Optional[int] = None
    show_incoming: bool = True
    show_outgoing: bool = True

    def validate(self) -> "FilterOptions":
        if not 1 <= int(self.max_depth) <= 5:
            raise InvalidFilterError(f"max_depth must be within [1, 5], got {self.max_depth}")
        if not 10 <= int(self.transaction_limit) <= 200:
            raise InvalidFilterError(
                f"transaction_limit must be within [10, 200], got {self.transaction_limit}"
            )
        try:
            parse_amount(self.min_amount)
        except InvalidAmountError as e:
            raise InvalidFilterError(
                f"min_amount must be a non-negative integer string, got {self.min_amount!r}"
            ) from e
        if self.date_from is not None and self.date_to is not None and self.date_from > self.date_to:
            raise InvalidFilterError("date_from must not be later than date_to")
        return self



# Aggregation

@dataclass
class Aggregate:
    """Running per-counterparty totals. Amounts are exact Python ints."""

    count: int
    total_amount: int
    dominant_type: TransactionType

    def add(self, amount: int) -> None:
        self.count += 1
        self.total_amount += amount



# Node payloads

@dataclass(frozen=True)
class CentralAddressData:
    label: str
    full_label: str
    address: str
    balance: str
    transaction_count: int
    total_incoming: str
    total_outgoing: str


@dataclass(frozen=True)
class ConnectedAddressData:
    label: str
    full_label: str
    address: str
    transaction_count: int
    total_amount: str
    dominant_type: TransactionType
    is_contract: bool = False


@dataclass(frozen=True)
class TransactionData:
    label: str
    hash: str
    timestamp: int
    amount: str
    from_address: str
    to_address: str
    type: EdgeCategory
    is_self_transfer: bool = False
    confirmations: Optional[int] = None
    fee: Optional[str] = None
    token_transfer: bool = False


NodeData = Union[CentralAddressData, ConnectedAddressData, TransactionData]



# Graph models

@dataclass(frozen=True)
class GraphNode:

    id: str
    category: NodeCategory
    data: NodeData


@dataclass(frozen=True)
class GraphEdge:

    id: str
    source: str
    target: str
    category: EdgeCategory
    amount: str
    label: str = ""
    hash: Optional[str] = None


@dataclass(frozen=True)
class Graph:

    nodes: Tuple[GraphNode, ...] = field(default_factory=tuple)
    edges: Tuple[GraphEdge, ...] = field(default_factory=tuple)

    def node_ids(self) -> Tuple[str, ...]:
        return tuple(n.id for n in self.nodes)

    def find_node(self, node_id: str) -> Optional[GraphNode]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None



# Layout / summary

@dataclass(frozen=True)
class Position:
    x: float
    y: float


@dataclass(frozen=True)
class FlowStatistics:
    incoming_count: int
    outgoing_count: int
    total_incoming: int
    total_outgoing: int
    net_flow: int
    unique_counterparties: int
    balance: str


@dataclass(frozen=True)
class PositionedNode:
    node: GraphNode
    position: Position
    width: float
    height: float
