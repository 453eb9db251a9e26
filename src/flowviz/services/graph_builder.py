from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Set, Tuple

from loguru import logger

from flowviz.core.dto import UNKNOWN_ADDRESS, AddressTransaction
from flowviz.core.enums import EdgeCategory, NodeCategory, TransactionType
from flowviz.core.errors import FetchError, InternalInvariantViolation, UnknownCounterpartyError
from flowviz.core.models import (
    Aggregate,
    CentralAddressData,
    ConnectedAddressData,
    Graph,
    GraphEdge,
    GraphNode,
    TransactionData,
)
from flowviz.ports.address_classifier_port import AddressClassifierPort
from flowviz.utils.formatting import amount_label, parse_amount, shorten_address, transaction_label


def central_node_id(address: str) -> str:
    return f"central-{address}"


def address_node_id(address: str) -> str:
    return f"addr-{address}"


def transaction_node_id(tx_hash: str) -> str:
    return f"tx-{tx_hash}"


def _first_per_hash(transactions: Iterable[AddressTransaction]) -> List[AddressTransaction]:
    out: List[AddressTransaction] = []
    seen: Set[str] = set()
    for tx in transactions:
        if tx.hash in seen:
            logger.debug(f"Duplicate transaction {tx.hash} ignored")
            continue
        seen.add(tx.hash)
        out.append(tx)
    return out


def is_self_transfer(tx: AddressTransaction, central_address: str) -> bool:
    return tx.from_address == central_address and tx.to_address == central_address


def resolve_counterparty(tx: AddressTransaction, central_address: str) -> str:
    """
    Return the address on the other side of ``tx``.

    Raises UnknownCounterpartyError when the provider could not name it, or when
    it resolves back to the central address without being a self-transfer.
    """
    other = tx.from_address if tx.type == TransactionType.INCOMING else tx.to_address
    if not other or other == UNKNOWN_ADDRESS or other == central_address:
        raise UnknownCounterpartyError(f"No counterparty for transaction {tx.hash}")
    return other


class GraphBuilder:
    """
    Turns a flat transaction list for one address into a typed node/edge graph.

    - Central node: exactly one per graph
    - Connected address nodes: one per counterparty, carrying aggregate totals
    - Transaction nodes: one per hash; self-transfers loop back to the central node
    """

    def __init__(self, classifier: Optional[AddressClassifierPort] = None) -> None:
        self.classifier = classifier

    def build(
        self,
        central_address: str,
        transactions: Iterable[AddressTransaction],
        balance: str,
        show_incoming: bool = True,
        show_outgoing: bool = True,
    ) -> Graph:
        filtered = _first_per_hash(
            tx for tx in transactions
            if (show_incoming or tx.type != TransactionType.INCOMING)
            and (show_outgoing or tx.type != TransactionType.OUTGOING)
        )

        # parse every amount first so a malformed one fails the whole build
        amounts: Dict[str, int] = {tx.hash: parse_amount(tx.amount) for tx in filtered}

        aggregates, total_in, total_out = self._aggregate(central_address, filtered, amounts)

        central_id = central_node_id(central_address)
        nodes: List[GraphNode] = [
            GraphNode(
                id=central_id,
                category=NodeCategory.CENTRAL_ADDRESS,
                data=CentralAddressData(
                    label=shorten_address(central_address),
                    full_label=central_address,
                    address=central_address,
                    balance=balance,
                    transaction_count=len(filtered),
                    total_incoming=str(total_in),
                    total_outgoing=str(total_out),
                ),
            )
        ]
        edges: List[GraphEdge] = []
        seen_counterparties: Set[str] = set()

        for tx in filtered:
            if is_self_transfer(tx, central_address):
                nodes.append(self._transaction_node(tx, NodeCategory.SELF_TRANSACTION))
                edges.extend(self._self_loop_edges(tx, central_id))
                continue

            try:
                other = resolve_counterparty(tx, central_address)
            except UnknownCounterpartyError as e:
                logger.debug(f"Skipping transaction: {e}")
                continue

            if other not in seen_counterparties:
                try:
                    nodes.append(self._connected_node(other, aggregates))
                except InternalInvariantViolation as e:
                    logger.warning(str(e))
                    continue
                seen_counterparties.add(other)

            category = (
                NodeCategory.INCOMING_TRANSACTION
                if tx.type == TransactionType.INCOMING
                else NodeCategory.OUTGOING_TRANSACTION
            )
            nodes.append(self._transaction_node(tx, category))
            edges.extend(self._flow_edges(tx, central_id, address_node_id(other)))

        logger.debug(
            f"Built graph for {central_address}: {len(nodes)} nodes, {len(edges)} edges "
            f"from {len(filtered)} transaction(s)"
        )
        return Graph(nodes=tuple(nodes), edges=tuple(edges))

    # -------------------------
    # Aggregation
    # -------------------------

    def _aggregate(
        self,
        central_address: str,
        transactions: List[AddressTransaction],
        amounts: Dict[str, int],
    ) -> Tuple[Dict[str, Aggregate], int, int]:
        aggregates: Dict[str, Aggregate] = {}
        total_in = 0
        total_out = 0

        for tx in transactions:
            if is_self_transfer(tx, central_address):
                continue
            try:
                other = resolve_counterparty(tx, central_address)
            except UnknownCounterpartyError:
                continue

            amount = amounts[tx.hash]
            existing = aggregates.get(other)
            if existing:
                existing.add(amount)
            else:
                # direction label sticks to the first transaction seen
                aggregates[other] = Aggregate(count=1, total_amount=amount, dominant_type=tx.type)

            if tx.type == TransactionType.INCOMING:
                total_in += amount
            else:
                total_out += amount

        return aggregates, total_in, total_out

    # -------------------------
    # Node / edge builders
    # -------------------------

    def _connected_node(self, address: str, aggregates: Dict[str, Aggregate]) -> GraphNode:
        info = aggregates.get(address)
        if info is None:
            raise InternalInvariantViolation(f"Address info not found for: {address}")

        return GraphNode(
            id=address_node_id(address),
            category=NodeCategory.CONNECTED_ADDRESS,
            data=ConnectedAddressData(
                label=shorten_address(address),
                full_label=address,
                address=address,
                transaction_count=info.count,
                total_amount=str(info.total_amount),
                dominant_type=info.dominant_type,
                is_contract=self._is_contract(address),
            ),
        )

    def _transaction_node(self, tx: AddressTransaction, category: NodeCategory) -> GraphNode:
        is_self = category == NodeCategory.SELF_TRANSACTION
        return GraphNode(
            id=transaction_node_id(tx.hash),
            category=category,
            data=TransactionData(
                label=transaction_label(tx.amount, is_self),
                hash=tx.hash,
                timestamp=tx.timestamp,
                amount=tx.amount,
                from_address=tx.from_address,
                to_address=tx.to_address,
                type=EdgeCategory.SELF if is_self else EdgeCategory(tx.type.value),
                is_self_transfer=is_self,
                confirmations=tx.confirmations,
                fee=tx.fee,
                token_transfer=tx.token_transfer,
            ),
        )

    @staticmethod
    def _self_loop_edges(tx: AddressTransaction, central_id: str) -> List[GraphEdge]:
        tx_id = transaction_node_id(tx.hash)
        return [
            GraphEdge(
                id=f"edge-self-{tx_id}",
                source=central_id,
                target=tx_id,
                category=EdgeCategory.SELF,
                amount=tx.amount,
                label=amount_label(tx.amount),
                hash=tx.hash,
            ),
            GraphEdge(
                id=f"edge-{tx_id}-self",
                source=tx_id,
                target=central_id,
                category=EdgeCategory.SELF,
                amount=tx.amount,
                hash=tx.hash,
            ),
        ]

    @staticmethod
    def _flow_edges(tx: AddressTransaction, central_id: str, addr_id: str) -> List[GraphEdge]:
        tx_id = transaction_node_id(tx.hash)
        label = amount_label(tx.amount)

        # only the leg touching the counterparty is labelled
        if tx.type == TransactionType.INCOMING:
            return [
                GraphEdge(
                    id=f"edge-{addr_id}-{tx_id}",
                    source=addr_id,
                    target=tx_id,
                    category=EdgeCategory.INCOMING,
                    amount=tx.amount,
                    label=label,
                    hash=tx.hash,
                ),
                GraphEdge(
                    id=f"edge-{tx_id}-central",
                    source=tx_id,
                    target=central_id,
                    category=EdgeCategory.INCOMING,
                    amount=tx.amount,
                    hash=tx.hash,
                ),
            ]

        return [
            GraphEdge(
                id=f"edge-central-{tx_id}",
                source=central_id,
                target=tx_id,
                category=EdgeCategory.OUTGOING,
                amount=tx.amount,
                hash=tx.hash,
            ),
            GraphEdge(
                id=f"edge-{tx_id}-{addr_id}",
                source=tx_id,
                target=addr_id,
                category=EdgeCategory.OUTGOING,
                amount=tx.amount,
                label=label,
                hash=tx.hash,
            ),
        ]

    # -------------------------
    # Helpers
    # -------------------------

    def _is_contract(self, address: str) -> bool:
        if self.classifier is None:
            return False

        # best-effort contract tagging
        try:
            return bool(self.classifier.is_contract(address))
        except FetchError as e:
            logger.warning(f"Contract check failed for {address}: {e}")
            return False
