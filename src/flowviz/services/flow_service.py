from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Iterable, List, Optional, Set, Tuple

from loguru import logger

from flowviz.config import settings
from flowviz.core.dto import UNKNOWN_ADDRESS, AddressBalance, AddressTransaction
from flowviz.core.enums import LayoutDirection, TransactionType
from flowviz.core.models import FilterOptions, FlowStatistics, Graph, PositionedNode
from flowviz.ports.address_classifier_port import AddressClassifierPort
from flowviz.ports.transaction_source_port import TransactionSourcePort
from flowviz.services.collapse import Visibility, collapse_graph
from flowviz.services.graph_builder import GraphBuilder
from flowviz.services.layout import LayeredLayout
from flowviz.utils.formatting import parse_amount


ProgressFn = Callable[[str, dict], None]


@dataclass(frozen=True)
class FlowResult:
    address: str
    filters: FilterOptions
    visibility: Visibility
    balance: AddressBalance
    transactions: Tuple[AddressTransaction, ...]
    graph: Graph
    view: Graph
    layout: Tuple[PositionedNode, ...]
    statistics: FlowStatistics
    generation: int


def compute_statistics(transactions: Iterable[AddressTransaction], balance: str) -> FlowStatistics:
    in_count = out_count = 0
    total_in = total_out = 0
    counterparties: Set[str] = set()

    for tx in transactions:
        amount = parse_amount(tx.amount)
        if tx.type == TransactionType.INCOMING:
            in_count += 1
            total_in += amount
            other = tx.from_address
        else:
            out_count += 1
            total_out += amount
            other = tx.to_address
        # self-transfers have no counterparty
        if other and other != UNKNOWN_ADDRESS and tx.from_address != tx.to_address:
            counterparties.add(other)

    return FlowStatistics(
        incoming_count=in_count,
        outgoing_count=out_count,
        total_incoming=total_in,
        total_outgoing=total_out,
        net_flow=total_in - total_out,
        unique_counterparties=len(counterparties),
        balance=balance,
    )


def apply_filters(transactions: List[AddressTransaction], filters: FilterOptions) -> List[AddressTransaction]:
    """Post-fetch filtering: limit, minimum amount, then date window (ms)."""
    out = list(transactions[: int(filters.transaction_limit)])

    min_amount = parse_amount(filters.min_amount or "0")
    if min_amount > 0:
        out = [tx for tx in out if parse_amount(tx.amount) >= min_amount]
    if filters.date_from is not None:
        out = [tx for tx in out if tx.timestamp >= filters.date_from]
    if filters.date_to is not None:
        out = [tx for tx in out if tx.timestamp <= filters.date_to]
    return out


class TransactionFlowService:
    """
    Fetch -> filter -> build -> collapse -> layout, for one address at a time.

    A result is published to ``current`` only if no newer fetch started while it
    was being computed; failures leave ``current`` as it was.
    """

    def __init__(
        self,
        source: TransactionSourcePort,
        classifier: Optional[AddressClassifierPort] = None,
        direction: LayoutDirection = LayoutDirection.LEFT_RIGHT,
        transitive_collapse: bool = False,
    ) -> None:
        self.source = source
        self.builder = GraphBuilder(classifier)
        self.layout_engine = LayeredLayout(direction=direction)
        self.transitive_collapse = transitive_collapse

        self.current: Optional[FlowResult] = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def fetch_all_transactions(
        self,
        address: str,
        limit: int,
        on_progress: Optional[ProgressFn] = None,
    ) -> List[AddressTransaction]:
        page_size = min(settings.MAX_PAGE_SIZE, max(1, int(limit)))
        page = 1
        out: List[AddressTransaction] = []

        while len(out) < limit:
            if on_progress:
                on_progress("fetch", {"address": address, "page": page})
            txs = self.source.get_transactions(address, page, page_size).transactions
            out.extend(txs)
            logger.debug(f"Page {page} for {address}: {len(txs)} transaction(s)")
            if len(txs) < page_size:
                break
            page += 1

        if on_progress:
            on_progress("fetch_done", {"address": address, "count": len(out)})
        return out[:limit]

    def fetch_flow(
        self,
        address: str,
        filters: Optional[FilterOptions] = None,
        visibility: Optional[Visibility] = None,
        on_progress: Optional[ProgressFn] = None,
    ) -> FlowResult:
        filters = (filters or FilterOptions()).validate()
        visibility = visibility or Visibility()

        self._generation += 1
        generation = self._generation
        if on_progress:
            on_progress("start", {"address": address, "generation": generation})

        balance = self.source.get_balance(address)
        txs = self.fetch_all_transactions(address, filters.transaction_limit, on_progress)
        txs = apply_filters(txs, filters)

        graph = self.builder.build(
            address,
            txs,
            balance.balance,
            show_incoming=filters.show_incoming,
            show_outgoing=filters.show_outgoing,
        )
        view, positioned = self._render(graph, visibility)

        result = FlowResult(
            address=address,
            filters=filters,
            visibility=visibility,
            balance=balance,
            transactions=tuple(txs),
            graph=graph,
            view=view,
            layout=positioned,
            statistics=compute_statistics(txs, balance.balance),
            generation=generation,
        )
        self._publish(result)
        if on_progress:
            on_progress("done", {"nodes": len(view.nodes), "edges": len(view.edges)})
        return result

    def apply_visibility(self, visibility: Visibility) -> Optional[FlowResult]:
        """Recompute the collapsed view and layout of the current graph."""
        if self.current is None:
            return None
        view, positioned = self._render(self.current.graph, visibility)
        self.current = replace(self.current, visibility=visibility, view=view, layout=positioned)
        return self.current

    def refresh(self, on_progress: Optional[ProgressFn] = None) -> Optional[FlowResult]:
        if self.current is None:
            return None
        return self.fetch_flow(
            self.current.address,
            self.current.filters,
            self.current.visibility,
            on_progress=on_progress,
        )

    def clear(self) -> None:
        self.current = None
        # in-flight results from before the clear must not publish
        self._generation += 1

    # -------------------------
    # Helpers
    # -------------------------

    def _render(self, graph: Graph, visibility: Visibility) -> Tuple[Graph, Tuple[PositionedNode, ...]]:
        view = collapse_graph(graph, visibility, self.transitive_collapse)
        return view, tuple(self.layout_engine.layout(view.nodes, view.edges))

    def _publish(self, result: FlowResult) -> None:
        if result.generation != self._generation:
            logger.info(
                f"Discarding stale result for {result.address} "
                f"(generation {result.generation}, current {self._generation})"
            )
            return
        self.current = result
        logger.info(
            f"Flow for {result.address}: {len(result.graph.nodes)} nodes, "
            f"{len(result.graph.edges)} edges ({len(result.view.edges)} shown)"
        )
