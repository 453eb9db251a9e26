from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, DefaultDict, Dict, Iterable, List, Optional, Sequence, Set

from loguru import logger

from flowviz.core.enums import NodeCategory
from flowviz.core.models import Graph, GraphEdge, GraphNode


VisibilityPredicate = Callable[[NodeCategory], bool]


@dataclass(frozen=True)
class Visibility:
    """
    Live view toggles over node categories. The central node is always shown.

    Defaults match the address-to-address overview: transaction nodes and
    self-transfers hidden, their flows rewired onto the addresses.
    """

    show_incoming_transactions: bool = False
    show_outgoing_transactions: bool = False
    show_self_transactions: bool = False
    show_connected_addresses: bool = True

    def __call__(self, category: NodeCategory) -> bool:
        if category == NodeCategory.CENTRAL_ADDRESS:
            return True
        if category == NodeCategory.CONNECTED_ADDRESS:
            return self.show_connected_addresses
        if category == NodeCategory.INCOMING_TRANSACTION:
            return self.show_incoming_transactions
        if category == NodeCategory.OUTGOING_TRANSACTION:
            return self.show_outgoing_transactions
        if category == NodeCategory.SELF_TRANSACTION:
            return self.show_self_transactions
        raise ValueError(f"Unhandled node category: {category}")

    @classmethod
    def all_visible(cls) -> "Visibility":
        return cls(True, True, True, True)


def synthesize_edge(in_edge: GraphEdge, out_edge: GraphEdge, removed_id: str) -> GraphEdge:
    """Merge the two legs around a removed node into one direct edge."""
    label = out_edge.label or in_edge.label
    amount = out_edge.amount or in_edge.amount
    return GraphEdge(
        id=f"{in_edge.source}->{out_edge.target}::via::{removed_id}::{label or amount}",
        source=in_edge.source,
        target=out_edge.target,
        category=out_edge.category or in_edge.category,
        amount=amount,
        label=label,
        hash=out_edge.hash or in_edge.hash,
    )


def _dedupe(edges: Iterable[GraphEdge]) -> List[GraphEdge]:
    # later entries win on id collision
    by_id: Dict[str, GraphEdge] = {}
    for e in edges:
        by_id[e.id] = e
    return list(by_id.values())


def collapse(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    is_visible: VisibilityPredicate,
) -> Graph:
    """
    Drop nodes whose category is hidden and reconnect flows through them.

    Each removed node's inbound edges (from kept nodes) are crossed with its
    outbound edges (to kept nodes). Only single-hop paths are rewired; a path
    through two consecutive removed nodes is dropped, see collapse_until_stable.
    """
    kept = [n for n in nodes if is_visible(n.category)]
    kept_ids: Set[str] = {n.id for n in kept}
    removed_ids: List[str] = [n.id for n in nodes if n.id not in kept_ids]
    removed_set = set(removed_ids)

    passthrough: List[GraphEdge] = []
    incoming_to_removed: DefaultDict[str, List[GraphEdge]] = defaultdict(list)
    outgoing_from_removed: DefaultDict[str, List[GraphEdge]] = defaultdict(list)

    for e in edges:
        source_removed = e.source in removed_set
        target_removed = e.target in removed_set
        if e.source in kept_ids and e.target in kept_ids:
            passthrough.append(e)
        elif not source_removed and target_removed:
            incoming_to_removed[e.target].append(e)
        elif source_removed and not target_removed:
            outgoing_from_removed[e.source].append(e)

    rewired: List[GraphEdge] = []
    for removed_id in removed_ids:
        for in_edge in incoming_to_removed.get(removed_id, []):
            for out_edge in outgoing_from_removed.get(removed_id, []):
                if in_edge.source not in kept_ids or out_edge.target not in kept_ids:
                    continue
                rewired.append(synthesize_edge(in_edge, out_edge, removed_id))

    out_edges = _dedupe(passthrough + rewired)
    logger.debug(
        f"Collapsed {len(removed_ids)} node(s): {len(passthrough)} passthrough + "
        f"{len(rewired)} rewired -> {len(out_edges)} edge(s)"
    )
    return Graph(nodes=tuple(kept), edges=tuple(out_edges))


def collapse_until_stable(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    is_visible: VisibilityPredicate,
) -> Graph:
    """
    Like collapse, but also rewires chains of consecutive hidden nodes.

    Hidden nodes are eliminated one at a time with the same rewiring rule, so
    after each step no edge touches an eliminated node and paths through the
    remaining hidden nodes are still intact.
    """
    current: List[GraphEdge] = list(edges)
    hidden = [n for n in nodes if not is_visible(n.category)]

    for node in hidden:
        ins = [e for e in current if e.target == node.id and e.source != node.id]
        outs = [e for e in current if e.source == node.id and e.target != node.id]
        rest = [e for e in current if e.source != node.id and e.target != node.id]
        current = _dedupe(rest + [synthesize_edge(i, o, node.id) for i in ins for o in outs])

    kept = tuple(n for n in nodes if is_visible(n.category))
    return Graph(nodes=kept, edges=tuple(current))


@lru_cache(maxsize=32)
def collapse_graph(graph: Graph, visibility: Optional[Visibility] = None, transitive: bool = False) -> Graph:
    """Memoized view of ``graph`` under ``visibility``."""
    vis = visibility or Visibility()
    fn = collapse_until_stable if transitive else collapse
    return fn(graph.nodes, graph.edges, vis)
