from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

import networkx as nx
from loguru import logger

from flowviz.config import settings
from flowviz.core.enums import LayoutDirection, NodeCategory
from flowviz.core.models import GraphEdge, GraphNode, Position, PositionedNode


# Graphviz sizes are inches, positions are points
_POINTS_PER_INCH = 72.0

# self-transfers keep the address box
_TRANSACTION_BOX = {NodeCategory.INCOMING_TRANSACTION, NodeCategory.OUTGOING_TRANSACTION}


def node_size(category: NodeCategory) -> Tuple[float, float]:
    if category in _TRANSACTION_BOX:
        return float(settings.TRANSACTION_NODE_WIDTH), float(settings.TRANSACTION_NODE_HEIGHT)
    return float(settings.NODE_WIDTH), float(settings.NODE_HEIGHT)


def _inches(value: float) -> str:
    return f"{value / _POINTS_PER_INCH:.4f}"


class LayeredLayout:
    """
    Layered drawing of a flow graph with Graphviz ``dot``.

    - dot does cycle breaking, ranking, crossing reduction and coordinates
    - nodes are fixed-size boxes, one layout unit per point
    - output origin is top-left, y grows downwards
    """

    def __init__(
        self,
        direction: LayoutDirection = LayoutDirection.LEFT_RIGHT,
        nodesep: float = settings.LAYOUT_NODESEP,
        ranksep: float = settings.LAYOUT_RANKSEP,
        prog: str = settings.LAYOUT_PROG,
    ) -> None:
        self.direction = LayoutDirection(direction)
        self.nodesep = float(nodesep)
        self.ranksep = float(ranksep)
        self.prog = prog

    def layout(self, nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]) -> List[PositionedNode]:
        centers = self.compute(nodes, edges)
        out: List[PositionedNode] = []
        for n in nodes:
            w, h = node_size(n.category)
            cx, cy = centers[n.id]
            out.append(PositionedNode(node=n, position=Position(x=cx - w / 2, y=cy - h / 2), width=w, height=h))
        return out

    def compute(self, nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]) -> Dict[str, Tuple[float, float]]:
        """Return the center point of every node."""
        if not nodes:
            return {}

        g = self._to_graph(nodes, edges)
        raw = nx.nx_agraph.graphviz_layout(g, prog=self.prog)

        # flip dot's y-up points, then move the drawing to the origin
        sizes = {n.id: node_size(n.category) for n in nodes}
        left = min(raw[v][0] - sizes[v][0] / 2 for v in sizes)
        top = min(-raw[v][1] - sizes[v][1] / 2 for v in sizes)
        centers = {v: (raw[v][0] - left, -raw[v][1] - top) for v in sizes}

        logger.debug(f"Layout {self.direction.value}: {len(nodes)} node(s), {g.number_of_edges()} edge(s)")
        return centers

    def _to_graph(self, nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]) -> nx.MultiDiGraph:
        g = nx.MultiDiGraph()
        g.graph["graph"] = {
            "rankdir": self.direction.value,
            "nodesep": _inches(self.nodesep),
            "ranksep": _inches(self.ranksep),
        }
        g.graph["node"] = {"shape": "box", "fixedsize": "true"}

        for n in nodes:
            w, h = node_size(n.category)
            g.add_node(n.id, width=_inches(w), height=_inches(h))
        for e in edges:
            # dangling edges would make dot invent nodes
            if e.source in g and e.target in g:
                g.add_edge(e.source, e.target)
        return g


def layout(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    direction: LayoutDirection = LayoutDirection.LEFT_RIGHT,
) -> List[PositionedNode]:
    return LayeredLayout(direction=direction).layout(nodes, edges)
