from __future__ import annotations

from dataclasses import asdict
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from flowviz.core.models import Graph, GraphEdge, GraphNode, PositionedNode


def _plain(value: Any) -> Any:
    # enums by value; amounts are already strings for JSON precision safety
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


def node_to_dict(n: GraphNode) -> Dict[str, Any]:
    return {
        "id": n.id,
        "type": n.category.value,
        "data": _plain(asdict(n.data)),
    }


def edge_to_dict(e: GraphEdge) -> Dict[str, Any]:
    return {
        "id": e.id,
        "source": e.source,
        "target": e.target,
        "data": {
            "type": e.category.value,
            "amount": e.amount,
            "label": e.label,
            "hash": e.hash,
        },
    }


def graph_to_dict(g: Graph, layout: Optional[Iterable[PositionedNode]] = None) -> Dict[str, Any]:
    positions = {p.node.id: p for p in (layout or [])}
    nodes = []
    for n in g.nodes:
        d = node_to_dict(n)
        p = positions.get(n.id)
        if p is not None:
            d["position"] = {"x": p.position.x, "y": p.position.y}
            d["width"] = p.width
            d["height"] = p.height
        nodes.append(d)

    return {
        "nodes": nodes,
        "edges": [edge_to_dict(e) for e in g.edges],
    }
