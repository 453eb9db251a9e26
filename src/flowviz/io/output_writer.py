from __future__ import annotations

import json
from pathlib import Path
from typing import List

from flowviz.core.enums import NodeCategory
from flowviz.core.models import ConnectedAddressData
from flowviz.io.schemas import graph_to_dict
from flowviz.services.flow_service import FlowResult
from flowviz.utils.formatting import format_alph_amount, format_timestamp


def write_graph_json(result: FlowResult, out_dir: str, filename: str = "graph.json") -> str:
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename
    payload = {
        "address": result.address,
        "graph": graph_to_dict(result.graph),
        "view": graph_to_dict(result.view, result.layout),
    }
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    return str(out_path)


def write_summary_md(result: FlowResult, out_dir: str, filename: str = "summary.md", top: int = 10) -> str:
    """
    Short per-address report: balance, flow totals and the largest counterparties.
    """
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)
    out_path = p / filename

    stats = result.statistics
    counterparties: List[ConnectedAddressData] = [
        n.data for n in result.graph.nodes
        if n.category == NodeCategory.CONNECTED_ADDRESS and isinstance(n.data, ConnectedAddressData)
    ]
    counterparties.sort(key=lambda d: int(d.total_amount), reverse=True)

    lines = []
    lines.append("# Transaction Flow Summary\n")
    lines.append(f"- Address: **{result.address}**\n")
    lines.append(f"- Balance: **{format_alph_amount(stats.balance)} ALPH**\n")
    lines.append(f"- Transactions: **{len(result.transactions)}** "
                 f"({stats.incoming_count} in / {stats.outgoing_count} out)\n")
    lines.append(f"- Total incoming: **{format_alph_amount(stats.total_incoming)} ALPH**\n")
    lines.append(f"- Total outgoing: **{format_alph_amount(stats.total_outgoing)} ALPH**\n")
    net = stats.net_flow
    sign = "-" if net < 0 else ""
    lines.append(f"- Net flow: **{sign}{format_alph_amount(abs(net))} ALPH**\n")
    lines.append(f"- Counterparties: **{stats.unique_counterparties}**\n")
    lines.append("\n")

    lines.append(f"## Top {top} Counterparties (by amount)\n\n")
    if not counterparties:
        lines.append("_No counterparties found for the selected filters._\n\n")
    else:
        for d in counterparties[:top]:
            kind = " (contract)" if d.is_contract else ""
            lines.append(
                f"- **{format_alph_amount(d.total_amount)} ALPH** | {d.transaction_count} tx | "
                f"{d.dominant_type.value} | {d.address}{kind}\n"
            )
        lines.append("\n")

    if result.transactions:
        first = min(tx.timestamp for tx in result.transactions)
        last = max(tx.timestamp for tx in result.transactions)
        lines.append("## Window\n\n")
        lines.append(f"- From: {format_timestamp(first)}\n")
        lines.append(f"- To: {format_timestamp(last)}\n")

    out_path.write_text("".join(lines), encoding="utf-8")
    return str(out_path)
