from __future__ import annotations

import argparse
import datetime as dt
import sys
import time
from typing import Optional

from loguru import logger

from flowviz.config import settings
from flowviz.core.enums import LayoutDirection, NetworkType
from flowviz.core.errors import FetchError, InvalidAmountError, InvalidFilterError
from flowviz.core.models import FilterOptions
from flowviz.services.collapse import Visibility
from flowviz.services.flow_service import TransactionFlowService
from flowviz.io.output_writer import write_graph_json, write_summary_md
from flowviz.utils.formatting import shorten_address

from flowviz.adapters.alephium.explorer_adapter import AlephiumExplorerAdapter, SourceConfig
from flowviz.adapters.static_source_adapter import StaticTransactionSource


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="flowviz", description="Transaction flow graph for an Alephium address")
    p.add_argument("--address", required=True, help="Address to analyze")
    p.add_argument("--network", choices=[n.value for n in NetworkType], default=settings.NETWORK, help="Network to query")
    p.add_argument("--limit", type=int, default=settings.DEFAULT_TRANSACTION_LIMIT, help="Transactions to fetch (10-200)")
    p.add_argument("--depth", type=int, default=settings.DEFAULT_MAX_DEPTH, help="Max depth (1-5)")
    p.add_argument("--min-amount", type=str, default="0", help="Drop transactions below this amount (atomic units)")
    p.add_argument("--date-from", help="Keep transactions at or after this ISO date/time (UTC)")
    p.add_argument("--date-to", help="Keep transactions at or before this ISO date/time (UTC)")
    p.add_argument("--no-incoming", action="store_true", help="Exclude incoming transactions")
    p.add_argument("--no-outgoing", action="store_true", help="Exclude outgoing transactions")
    p.add_argument("--show-transactions", action="store_true", help="Keep transaction nodes instead of direct address edges")
    p.add_argument("--show-self", action="store_true", help="Keep self-transfer nodes")
    p.add_argument("--direction", choices=[d.value for d in LayoutDirection], default=LayoutDirection.LEFT_RIGHT.value)
    p.add_argument("--out", default="out", help="Output folder")
    p.add_argument("--use-static", metavar="FILE", help="Read transactions from a JSON fixture (dev/testing)")
    p.add_argument("--verbose", action="store_true", help="Debug logging")
    return p


def _iso_to_ms(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    ts = dt.datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=dt.timezone.utc)
    return int(ts.timestamp() * 1000)


def _make_progress_reporter(address: str):
    start_time = time.time()
    is_tty = sys.stdout.isatty()

    def _ts() -> str:
        return dt.datetime.now().strftime("%H:%M:%S")

    def _print_line(message: str) -> None:
        if is_tty:
            sys.stdout.write("\r" + message.ljust(88))
            sys.stdout.flush()
        else:
            print(message)

    def _clear_line() -> None:
        if is_tty:
            sys.stdout.write("\r" + (" " * 88) + "\r")
            sys.stdout.flush()

    def progress(event: str, data: dict) -> None:
        if event == "start":
            print(f"[{_ts()}] Analyzing {shorten_address(address)}")
            return
        if event == "fetch":
            _print_line(f"Fetching page {data.get('page', 1)} for {shorten_address(str(data.get('address', '')))}...")
            return
        if event == "fetch_done":
            _print_line(f"Fetched {data.get('count', 0)} transaction(s)")
            return
        if event == "done":
            _clear_line()
            elapsed = time.time() - start_time
            print(f"[{_ts()}] Done in {elapsed:.1f}s • {data['nodes']} nodes • {data['edges']} edges")
            return
        if event == "error":
            _clear_line()
            print(f"[{_ts()}] Error: {data.get('message', 'Unknown error')}", file=sys.stderr)

    return progress


def main(argv: Optional[list] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.verbose else "WARNING")

    progress = _make_progress_reporter(args.address)

    # Ports
    if args.use_static:
        source = StaticTransactionSource.from_json(args.use_static)
        adapter_label = "StaticTransactionSource (dev/testing)"
    else:
        source = AlephiumExplorerAdapter(SourceConfig(network=NetworkType(args.network)))
        adapter_label = f"AlephiumExplorerAdapter ({args.network})"

    if not source.validate_address(args.address):
        progress("error", {"message": f"Invalid address: {args.address}"})
        return 2

    try:
        filters = FilterOptions(
            max_depth=args.depth,
            transaction_limit=args.limit,
            min_amount=args.min_amount,
            date_from=_iso_to_ms(args.date_from),
            date_to=_iso_to_ms(args.date_to),
            show_incoming=not args.no_incoming,
            show_outgoing=not args.no_outgoing,
        ).validate()
    except (InvalidFilterError, ValueError) as exc:
        progress("error", {"message": str(exc)})
        return 2

    visibility = Visibility(
        show_incoming_transactions=args.show_transactions,
        show_outgoing_transactions=args.show_transactions,
        show_self_transactions=args.show_self,
    )

    svc = TransactionFlowService(
        source=source,
        classifier=source,
        direction=LayoutDirection(args.direction),
    )
    print(f"Adapter: {adapter_label}")
    try:
        result = svc.fetch_flow(args.address, filters, visibility, on_progress=progress)
    except (FetchError, InvalidAmountError) as exc:
        progress("error", {"message": f"{exc.__class__.__name__}: {exc}"})
        return 1

    # Outputs
    print("Writing outputs...")
    graph_path = write_graph_json(result, args.out)
    summary_path = write_summary_md(result, args.out)
    print(f"Wrote: {graph_path}")
    print(f"Wrote: {summary_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
