"""Command-line interface for brickco."""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from . import __version__
from .customers import CustomerDirectory
from .errors import BrickcoError
from .inventory import BrickInventory
from .ledger import StockLedger
from .reports import REPORTS, Reports
from .store import DATA_DIR_ENV, DataStore

SAMPLE_BRICKS = [
    {"name": "Red Clay Brick", "category": "clay", "price": 0.45, "stock": 5000, "minStockThreshold": 1000},
    {"name": "Fly Ash Brick", "category": "fly-ash", "price": 0.38, "stock": 3200, "minStockThreshold": 800},
    {"name": "Hollow Concrete Block", "category": "concrete", "price": 1.25, "stock": 900, "minStockThreshold": 250},
    {"name": "Fire Brick", "category": "refractory", "price": 2.10, "stock": 150, "minStockThreshold": 200},
]

SAMPLE_CUSTOMERS = [
    {"name": "Mason & Sons Builders", "email": "orders@masonsons.example", "phone": "+1 555 010 2030"},
    {"name": "Greenfield Homes", "email": "procurement@greenfield.example", "address": "12 Quarry Road"},
]


def get_store(args: argparse.Namespace) -> DataStore:
    """Get the DataStore for --data-dir (or the default location)."""
    return DataStore(Path(args.data_dir) if args.data_dir else None)


def cmd_init(args: argparse.Namespace) -> int:
    """Create the data file, optionally with sample data."""
    try:
        store = get_store(args)
        store.init(force=args.force)

        if args.seed:
            inventory = BrickInventory(store)
            for brick in SAMPLE_BRICKS:
                inventory.create_brick(brick)
            directory = CustomerDirectory(store)
            for customer in SAMPLE_CUSTOMERS:
                directory.create_customer(customer)

        print(f"Initialized brickco data at {store.data_path}")
        if args.seed:
            print(f"Seeded {len(SAMPLE_BRICKS)} bricks and {len(SAMPLE_CUSTOMERS)} customers")
        return 0

    except BrickcoError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_bricks(args: argparse.Namespace) -> int:
    """List bricks with their stock."""
    try:
        inventory = BrickInventory(get_store(args))
        bricks = inventory.low_stock_bricks() if args.low_stock else inventory.list_bricks()

        if args.json:
            print(json.dumps([b.to_dict() for b in bricks], indent=2))
            return 0

        if not bricks:
            print("No bricks found.")
            return 0

        print(f"Bricks ({len(bricks)}):")
        for b in bricks:
            flag = "  LOW" if b.is_low_stock else ""
            print(f"  {b.id[:8]}  {b.name:<28} stock={b.stock:<7} price={b.price}{flag}")
        return 0

    except BrickcoError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_stock_history(args: argparse.Namespace) -> int:
    """Show ledger entries."""
    try:
        entries = StockLedger(get_store(args)).entries(movement=args.type, source=args.source)
        if args.limit:
            entries = entries[-args.limit:]

        if args.json:
            print(json.dumps([e.to_dict() for e in entries], indent=2))
            return 0

        if not entries:
            print("No stock history.")
            return 0

        for e in entries:
            sign = "+" if e.delta > 0 else "-"
            name = e.brick_name or e.brick_id[:8]
            print(f"  {e.timestamp}  {sign}{e.quantity:<7} {name:<28} {e.source}")
        return 0

    except BrickcoError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_reconcile(args: argparse.Namespace) -> int:
    """Compare ledger balances with stock. Exit code 2 on drift."""
    try:
        discrepancies = StockLedger(get_store(args)).reconcile()

        if args.json:
            print(json.dumps({
                "consistent": not discrepancies,
                "discrepancies": [d.to_dict() for d in discrepancies],
            }, indent=2))
        elif not discrepancies:
            print("Stock and ledger are consistent.")
        else:
            print(f"Found {len(discrepancies)} brick(s) out of balance:")
            for d in discrepancies:
                name = d.brick_name or d.brick_id
                print(f"  {name}: stock={d.stock} ledger={d.ledger_balance} ({d.difference:+d})")

        return 2 if discrepancies else 0

    except BrickcoError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_export(args: argparse.Namespace) -> int:
    """Write a report as CSV (or JSON) to a file or stdout."""
    try:
        reports = Reports(get_store(args))
        if args.json:
            output = json.dumps(reports.rows(args.report), indent=2) + "\n"
        else:
            output = reports.csv(args.report)

        if args.output:
            Path(args.output).write_text(output, encoding="utf-8")
            print(f"Wrote {args.report} report to {args.output}")
        else:
            sys.stdout.write(output)
        return 0

    except BrickcoError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import uvicorn

        if args.data_dir:
            os.environ[DATA_DIR_ENV] = str(Path(args.data_dir).resolve())

        logging.basicConfig(
            level=getattr(logging, args.log_level.upper()),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        store = DataStore()
        if not store.exists():
            print("Warning: no data file yet. Run 'brickco init' to create one.", file=sys.stderr)
            print("Starting server anyway...", file=sys.stderr)

        print("Starting brickco API server...")
        print(f"Data: {store.data_path}")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        # When reload is enabled, uvicorn requires the app as an import string
        app_target = "brickco.api:app" if args.reload else None
        if app_target is None:
            from .api import app
            app_target = app

        uvicorn.run(
            app_target,
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=1,
            log_level=args.log_level,
        )
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="brickco",
        description="BrickCo back office: bricks, orders and the stock ledger.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--data-dir", help=f"Data directory (default: ${DATA_DIR_ENV} or ./data)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init
    init_parser = subparsers.add_parser("init", help="Create the data file")
    init_parser.add_argument(
        "--force", "-f", action="store_true", help="Overwrite existing data"
    )
    init_parser.add_argument(
        "--seed", action="store_true", help="Add sample bricks and customers"
    )

    # bricks
    bricks_parser = subparsers.add_parser("bricks", help="List bricks and stock")
    bricks_parser.add_argument(
        "--low-stock", action="store_true", help="Only bricks below their threshold"
    )
    bricks_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # stock-history
    history_parser = subparsers.add_parser("stock-history", help="Show the stock ledger")
    history_parser.add_argument("--type", "-t", help="credit/debit (or add/remove/added/deducted)")
    history_parser.add_argument("--source", "-s", help="Filter by source, e.g. order")
    history_parser.add_argument("--limit", "-n", type=int, help="Show only the last N entries")
    history_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # reconcile
    reconcile_parser = subparsers.add_parser(
        "reconcile", help="Check ledger balances against stock"
    )
    reconcile_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # export
    export_parser = subparsers.add_parser("export", help="Export a report")
    export_parser.add_argument("report", choices=sorted(REPORTS), help="Report to export")
    export_parser.add_argument("--output", "-o", help="Write to file instead of stdout")
    export_parser.add_argument("--json", action="store_true", help="JSON instead of CSV")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", "-p", type=int, default=3001, help="Port to bind to (default: 3001)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )
    serve_parser.add_argument(
        "--log-level", default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )

    return parser


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        "init": cmd_init,
        "bricks": cmd_bricks,
        "stock-history": cmd_stock_history,
        "reconcile": cmd_reconcile,
        "export": cmd_export,
        "serve": cmd_serve,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
