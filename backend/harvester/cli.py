"""Command-line harvester.

Harvests one or more storefronts and writes timestamped result files.

Usage:
    storeharvest https://shop.example.com
    storeharvest https://shop.example.com --kind collections --format csv
    storeharvest https://shop.example.com --category Shoes --category Hats
    storeharvest https://shop.example.com --collection 42
    storeharvest https://a.example.com https://b.example.com --output-dir results
    storeharvest https://shop.example.com --detect-only
"""

import argparse
import asyncio
import signal
import sys
from decimal import Decimal
from typing import Callable, List, Optional

from harvester.config import settings
from harvester.core.exceptions import HarvesterException
from harvester.core.logging import configure_logging
from harvester.scrapers.base import Collection, HarvestKind, HarvestOptions, HarvestResult, Product
from harvester.scrapers.harvest_service import HarvestService
from harvester.scrapers.session import HarvestSession
from harvester.services.export_service import EXPORT_FORMATS, ExportService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storeharvest",
        description="Harvest products or collections from WooCommerce and Shopify storefronts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  storeharvest https://shop.example.com
  storeharvest https://shop.example.com --kind collections --format csv
  storeharvest https://shop.example.com --category Shoes --limit 5
        """,
    )

    parser.add_argument("origins", nargs="+", help="Storefront URL(s)")

    parser.add_argument(
        "--kind",
        choices=[k.value for k in HarvestKind],
        default=HarvestKind.PRODUCTS.value,
        help="What to harvest (default: products)",
    )

    parser.add_argument(
        "--category",
        action="append",
        default=[],
        help="Keep only records in this category (case-insensitive, repeatable)",
    )

    parser.add_argument(
        "--collection",
        help="Harvest only the products of one category id (WooCommerce) or handle (Shopify)",
    )

    parser.add_argument(
        "--format",
        choices=EXPORT_FORMATS,
        default="json",
        help="Result file format (default: json)",
    )

    parser.add_argument(
        "--output-dir",
        default=None,
        help=f"Directory for result files (default: {settings.RESULTS_DIR})",
    )

    parser.add_argument(
        "--no-write",
        action="store_true",
        help="Print the summary only, do not write result files",
    )

    parser.add_argument(
        "--delay-ms",
        type=int,
        default=None,
        help=f"Politeness delay between pages (default: {settings.POLITENESS_DELAY_MS})",
    )

    parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum number of records to display (default: 10)",
    )

    parser.add_argument(
        "--detect-only",
        action="store_true",
        help="Only detect the platform and check configured credentials",
    )

    parser.add_argument("--log-level", default=None, help="Log level (default: LOG_LEVEL)")

    return parser


def _print_progress(accumulated: int, total: Optional[int]) -> None:
    if total:
        print(f"\r   ⏳ {accumulated}/{total} records", end="", flush=True)
    else:
        print(f"\r   ⏳ {accumulated} records", end="", flush=True)


def _format_price(price: Optional[Decimal]) -> str:
    return f"{price:,.2f}" if price is not None else "-"


def print_result(result: HarvestResult, limit: int) -> None:
    """Print a human-readable summary of one harvest."""
    print(f"\n{'='*70}")
    print(f"  {result.origin}")
    print(f"{'='*70}")
    print(f"  🛒 Platform: {result.platform.value}")
    print(f"  🔌 Endpoint: {result.endpoint} ({result.shape.value if result.shape else '-'})")
    if result.fallback_attempts:
        print(f"  ↪️  Fallbacks: {result.fallback_attempts}")
        for attempt in result.attempts:
            print(f"    - {attempt.endpoint}: {attempt.reason}")
    print(f"  📄 Pages: {result.pages_fetched}")
    print(f"  📦 {result.kind.value.title()}: {len(result.items)}")
    if result.skipped:
        print(f"  ⚠️  Skipped malformed records: {result.skipped}")
    for error in result.errors:
        print(f"  ⚠️  Page {error.page} of {error.endpoint} failed: {error.reason}")
    if result.cancelled:
        print("  🛑 Cancelled: partial result")
    print(f"{'='*70}\n")

    for i, record in enumerate(result.items[:limit], 1):
        print(f"[{i}] {record.name}")
        if isinstance(record, Product):
            print(f"    💰 Price: {_format_price(record.price)}")
            if record.sale_price is not None:
                print(f"    🔖 Regular: {_format_price(record.regular_price)}")
            if record.categories:
                print(f"    📁 Categories: {', '.join(record.categories)}")
        else:
            print(f"    📦 Products: {record.product_count}")
        if record.url:
            print(f"    🔗 URL: {record.url[:80]}")
        print()


async def run(
    args: argparse.Namespace,
    session_factory: Optional[Callable[[], HarvestSession]] = None,
) -> int:
    """Run the harvests described by parsed CLI arguments.

    Returns:
        Process exit code: 0 if every origin produced a result, 1 otherwise
    """
    if session_factory is None:

        def session_factory() -> HarvestSession:
            return HarvestSession(delay_ms=args.delay_ms)

    if args.detect_only:
        return await _run_detect(args, session_factory)

    cancel_event = asyncio.Event()
    handler_installed = _install_cancel_handler(cancel_event)

    kind = HarvestKind(args.kind)
    collection = None
    if args.collection:
        kind = HarvestKind.PRODUCTS
        collection = Collection(id=args.collection, name=args.collection, slug=args.collection)

    options = HarvestOptions(
        category_filter=tuple(args.category),
        collection=collection,
        cancel_event=cancel_event,
        progress_callback=_print_progress if len(args.origins) == 1 else None,
    )

    print(f"\n🔍 Harvesting {kind.value} from {len(args.origins)} origin(s)...")

    try:
        async with HarvestService(session_factory(), session_factory=session_factory) as service:
            if len(args.origins) == 1:
                outcomes = {args.origins[0]: await _harvest_one(service, args.origins[0], kind, options)}
            else:
                outcomes = await service.harvest_many(args.origins, kind, options)
    finally:
        if handler_installed:
            asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)
    print()

    exporter = ExportService(args.output_dir)
    exit_code = 0
    for origin, outcome in outcomes.items():
        if isinstance(outcome, HarvesterException):
            print(f"\n❌ {origin}: {outcome.message}")
            exit_code = 1
            continue

        print_result(outcome, args.limit)
        if not args.no_write:
            path = exporter.write(outcome, args.format)
            print(f"💾 Wrote {len(outcome.items)} records → {path}")

    return exit_code


async def _harvest_one(service: HarvestService, origin: str, kind: HarvestKind, options: HarvestOptions):
    try:
        return await service.harvest(origin, kind, options)
    except HarvesterException as e:
        return e


async def _run_detect(args, session_factory) -> int:
    exit_code = 0
    async with HarvestService(session_factory(), session_factory=session_factory) as service:
        for origin in args.origins:
            try:
                validation = await service.validate_site(origin)
            except HarvesterException as e:
                print(f"❌ {origin}: {e.message}")
                exit_code = 1
                continue

            icon = "✅" if validation.supported else "❌"
            print(f"{icon} {validation.origin}: {validation.platform.value}")
            if validation.rest_api_authorized is not None:
                print(f"   🔑 REST API authorized: {validation.rest_api_authorized}")
            if validation.message:
                print(f"   {validation.message}")
            if not validation.supported:
                exit_code = 1
    return exit_code


def _install_cancel_handler(cancel_event: asyncio.Event) -> bool:
    """Turn Ctrl+C into a cooperative cancel so partial results are still written."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    except (NotImplementedError, RuntimeError, ValueError):
        # Windows event loops and non-main threads; Ctrl+C then aborts outright
        return False
    return True


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments and run the harvester."""
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
