"""Command-line interface for the catalog sync."""

import argparse
import json
import logging
from typing import Any, List, Optional

from catalog_sync.config import DATASET_PATH, DB_PATH, DEFAULT_MAX_PRODUCTS, RunConfig
from catalog_sync.csv_utils import export_cache_to_csv
from catalog_sync.db import CacheRepository
from catalog_sync.html_utils import DESCRIPTION_STRATEGIES
from catalog_sync.logging_config import setup_logging
from catalog_sync.modes import ModeController, RunSummary
from catalog_sync.sink import DatasetSink

__all__ = ["main", "parse_args", "build_config", "show_stats"]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Jula product catalog sync: sitemap discovery, scraping and a local cache",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scrape up to 5 wall mounts and cache them
  python -m catalog_sync.cli --keyword veggfeste --max-products 5

  # Only fetch pages that are not cached yet
  python -m catalog_sync.cli --keyword veggfeste --update-only

  # Every matching product, no cap
  python -m catalog_sync.cli --category verktoy --full-index

  # Answer from the cache without any network access
  python -m catalog_sync.cli --keyword veggfeste --search-only

  # Run with an input document ({"keyword": ..., "maxProducts": ...})
  python -m catalog_sync.cli --input input.json

  # Show cache statistics / export the cache
  python -m catalog_sync.cli --stats
  python -m catalog_sync.cli --export-csv data/catalog.csv
        """,
    )

    # Run input
    parser.add_argument("--input", metavar="PATH",
                        help="JSON input document; flags below override its values")
    parser.add_argument("--keyword", help="Keyword to match in product URLs (or cached text)")
    parser.add_argument("--max-products", type=int,
                        help=f"Maximum products per run (default: {DEFAULT_MAX_PRODUCTS})")
    parser.add_argument("--category", help="Category substring to match in product URLs")

    # Mode flags
    parser.add_argument("--full-index", action="store_true",
                        help="Scrape every matching product (no cap)")
    parser.add_argument("--update-only", action="store_true",
                        help="Skip products already in the cache; always updates the cache")
    parser.add_argument("--search-only", action="store_true",
                        help="Search the cache only; no network access")
    parser.add_argument("--no-cache", action="store_true",
                        help="Don't merge scraped products into the cache")
    parser.add_argument("--description-strategy", choices=sorted(DESCRIPTION_STRATEGIES),
                        help="How to build the description (default: paragraphs)")

    # Storage
    parser.add_argument("--db", default=DB_PATH, help=f"SQLite cache path (default: {DB_PATH})")
    parser.add_argument("--output", default=DATASET_PATH,
                        help=f"JSONL dataset to append results to (default: {DATASET_PATH})")

    # Info / maintenance commands
    parser.add_argument("--stats", action="store_true", help="Show cache statistics and exit")
    parser.add_argument("--export-csv", metavar="PATH", help="Export the cache to CSV and exit")
    parser.add_argument("--clear-cache", action="store_true", help="Empty the product cache and exit")

    # Logging
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug output on the console")
    parser.add_argument("--no-log-file", action="store_true", help="Don't write the JSONL log file")

    return parser.parse_args(argv)


def _load_input(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        # Not JSON: treat the whole file as a bare keyword
        return text.strip()


def build_config(args: argparse.Namespace) -> RunConfig:
    """Combine the optional input document with command-line flags."""
    config = RunConfig.from_input(_load_input(args.input) if args.input else {})

    if args.keyword is not None:
        config.keyword = args.keyword.strip()
    if args.max_products is not None and args.max_products > 0:
        config.max_products = args.max_products
    if args.category is not None:
        config.category = args.category.strip()
    if args.full_index:
        config.full_index = True
    if args.update_only:
        config.update_only = True
    if args.search_only:
        config.search_only = True
    if args.no_cache:
        config.save_to_cache = False
    if args.description_strategy:
        config.description_strategy = args.description_strategy
    return config


def show_stats(db_path: str) -> None:
    """Display cache statistics."""
    repository = CacheRepository.open(db_path)
    metadata = repository.get_metadata()

    print(f"\n{'='*50}")
    print(f"Cache: {db_path}")
    print(f"{'='*50}")
    print(f"\nTotal products: {repository.count()}")
    if metadata:
        print(f"Last updated: {metadata.last_updated}")
        print(f"Scraped in last run: {metadata.last_run_scraped}")
    else:
        print("No sync history yet")
    print()


def print_summary(summary: RunSummary, output: str) -> None:
    print(f"\n=== DONE ({summary.mode.value}) ===")
    if summary.discovered:
        print(f"Discovered URLs: {summary.discovered}")
    print(f"Selected: {summary.selected}")
    print(f"Products in batch: {len(summary.records)}")
    if summary.failed:
        print(f"Failed: {summary.failed}")
    if summary.metadata:
        print(f"Cache now holds {summary.metadata.total_products} products")
    print(f"Results appended to: {output}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    args = parse_args(argv)
    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_to_file=not args.no_log_file,
    )

    if args.stats:
        show_stats(args.db)
        return 0

    if args.export_csv:
        export_cache_to_csv(args.db, args.export_csv)
        return 0

    if args.clear_cache:
        CacheRepository.open(args.db).clear()
        print(f"Cleared product cache in {args.db}")
        return 0

    config = build_config(args)
    controller = ModeController(
        config,
        repository=CacheRepository.open(args.db),
        sink=DatasetSink(args.output),
    )
    summary = controller.run()
    print_summary(summary, args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
