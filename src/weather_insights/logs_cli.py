"""Logs CLI: browse stored samples page by page or list known cities."""

from __future__ import annotations

import argparse
import sys
from datetime import UTC

from rich.console import Console
from rich.table import Table

from .config import load_settings
from .exceptions import ConfigError, StoreError
from .log_setup import setup_logger
from .models import SamplePage
from .store import JsonlSampleStore


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse logs CLI arguments."""
    parser = argparse.ArgumentParser(description="List collected weather samples.")
    parser.add_argument("--city", default=None, help="Case-insensitive city filter.")
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument("--limit", type=int, default=10)
    parser.add_argument(
        "--cities",
        action="store_true",
        help="Print the distinct city names instead of samples.",
    )
    return parser.parse_args(argv)


def _fmt(value: float | None) -> str:
    return f"{value:.1f}" if value is not None else "-"


def _print_page(console: Console, page: SamplePage) -> None:
    console.print(
        f"total={page.total} page={page.page}/{page.total_pages} limit={page.limit}"
    )
    if not page.items:
        console.print("No samples found.")
        return
    table = Table(title="Weather Samples")
    table.add_column("City", overflow="fold")
    table.add_column("Collected (UTC)")
    table.add_column("Temp (C)")
    table.add_column("Humidity (%)")
    table.add_column("Wind (km/h)")
    table.add_column("Condition", overflow="fold")
    table.add_column("Source")
    for sample in page.items:
        table.add_row(
            sample.city,
            sample.collected_at.astimezone(UTC).isoformat(),
            _fmt(sample.temperature_c),
            _fmt(sample.humidity_percent),
            _fmt(sample.wind_speed_kmh),
            sample.condition or "-",
            sample.source,
        )
    console.print(table)


def main(argv: list[str] | None = None) -> int:
    """Print one page of samples or the distinct city list."""
    args = parse_args(argv)
    logger = setup_logger()
    console = Console()

    if args.page <= 0 or args.limit <= 0:
        logger.error("--page and --limit must be > 0.")
        return 2
    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("Configuration failure: %s", exc)
        return 2

    store = JsonlSampleStore(settings.samples_path)
    try:
        if args.cities:
            cities = store.distinct_cities()
            if not cities:
                console.print("No cities recorded yet.")
            for city in cities:
                console.print(city)
        else:
            _print_page(console, store.query_page(args.city, page=args.page, limit=args.limit))
    except StoreError as exc:
        logger.error("Failed reading samples: %s", exc)
        return 4
    return 0


if __name__ == "__main__":
    sys.exit(main())
