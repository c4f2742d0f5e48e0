"""Locations CLI: manage monitored locations and the global interval."""

from __future__ import annotations

import argparse
import sys

from rich.console import Console
from rich.table import Table

from .config import load_settings
from .exceptions import ConfigError, StoreError
from .log_setup import setup_logger
from .models import Location
from .store import CollectorConfigStore, JsonLocationDirectory


def _active_flag(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise argparse.ArgumentTypeError(f"expected a boolean, got {value!r}")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse locations CLI arguments."""
    parser = argparse.ArgumentParser(description="Manage monitored weather locations.")
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Add a monitored location.")
    add.add_argument("name")
    add.add_argument("--lat", type=float, required=True)
    add.add_argument("--lon", type=float, required=True)
    add.add_argument("--interval", type=int, default=None, help="Interval override in minutes.")
    add.add_argument("--inactive", action="store_true", help="Create the location inactive.")

    listing = sub.add_parser("list", help="List locations, newest first.")
    listing.add_argument("--page", type=int, default=1)
    listing.add_argument("--limit", type=int, default=10)
    listing.add_argument("--active-only", action="store_true")

    update = sub.add_parser("update", help="Update a location by id.")
    update.add_argument("location_id")
    update.add_argument("--name", default=None)
    update.add_argument("--lat", type=float, default=None)
    update.add_argument("--lon", type=float, default=None)
    update.add_argument("--interval", type=int, default=None)
    update.add_argument("--active", type=_active_flag, default=None)

    remove = sub.add_parser("remove", help="Remove a location by id.")
    remove.add_argument("location_id")

    interval = sub.add_parser(
        "set-interval", help="Set the global collection interval for all locations."
    )
    interval.add_argument("minutes", type=int)
    return parser.parse_args(argv)


def _print_locations(console: Console, locations: list[Location], title: str) -> None:
    if not locations:
        console.print("No locations found.")
        return
    table = Table(title=title)
    table.add_column("ID", overflow="fold")
    table.add_column("Name", overflow="fold")
    table.add_column("Lat")
    table.add_column("Lon")
    table.add_column("Interval (min)")
    table.add_column("Active")
    for loc in locations:
        table.add_row(
            loc.id,
            loc.name,
            f"{loc.latitude:.4f}",
            f"{loc.longitude:.4f}",
            str(loc.interval_minutes) if loc.interval_minutes is not None else "default",
            "yes" if loc.active else "no",
        )
    console.print(table)


def main(argv: list[str] | None = None) -> int:
    """Run one location management command."""
    args = parse_args(argv)
    logger = setup_logger()
    console = Console()

    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("Configuration failure: %s", exc)
        return 2

    directory = JsonLocationDirectory(settings.locations_path)
    try:
        if args.command == "add":
            location = directory.create(
                name=args.name,
                latitude=args.lat,
                longitude=args.lon,
                interval_minutes=args.interval,
                active=not args.inactive,
            )
            console.print(f"Added {location.name} id={location.id}")
        elif args.command == "list":
            if args.active_only:
                _print_locations(console, directory.list_active(), "Active Locations")
            else:
                page = directory.list_page(page=args.page, limit=args.limit)
                _print_locations(
                    console,
                    page.items,
                    f"Locations (page {page.page}/{page.total_pages}, total {page.total})",
                )
        elif args.command == "update":
            changes = {
                key: value
                for key, value in {
                    "name": args.name,
                    "latitude": args.lat,
                    "longitude": args.lon,
                    "interval_minutes": args.interval,
                    "active": args.active,
                }.items()
                if value is not None
            }
            location = directory.update(args.location_id, **changes)
            console.print(f"Updated {location.name} id={location.id}")
        elif args.command == "remove":
            directory.remove(args.location_id)
            console.print(f"Removed {args.location_id}")
        elif args.command == "set-interval":
            config = CollectorConfigStore(
                settings.collector_config_path,
                default_interval_minutes=settings.collect_interval_minutes,
                locations=directory,
            ).update(args.minutes)
            console.print(f"Collector interval set to {config.collect_interval_minutes} minutes")
    except StoreError as exc:
        logger.error("Location command failed: %s", exc)
        return 4
    return 0


if __name__ == "__main__":
    sys.exit(main())
