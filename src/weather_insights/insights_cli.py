"""Insights CLI: aggregate the last 24h of samples and print the result."""

from __future__ import annotations

import argparse
import sys
import uuid

from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from .config import load_settings
from .exceptions import ConfigError, JournalError, StoreError
from .insights.aggregator import InsightAggregator
from .insights.summarizer import OpenAINarrativeSummarizer
from .journal import JournalWriter
from .log_setup import setup_logger
from .models import InsightRecord
from .store import JsonlInsightStore, JsonlSampleStore


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse insights CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Generate cross-city weather insights from the last 24 hours."
    )
    parser.add_argument(
        "--latest",
        action="store_true",
        help="Show the most recently stored insight record instead of generating one.",
    )
    parser.add_argument(
        "--no-narrative",
        action="store_true",
        help="Skip the text-generation digest even when a credential is configured.",
    )
    parser.add_argument(
        "--max-print",
        type=int,
        default=None,
        help="Number of cities to print.",
    )
    return parser.parse_args(argv)


def _print_record(console: Console, record: InsightRecord, max_print: int) -> None:
    console.print(
        f"window={record.window_hours}h samples={record.samples} "
        f"cities={len(record.cities)} created={record.created_at.isoformat()}"
    )
    console.print(record.message)
    if not record.cities:
        return

    table = Table(title="City Insights")
    table.add_column("City", overflow="fold")
    table.add_column("Samples")
    table.add_column("Avg Temp (C)")
    table.add_column("Avg Humidity (%)")
    table.add_column("Trend")
    table.add_column("Comfort")
    table.add_column("Alerts", overflow="fold")
    for city in record.cities[:max_print]:
        table.add_row(
            city.city,
            str(city.sample_count),
            f"{city.average_temperature:.1f}",
            f"{city.average_humidity:.1f}" if city.humidity_sample_count else "-",
            city.trend,
            str(city.comfort_index) if city.comfort_index is not None else "-",
            "; ".join(city.alerts) or "-",
        )
    console.print(table)

    if record.comfort_ranking:
        console.print("Comfort ranking:")
        for position, entry in enumerate(record.comfort_ranking, start=1):
            console.print(f"{position}. {entry.city} ({entry.comfort_index})")
    if record.narrative:
        console.print(Markdown(record.narrative))


def main(argv: list[str] | None = None) -> int:
    """Run one insight aggregation (or show the latest stored record)."""
    args = parse_args(argv)
    logger = setup_logger()
    console = Console()
    session_id = uuid.uuid4().hex[:12]

    if args.max_print is not None and args.max_print <= 0:
        logger.error("--max-print must be > 0 when provided.")
        return 2
    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("Configuration failure: %s", exc)
        return 2
    logger = setup_logger(level=settings.log_level)
    context = {"session_id": session_id}
    max_print = args.max_print or settings.insights_max_print

    try:
        journal = JournalWriter(journal_dir=settings.journal_dir, session_id=session_id)
    except JournalError as exc:
        logger.error("Failed to initialize insights journal: %s", exc, extra=context)
        return 3

    insight_store = JsonlInsightStore(settings.insights_path)
    try:
        if args.latest:
            latest = insight_store.latest()
            if latest is None:
                console.print("No insights stored yet.")
                return 0
            _print_record(console, latest, max_print)
            return 0

        summarizer = None if args.no_narrative else OpenAINarrativeSummarizer(settings, logger)
        try:
            aggregator = InsightAggregator(
                sample_store=JsonlSampleStore(settings.samples_path),
                insight_store=insight_store,
                summarizer=summarizer,
                model=settings.openai_model,
                logger=logger.getChild("insights"),
            )
            record = aggregator.generate()
        finally:
            if summarizer is not None:
                summarizer.close()

        journal.write_event(
            "insights_generated",
            payload={
                "samples": record.samples,
                "cities": len(record.cities),
                "model": record.model,
                "narrative": record.narrative is not None,
            },
            metadata={"session_id": session_id},
        )
        _print_record(console, record, max_print)
    except (StoreError, JournalError) as exc:
        logger.error("Insight generation failure: %s", exc, extra=context)
        return 4
    return 0


if __name__ == "__main__":
    sys.exit(main())
