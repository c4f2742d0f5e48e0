"""Collector CLI: run the periodic weather collection scheduler."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import uuid
from typing import Any

from rich.console import Console

from .collector.scheduler import CollectionScheduler
from .config import load_settings
from .exceptions import ConfigError, JournalError, StoreError
from .journal import JournalWriter
from .log_setup import setup_logger
from .models import CycleReport
from .store import CollectorConfigStore, JsonLocationDirectory, JsonlSampleStore
from .weather.open_meteo import OpenMeteoWeatherProvider


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse collector CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Sample current weather for every active location on a fixed interval."
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single collection cycle immediately and exit.",
    )
    return parser.parse_args(argv)


def _print_report(console: Console, report: CycleReport) -> None:
    console.print(
        f"status={report.status} locations={report.location_count} "
        f"stored={report.succeeded} failed={report.failed} "
        f"interval={report.interval_minutes}m"
    )


def _install_sigterm_handler(scheduler: CollectionScheduler, logger: logging.Logger) -> Any:
    """Stop the scheduler on SIGTERM; returns the previous handler."""

    def _on_sigterm(signum: int, frame: Any) -> None:
        logger.info("SIGTERM received; stopping collector")
        scheduler.stop()

    return signal.signal(signal.SIGTERM, _on_sigterm)


def main(argv: list[str] | None = None) -> int:
    """Run the collector until interrupted (or once with --once)."""
    args = parse_args(argv)
    logger = setup_logger()
    console = Console()
    session_id = uuid.uuid4().hex[:12]
    journal: JournalWriter | None = None

    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("Configuration failure: %s", exc)
        return 2
    logger = setup_logger(level=settings.log_level)
    context = {"session_id": session_id}
    logger.info("Collector session started (once=%s)", args.once, extra=context)

    try:
        journal = JournalWriter(journal_dir=settings.journal_dir, session_id=session_id)
        journal.write_event(
            "collector_startup",
            payload=settings.safe_summary(),
            metadata={"session_id": session_id, "once": args.once},
        )
    except JournalError as exc:
        logger.error("Failed to initialize collector journal: %s", exc, extra=context)
        return 3

    def _journal_cycle(report: CycleReport) -> None:
        journal.write_event(
            "collection_cycle_complete" if report.status == "completed" else "collection_cycle_failure",
            payload=report.model_dump(mode="json"),
            metadata={"session_id": session_id},
        )

    exit_code = 0
    try:
        locations = JsonLocationDirectory(settings.locations_path)
        config_store = CollectorConfigStore(
            settings.collector_config_path,
            default_interval_minutes=settings.collect_interval_minutes,
            locations=locations,
        )
        config_store.ensure_default()
        with OpenMeteoWeatherProvider(settings=settings, logger=logger) as provider:
            scheduler = CollectionScheduler(
                locations=locations,
                provider=provider,
                sample_store=JsonlSampleStore(settings.samples_path),
                interval_source=config_store.interval_minutes,
                logger=logger.getChild("collector"),
                tick_seconds=settings.collector_tick_seconds,
                max_workers=settings.collector_max_workers,
                on_cycle=_journal_cycle,
            )
            if args.once:
                report = scheduler.tick(force=True)
                _print_report(console, report)
                if report.status == "failed":
                    exit_code = 4
            else:
                previous_handler = _install_sigterm_handler(scheduler, logger)
                try:
                    scheduler.run_forever()
                except KeyboardInterrupt:
                    logger.info("Collector interrupted; shutting down", extra=context)
                finally:
                    scheduler.stop()
                    signal.signal(signal.SIGTERM, previous_handler)
    except StoreError as exc:
        exit_code = 4
        logger.error("Collector failure: %s", exc, extra=context)
    except Exception as exc:  # pragma: no cover - unexpected runtime failure
        exit_code = 99
        logger.exception("Unexpected collector failure: %s", exc, extra=context)
    finally:
        try:
            journal.write_event(
                "shutdown",
                payload={"exit_code": exit_code},
                metadata={"session_id": session_id},
            )
        except JournalError:
            logger.error("Failed to write shutdown event.", extra=context)

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
