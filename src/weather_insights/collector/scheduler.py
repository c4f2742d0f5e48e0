"""Periodic collection scheduler: decides when to sample and fans out per location."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

from ..config import DEFAULT_INTERVAL_MINUTES, normalize_interval_minutes
from ..exceptions import StoreError, WeatherProviderError
from ..models import CycleReport, Location, Sample
from ..weather.base import WeatherProvider

DEFAULT_TICK_SECONDS = 60.0


class LocationSource(Protocol):
    def list_active(self) -> list[Location]: ...


class SampleSink(Protocol):
    def append(self, sample: Sample) -> None: ...


@dataclass
class CollectorRunState:
    """Watermark of the last completed cycle; None means never run."""

    last_completed_at: datetime | None = None


def is_cycle_due(last_completed_at: datetime | None, now: datetime, interval_minutes: Any) -> bool:
    """A never-run collector is due; otherwise due once the interval has fully elapsed."""
    if last_completed_at is None:
        return True
    required = timedelta(minutes=normalize_interval_minutes(interval_minutes))
    return now - last_completed_at >= required


class CollectionScheduler:
    """Runs a fixed-period timer that triggers collection cycles when due.

    Only one cycle runs at a time; a tick that arrives while a cycle is still
    in flight is skipped. Every active location is sampled on each due cycle;
    a location's own interval only labels its log line.
    """

    def __init__(
        self,
        *,
        locations: LocationSource,
        provider: WeatherProvider,
        sample_store: SampleSink,
        interval_source: Callable[[], Any],
        logger: logging.Logger | None = None,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
        max_workers: int = 8,
        clock: Callable[[], datetime] | None = None,
        on_cycle: Callable[[CycleReport], None] | None = None,
    ) -> None:
        self.locations = locations
        self.provider = provider
        self.sample_store = sample_store
        self.interval_source = interval_source
        self.logger = logger or logging.getLogger("weather_insights.collector")
        self.tick_seconds = tick_seconds
        self.max_workers = max_workers
        self._clock = clock or (lambda: datetime.now(UTC))
        self._on_cycle = on_cycle
        self.state = CollectorRunState()
        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the timer thread; the first tick runs immediately."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_forever, name="weather-collector", daemon=True
        )
        self._thread.start()
        self.logger.info("Collector started (tick every %.0f s)", self.tick_seconds)

    def stop(self, timeout: float | None = None) -> None:
        """Stop the timer; stopping an idle scheduler is a no-op."""
        self._stop_event.set()
        thread = self._thread
        self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            self.logger.info("Collector stopped")

    def run_forever(self) -> None:
        """Tick at a fixed period until ``stop`` is called."""
        next_tick = time.monotonic()
        while not self._stop_event.is_set():
            self.tick()
            next_tick += self.tick_seconds
            delay = next_tick - time.monotonic()
            if delay < 0:
                # Ticks missed while a cycle ran are dropped, not replayed.
                next_tick = time.monotonic()
                delay = 0
            self._stop_event.wait(delay)

    def tick(self, *, force: bool = False) -> CycleReport:
        """Evaluate the due gate and run a cycle if permitted.

        Never raises: failures before the per-location fan-out are logged and
        reported with status ``failed``.
        """
        started_at = self._clock()
        if not self._cycle_lock.acquire(blocking=False):
            self.logger.warning("Collection cycle still in progress; skipping tick")
            return self._report(CycleReport(
                started_at=started_at, status="busy", interval_minutes=DEFAULT_INTERVAL_MINUTES
            ))
        try:
            return self._report(self._tick_locked(started_at, force=force))
        finally:
            self._cycle_lock.release()

    def _tick_locked(self, started_at: datetime, *, force: bool) -> CycleReport:
        interval = DEFAULT_INTERVAL_MINUTES
        try:
            interval = normalize_interval_minutes(self.interval_source())
            if not force and not is_cycle_due(self.state.last_completed_at, started_at, interval):
                return CycleReport(
                    started_at=started_at, status="not_due", interval_minutes=interval
                )
            locations = list(self.locations.list_active())
        except Exception as exc:
            self.logger.exception("Collector tick failed before fan-out: %s", exc)
            return CycleReport(
                started_at=started_at,
                status="failed",
                interval_minutes=interval,
                error=str(exc),
            )

        if not locations:
            self.logger.debug("No active locations to collect")
            return CycleReport(
                started_at=started_at, status="no_locations", interval_minutes=interval
            )

        succeeded, failed = self._run_cycle(locations, interval)
        self.state.last_completed_at = started_at
        self.logger.info(
            "Collection cycle complete: %d stored, %d failed",
            succeeded,
            failed,
            extra={"status": "completed"},
        )
        return CycleReport(
            started_at=started_at,
            status="completed",
            interval_minutes=interval,
            location_count=len(locations),
            succeeded=succeeded,
            failed=failed,
        )

    def _run_cycle(self, locations: list[Location], interval: int) -> tuple[int, int]:
        succeeded = 0
        failed = 0
        workers = max(1, min(self.max_workers, len(locations)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="collect") as pool:
            futures = {
                pool.submit(self.collect_for_location, location, interval): location
                for location in locations
            }
            for future in as_completed(futures):
                location = futures[future]
                try:
                    sample = future.result()
                except Exception as exc:
                    self.logger.exception(
                        "Unexpected collection failure for %s: %s",
                        location.name,
                        exc,
                        extra={"city": location.name, "location_id": location.id},
                    )
                    sample = None
                if sample is None:
                    failed += 1
                else:
                    succeeded += 1
        return succeeded, failed

    def collect_for_location(self, location: Location, fallback_interval: int) -> Sample | None:
        """Fetch and persist one sample; failures are logged and return None."""
        interval = normalize_interval_minutes(location.interval_minutes, fallback_interval)
        try:
            conditions = self.provider.fetch_current(location.latitude, location.longitude)
            sample = Sample(
                source=self.provider.provider_name,
                city=location.name,
                latitude=location.latitude,
                longitude=location.longitude,
                collected_at=self._clock(),
                temperature_c=conditions.temperature_c,
                humidity_percent=conditions.humidity_percent,
                wind_speed_kmh=conditions.wind_speed_kmh,
                condition=conditions.condition,
                raw=conditions.raw,
                location_id=location.id,
            )
            self.sample_store.append(sample)
        except (WeatherProviderError, StoreError) as exc:
            self.logger.error(
                "Collection failed for %s: %s",
                location.name,
                exc,
                extra={"city": location.name, "location_id": location.id},
            )
            return None

        self.logger.info(
            "Sample stored for %s (interval %d minutes, latitude %s, longitude %s)",
            location.name,
            interval,
            location.latitude,
            location.longitude,
            extra={"city": location.name, "location_id": location.id},
        )
        return sample

    def _report(self, report: CycleReport) -> CycleReport:
        if self._on_cycle is not None and report.status in {"completed", "failed"}:
            try:
                self._on_cycle(report)
            except Exception as exc:
                self.logger.error("Cycle callback failed: %s", exc)
        return report
