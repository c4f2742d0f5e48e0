"""Insight aggregation over the trailing sample window."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Protocol

from ..exceptions import SummarizerUnavailable
from ..models import InsightRecord, Sample
from .statistics import build_city_insight, build_headline, group_by_city, rank_cities
from .summarizer import NarrativeSummarizer, build_context_text

WINDOW_HOURS = 24
DEFAULT_MODEL = "gpt-4o-mini"
INSUFFICIENT_DATA_MESSAGE = "Not enough data to generate insights yet."


class SampleWindowSource(Protocol):
    def query_window(self, start: datetime) -> list[Sample]: ...


class InsightRecordSink(Protocol):
    def save(self, record: InsightRecord) -> None: ...


class InsightAggregator:
    """Turns the last 24h of samples into a ranked, explainable insight record."""

    def __init__(
        self,
        *,
        sample_store: SampleWindowSource,
        insight_store: InsightRecordSink,
        summarizer: NarrativeSummarizer | None = None,
        model: str = DEFAULT_MODEL,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.sample_store = sample_store
        self.insight_store = insight_store
        self.summarizer = summarizer
        self.model = model
        self.logger = logger or logging.getLogger("weather_insights.insights")
        self._clock = clock or (lambda: datetime.now(UTC))

    def generate(self) -> InsightRecord:
        """Build and persist a record; an empty window returns an unsaved stub."""
        now = self._clock()
        samples = self.sample_store.query_window(now - timedelta(hours=WINDOW_HOURS))
        if not samples:
            self.logger.info("No samples in the last %dh; skipping insights", WINDOW_HOURS)
            return InsightRecord(
                created_at=now,
                window_hours=WINDOW_HOURS,
                samples=0,
                message=INSUFFICIENT_DATA_MESSAGE,
            )

        cities = [
            build_city_insight(city, records)
            for city, records in group_by_city(samples).items()
        ]
        ranking = rank_cities(cities)
        record = InsightRecord(
            created_at=now,
            window_hours=WINDOW_HOURS,
            samples=len(samples),
            message=build_headline(ranking, WINDOW_HOURS),
            comfort_ranking=ranking.comfort,
            cities=cities,
            model=self.model,
            narrative=self._narrative(build_context_text(cities)),
        )
        self.insight_store.save(record)
        self.logger.info(
            "Insights generated for %d cities from %d samples (narrative=%s)",
            len(cities),
            len(samples),
            record.narrative is not None,
        )
        return record

    def _narrative(self, context_text: str) -> str | None:
        if self.summarizer is None:
            return None
        try:
            return self.summarizer.summarize(context_text, self.model)
        except SummarizerUnavailable as exc:
            self.logger.warning("Narrative summary unavailable: %s", exc)
            return None
        except Exception as exc:
            self.logger.exception("Narrative summarizer failed unexpectedly: %s", exc)
            return None
