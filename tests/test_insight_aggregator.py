"""Tests for insight aggregation over the trailing window."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import httpx

from weather_insights.exceptions import SummarizerUnavailable
from weather_insights.insights.aggregator import (
    INSUFFICIENT_DATA_MESSAGE,
    WINDOW_HOURS,
    InsightAggregator,
)
from weather_insights.insights.summarizer import OpenAINarrativeSummarizer
from weather_insights.models import InsightRecord, Sample

NOW = datetime(2026, 10, 19, 18, 0, tzinfo=UTC)


class FakeSampleStore:
    def __init__(self, samples: list[Sample]) -> None:
        self.samples = samples
        self.window_starts: list[datetime] = []

    def query_window(self, start: datetime) -> list[Sample]:
        self.window_starts.append(start)
        return [s for s in self.samples if s.collected_at >= start]


class FakeInsightStore:
    def __init__(self) -> None:
        self.saved: list[InsightRecord] = []

    def save(self, record: InsightRecord) -> None:
        self.saved.append(record)


class StaticSummarizer:
    def __init__(self, text: str = "## Quick overview\n- warm") -> None:
        self.text = text
        self.calls: list[tuple[str, str]] = []

    def summarize(self, context_text: str, model: str) -> str:
        self.calls.append((context_text, model))
        return self.text


class FailingSummarizer:
    def summarize(self, context_text: str, model: str) -> str:
        raise SummarizerUnavailable("quota exceeded")


def _sample(city: str, temperature: float, humidity: float | None, hours_ago: float) -> Sample:
    return Sample(
        source="open-meteo",
        city=city,
        latitude=0.0,
        longitude=0.0,
        collected_at=NOW - timedelta(hours=hours_ago),
        temperature_c=temperature,
        humidity_percent=humidity,
        wind_speed_kmh=5.0,
        condition="clear sky",
    )


def _samples() -> list[Sample]:
    return [
        _sample("Recife", 27.0, 75.0, 30),
        _sample("Recife", 28.0, 70.0, 6),
        _sample("Cuiaba", 33.0, 30.0, 5),
        _sample("Recife", 29.0, 72.0, 2),
        _sample("Cuiaba", 36.0, 22.0, 1),
    ]


def _aggregator(samples: list[Sample], summarizer=None) -> tuple[InsightAggregator, FakeInsightStore]:
    insight_store = FakeInsightStore()
    aggregator = InsightAggregator(
        sample_store=FakeSampleStore(samples),
        insight_store=insight_store,
        summarizer=summarizer,
        model="test-model",
        clock=lambda: NOW,
    )
    return aggregator, insight_store


def test_empty_window_returns_stub_without_persisting() -> None:
    aggregator, store = _aggregator([_sample("Recife", 25.0, 60.0, 48)])

    record = aggregator.generate()

    assert record.samples == 0
    assert record.message == INSUFFICIENT_DATA_MESSAGE
    assert record.cities == []
    assert record.comfort_ranking == []
    assert record.narrative is None
    assert store.saved == []


def test_window_excludes_samples_older_than_24h() -> None:
    aggregator, store = _aggregator(_samples())

    record = aggregator.generate()

    assert aggregator.sample_store.window_starts == [NOW - timedelta(hours=WINDOW_HOURS)]
    assert record.samples == 4
    recife = next(c for c in record.cities if c.city == "Recife")
    assert recife.sample_count == 2
    assert recife.trend == "rising"
    assert store.saved == [record]


def test_record_headline_and_rankings() -> None:
    aggregator, _ = _aggregator(_samples())

    record = aggregator.generate()

    assert [c.city for c in record.cities] == ["Recife", "Cuiaba"]
    assert record.message.startswith("Hottest conditions in Cuiaba (36.0 C)")
    assert "Lowest humidity in Cuiaba (26.0%)" in record.message
    assert "Priority alerts in Cuiaba: extreme heat; very dry air" in record.message
    assert [entry.city for entry in record.comfort_ranking] == ["Recife", "Cuiaba"]
    assert record.window_hours == 24
    assert record.model == "test-model"


def test_summarizer_receives_context_and_model() -> None:
    summarizer = StaticSummarizer()
    aggregator, _ = _aggregator(_samples(), summarizer=summarizer)

    record = aggregator.generate()

    assert record.narrative == "## Quick overview\n- warm"
    context, model = summarizer.calls[0]
    assert model == "test-model"
    assert context.startswith("Recife: avg temp 28.5 C, avg humidity 71.0%, trend rising")


def test_summarizer_failure_only_drops_narrative() -> None:
    healthy, _ = _aggregator(_samples(), summarizer=StaticSummarizer())
    degraded, degraded_store = _aggregator(_samples(), summarizer=FailingSummarizer())

    expected = healthy.generate()
    record = degraded.generate()

    assert record.narrative is None
    assert record.model_dump(exclude={"narrative"}) == expected.model_dump(exclude={"narrative"})
    assert degraded_store.saved == [record]


def test_missing_summarizer_yields_no_narrative() -> None:
    aggregator, store = _aggregator(_samples(), summarizer=None)
    record = aggregator.generate()
    assert record.narrative is None
    assert len(store.saved) == 1


class BrokenSummarizer:
    def summarize(self, context_text: str, model: str) -> str:
        raise RuntimeError("unexpected client state")


def test_unexpected_summarizer_error_only_drops_narrative() -> None:
    aggregator, store = _aggregator(_samples(), summarizer=BrokenSummarizer())

    record = aggregator.generate()

    assert record.narrative is None
    assert record.samples == 4
    assert store.saved == [record]


def test_malformed_openai_base_url_still_saves_record() -> None:
    settings = SimpleNamespace(
        openai_api_key="sk-test-abcdefghijklmnop",
        openai_base_url="http://host:notaport/v1",
        openai_timeout_seconds=5.0,
        openai_temperature=0.4,
        openai_max_tokens=160,
    )
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    with OpenAINarrativeSummarizer(settings, client=client) as summarizer:
        aggregator, store = _aggregator(_samples(), summarizer=summarizer)
        record = aggregator.generate()

    assert record.narrative is None
    assert record.cities
    assert store.saved == [record]
