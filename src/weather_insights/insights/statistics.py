"""Per-city statistics, ranking and headline composition for insight runs."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from ..models import CityInsight, ComfortRankingEntry, Sample, Trend

UNKNOWN_CITY = "unknown"
TREND_THRESHOLD_C = 0.5
# Sorts cities without humidity readings after every valid percentage.
MISSING_HUMIDITY_SENTINEL = 101.0
COMFORT_RANKING_SIZE = 3

ALERT_EXTREME_HEAT = "extreme heat"
ALERT_ELEVATED_HEAT = "elevated heat, stay hydrated"
ALERT_INTENSE_COLD = "intense cold, dress warmly"
ALERT_HIGH_HUMIDITY = "very high humidity, rain risk"
ALERT_DRY_AIR = "very dry air"
ALERT_STRONG_WIND = "strong recent winds"


def average(values: Iterable[float | None]) -> float:
    """Mean over present values only; the mean of nothing is 0."""
    present = [v for v in values if v is not None]
    if not present:
        return 0.0
    return sum(present) / len(present)


def _round_half_up(value: float, digits: int = 0) -> float:
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def calc_trend(temperatures: list[float | None]) -> Trend:
    if len(temperatures) < 2:
        return "stable"
    first = temperatures[0] if temperatures[0] is not None else 0.0
    last = temperatures[-1] if temperatures[-1] is not None else first
    delta = last - first
    if delta > TREND_THRESHOLD_C:
        return "rising"
    if delta < -TREND_THRESHOLD_C:
        return "falling"
    return "stable"


def comfort_index(temperature: float | None, humidity: float | None) -> int | None:
    """Weighted deviation from 22 C / 50 % humidity, clamped to 0-100."""
    if temperature is None or humidity is None:
        return None
    temp_score = 100 - abs(22 - temperature) * 3
    humidity_score = 100 - abs(50 - humidity) * 1.2
    score = max(0.0, min(100.0, temp_score * 0.6 + humidity_score * 0.4))
    return int(_round_half_up(score))


def extract_alerts(sample: Sample) -> list[str]:
    alerts: list[str] = []
    temperature = sample.temperature_c
    if temperature >= 35:
        alerts.append(ALERT_EXTREME_HEAT)
    elif temperature >= 30:
        alerts.append(ALERT_ELEVATED_HEAT)
    elif temperature <= 5:
        alerts.append(ALERT_INTENSE_COLD)

    humidity = sample.humidity_percent
    if humidity is not None:
        if humidity >= 90:
            alerts.append(ALERT_HIGH_HUMIDITY)
        elif humidity <= 25:
            alerts.append(ALERT_DRY_AIR)

    if sample.wind_speed_kmh is not None and sample.wind_speed_kmh >= 35:
        alerts.append(ALERT_STRONG_WIND)
    return alerts


def comfort_label(score: int) -> str:
    if score >= 80:
        return "very comfortable"
    if score >= 60:
        return "comfortable"
    return "uncomfortable"


def build_narrative(city: str, comfort: int | None, trend: Trend, alerts: list[str]) -> str:
    parts: list[str] = []
    if comfort is not None:
        parts.append(f"{city}: comfort index {comfort} ({comfort_label(comfort)})")
    if trend == "rising":
        parts.append("warming trend over recent hours")
    elif trend == "falling":
        parts.append("cooling trend over recent hours")
    if alerts:
        parts.append(f"alerts: {', '.join(alerts)}")
    return " | ".join(parts) or f"{city}: conditions within expected range"


def group_by_city(samples: Iterable[Sample]) -> dict[str, list[Sample]]:
    """Partition samples by city, keeping first-seen city order and sample order."""
    groups: dict[str, list[Sample]] = {}
    for sample in samples:
        key = sample.city.strip() if sample.city and sample.city.strip() else UNKNOWN_CITY
        groups.setdefault(key, []).append(sample)
    return groups


def build_city_insight(city: str, samples: list[Sample]) -> CityInsight:
    """Compute statistics for one city; ``samples`` must be oldest first."""
    if not samples:
        raise ValueError(f"No samples for city {city!r}")
    humidity = [s.humidity_percent for s in samples if s.humidity_percent is not None]
    last = samples[-1]
    trend = calc_trend([s.temperature_c for s in samples])
    comfort = comfort_index(last.temperature_c, last.humidity_percent)
    alerts = extract_alerts(last)
    return CityInsight(
        city=city,
        sample_count=len(samples),
        average_temperature=round(average(s.temperature_c for s in samples), 1),
        average_humidity=round(average(humidity), 1),
        humidity_sample_count=len(humidity),
        trend=trend,
        comfort_index=comfort,
        alerts=alerts,
        last_sample=last,
        narrative=build_narrative(city, comfort, trend, alerts),
    )


@dataclass(frozen=True)
class CityRanking:
    hottest: CityInsight | None
    driest: CityInsight | None
    most_alerted: CityInsight | None
    comfort: list[ComfortRankingEntry]


def _humidity_rank_value(insight: CityInsight) -> float:
    if insight.humidity_sample_count == 0:
        return MISSING_HUMIDITY_SENTINEL
    return insight.average_humidity


def rank_cities(insights: list[CityInsight]) -> CityRanking:
    """Hottest, driest and most-alerted in one pass; ties keep the earliest city."""
    hottest: CityInsight | None = None
    driest: CityInsight | None = None
    most_alerted: CityInsight | None = None
    for insight in insights:
        if hottest is None or insight.last_sample.temperature_c > hottest.last_sample.temperature_c:
            hottest = insight
        if driest is None or _humidity_rank_value(insight) < _humidity_rank_value(driest):
            driest = insight
        if most_alerted is None or len(insight.alerts) > len(most_alerted.alerts):
            most_alerted = insight

    ranked = sorted(
        (i for i in insights if i.comfort_index is not None),
        key=lambda i: i.comfort_index,
        reverse=True,
    )
    comfort = [
        ComfortRankingEntry(city=i.city, comfort_index=i.comfort_index, narrative=i.narrative)
        for i in ranked[:COMFORT_RANKING_SIZE]
    ]
    return CityRanking(hottest=hottest, driest=driest, most_alerted=most_alerted, comfort=comfort)


def build_headline(ranking: CityRanking, window_hours: int) -> str:
    parts: list[str] = []
    if ranking.hottest is not None:
        parts.append(
            f"Hottest conditions in {ranking.hottest.city} "
            f"({ranking.hottest.last_sample.temperature_c:.1f} C)"
        )
    if ranking.driest is not None and ranking.driest.humidity_sample_count > 0:
        parts.append(
            f"Lowest humidity in {ranking.driest.city} "
            f"({ranking.driest.average_humidity:.1f}%)"
        )
    if ranking.most_alerted is not None and ranking.most_alerted.alerts:
        parts.append(
            f"Priority alerts in {ranking.most_alerted.city}: "
            f"{'; '.join(ranking.most_alerted.alerts)}"
        )
    return " | ".join(parts) or f"Insights generated from the last {window_hours}h."
