"""Offline smoke tests for the command-line tools."""

from __future__ import annotations

import json
import logging
import signal
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from weather_insights import collector_cli, insights_cli, locations_cli, logs_cli
from weather_insights.models import Sample
from weather_insights.store import JsonLocationDirectory, JsonlSampleStore
from weather_insights.weather.base import WeatherProvider
from weather_insights.weather.models import CurrentConditions


def _set_env(monkeypatch: Any, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("JOURNAL_DIR", str(tmp_path / "journal"))
    monkeypatch.setenv("OPENAI_API_KEY", "")


def _journal_events(tmp_path: Path) -> list[dict[str, Any]]:
    events: list[dict[str, Any]] = []
    for path in sorted((tmp_path / "journal").glob("*.jsonl")):
        events.extend(json.loads(line) for line in path.read_text(encoding="utf-8").splitlines())
    return events


class StubProvider(WeatherProvider):
    provider_name = "stub"

    def __init__(self, settings: Any, logger: Any) -> None:
        self.closed = False

    def __enter__(self) -> StubProvider:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def fetch_current(self, lat: float, lon: float) -> CurrentConditions:
        return CurrentConditions(
            temperature_c=31.0,
            humidity_percent=20.0,
            wind_speed_kmh=12.0,
            condition_code=0,
            condition="clear sky",
            raw={"temperature": 31.0},
        )

    def close(self) -> None:
        self.closed = True


def test_locations_add_and_list(monkeypatch: Any, tmp_path: Path, capsys: Any) -> None:
    _set_env(monkeypatch, tmp_path)

    assert locations_cli.main(["add", "Recife", "--lat", "-8.05", "--lon", "-34.9"]) == 0
    assert "Added Recife id=" in capsys.readouterr().out

    assert locations_cli.main(["list"]) == 0
    assert "total 1" in capsys.readouterr().out

    location = JsonLocationDirectory(tmp_path / "data" / "locations.json").list_all()[0]
    assert locations_cli.main(["update", location.id, "--active", "false"]) == 0
    assert locations_cli.main(["list", "--active-only"]) == 0
    assert "No locations found." in capsys.readouterr().out


def test_locations_invalid_latitude_returns_runtime_error(monkeypatch: Any, tmp_path: Path) -> None:
    _set_env(monkeypatch, tmp_path)
    assert locations_cli.main(["add", "Nowhere", "--lat", "95", "--lon", "0"]) == 4


def test_locations_set_interval_propagates(monkeypatch: Any, tmp_path: Path, capsys: Any) -> None:
    _set_env(monkeypatch, tmp_path)
    locations_cli.main(["add", "Natal", "--lat", "-5.79", "--lon", "-35.2"])

    assert locations_cli.main(["set-interval", "15"]) == 0

    assert "Collector interval set to 15 minutes" in capsys.readouterr().out
    location = JsonLocationDirectory(tmp_path / "data" / "locations.json").list_all()[0]
    assert location.interval_minutes == 15
    config = json.loads((tmp_path / "data" / "collector_config.json").read_text(encoding="utf-8"))
    assert config["collect_interval_minutes"] == 15


def test_collector_once_stores_samples(monkeypatch: Any, tmp_path: Path, capsys: Any) -> None:
    _set_env(monkeypatch, tmp_path)
    monkeypatch.setattr(collector_cli, "OpenMeteoWeatherProvider", StubProvider)
    locations_cli.main(["add", "Cuiaba", "--lat", "-15.6", "--lon", "-56.1"])
    locations_cli.main(["add", "Belem", "--lat", "-1.45", "--lon", "-48.5"])
    capsys.readouterr()

    assert collector_cli.main(["--once"]) == 0

    out = capsys.readouterr().out
    assert "status=completed locations=2 stored=2 failed=0 interval=60m" in out
    samples = JsonlSampleStore(tmp_path / "data" / "samples.jsonl").query_page().items
    assert sorted(s.city for s in samples) == ["Belem", "Cuiaba"]
    assert all(s.source == "stub" for s in samples)

    event_types = [event["event_type"] for event in _journal_events(tmp_path)]
    assert event_types == ["collector_startup", "collection_cycle_complete", "shutdown"]


def test_collector_once_without_locations(monkeypatch: Any, tmp_path: Path, capsys: Any) -> None:
    _set_env(monkeypatch, tmp_path)
    monkeypatch.setattr(collector_cli, "OpenMeteoWeatherProvider", StubProvider)

    assert collector_cli.main(["--once"]) == 0
    assert "status=no_locations" in capsys.readouterr().out


def test_collector_config_failure_exit_code(monkeypatch: Any, tmp_path: Path) -> None:
    _set_env(monkeypatch, tmp_path)
    monkeypatch.setenv("COLLECTOR_TICK_SECONDS", "0")
    assert collector_cli.main(["--once"]) == 2


def _seed_samples(tmp_path: Path) -> None:
    store = JsonlSampleStore(tmp_path / "data" / "samples.jsonl")
    now = datetime.now(UTC)
    for hours_ago, city, temperature, humidity in [
        (3, "Cuiaba", 34.0, 28.0),
        (1, "Cuiaba", 37.0, 18.0),
        (2, "Curitiba", 14.0, 80.0),
    ]:
        store.append(
            Sample(
                source="open-meteo",
                city=city,
                latitude=0.0,
                longitude=0.0,
                collected_at=now - timedelta(hours=hours_ago),
                temperature_c=temperature,
                humidity_percent=humidity,
                wind_speed_kmh=5.0,
                condition="clear sky",
            )
        )


def test_logs_pages_and_cities(monkeypatch: Any, tmp_path: Path, capsys: Any) -> None:
    _set_env(monkeypatch, tmp_path)
    _seed_samples(tmp_path)

    assert logs_cli.main(["--city", "cui", "--limit", "1"]) == 0
    out = capsys.readouterr().out
    assert "total=2 page=1/2 limit=1" in out

    assert logs_cli.main(["--cities"]) == 0
    assert capsys.readouterr().out.split() == ["Cuiaba", "Curitiba"]


def test_logs_rejects_invalid_paging(monkeypatch: Any, tmp_path: Path) -> None:
    _set_env(monkeypatch, tmp_path)
    assert logs_cli.main(["--page", "0"]) == 2


def test_insights_generate_then_latest(monkeypatch: Any, tmp_path: Path, capsys: Any) -> None:
    _set_env(monkeypatch, tmp_path)
    _seed_samples(tmp_path)

    assert insights_cli.main([]) == 0
    out = capsys.readouterr().out
    assert "samples=3 cities=2" in out
    assert "Hottest conditions in Cuiaba (37.0 C)" in out

    assert insights_cli.main(["--latest"]) == 0
    assert "samples=3 cities=2" in capsys.readouterr().out

    events = [e for e in _journal_events(tmp_path) if e["event_type"] == "insights_generated"]
    assert events[0]["payload"]["narrative"] is False


def test_insights_with_empty_window(monkeypatch: Any, tmp_path: Path, capsys: Any) -> None:
    _set_env(monkeypatch, tmp_path)

    assert insights_cli.main(["--latest"]) == 0
    assert "No insights stored yet." in capsys.readouterr().out

    assert insights_cli.main(["--no-narrative"]) == 0
    assert "Not enough data to generate insights yet." in capsys.readouterr().out
    assert not (tmp_path / "data" / "insights.jsonl").exists()


@pytest.mark.parametrize("value", ["0", "-2"])
def test_insights_rejects_non_positive_max_print(monkeypatch: Any, tmp_path: Path, value: str) -> None:
    _set_env(monkeypatch, tmp_path)
    assert insights_cli.main(["--max-print", value]) == 2


class _RecordingHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def test_collector_log_lines_carry_session_id(monkeypatch: Any, tmp_path: Path) -> None:
    _set_env(monkeypatch, tmp_path)
    monkeypatch.setattr(collector_cli, "OpenMeteoWeatherProvider", StubProvider)
    handler = _RecordingHandler()
    logger = logging.getLogger("weather_insights_cli_session_test")
    logger.handlers = [handler]
    logger.propagate = False
    monkeypatch.setattr(
        collector_cli, "setup_logger", lambda level=logging.INFO: (logger.setLevel(level), logger)[1]
    )

    assert collector_cli.main(["--once"]) == 0

    session_id = _journal_events(tmp_path)[0]["session_id"]
    tagged = [r for r in handler.records if getattr(r, "session_id", None) == session_id]
    assert tagged
    assert tagged[0].getMessage() == "Collector session started (once=True)"


def test_collector_stops_cleanly_on_sigterm(monkeypatch: Any, tmp_path: Path) -> None:
    _set_env(monkeypatch, tmp_path)
    monkeypatch.setattr(collector_cli, "OpenMeteoWeatherProvider", StubProvider)
    original_handler = signal.getsignal(signal.SIGTERM)
    stopped: list[bool] = []

    def _run_until_sigterm(self: Any) -> None:
        handler = signal.getsignal(signal.SIGTERM)
        handler(signal.SIGTERM, None)
        stopped.append(self._stop_event.is_set())

    monkeypatch.setattr(collector_cli.CollectionScheduler, "run_forever", _run_until_sigterm)

    assert collector_cli.main([]) == 0

    assert stopped == [True]
    assert signal.getsignal(signal.SIGTERM) is original_handler
    event_types = [event["event_type"] for event in _journal_events(tmp_path)]
    assert event_types == ["collector_startup", "shutdown"]
