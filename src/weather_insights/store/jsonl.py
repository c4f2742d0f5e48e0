"""JSONL-backed sample and insight record stores."""

from __future__ import annotations

import json
import logging
import math
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..exceptions import StoreError
from ..journal import json_default
from ..models import InsightRecord, Sample, SamplePage


class JsonlFile:
    """Thread-safe append/read access to one JSON-lines file."""

    def __init__(self, path: Path, logger: logging.Logger | None = None) -> None:
        self.path = path
        self.logger = logger or logging.getLogger("weather_insights.store")
        self._lock = threading.Lock()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, record: dict[str, Any]) -> None:
        try:
            line = json.dumps(record, default=json_default, ensure_ascii=False)
            with self._lock, self.path.open("a", encoding="utf-8") as fh:
                fh.write(line)
                fh.write("\n")
        except (OSError, TypeError, ValueError) as exc:
            raise StoreError(f"Failed appending to {self.path.name}: {exc}") from exc

    def read_all(self) -> list[dict[str, Any]]:
        """Return every decodable record; corrupt lines are logged and skipped."""
        try:
            with self._lock:
                if not self.path.exists():
                    return []
                text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Failed reading {self.path.name}: {exc}") from exc

        records: list[dict[str, Any]] = []
        for line_no, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                item = json.loads(line)
            except ValueError:
                self.logger.warning("Skipping corrupt line %d in %s", line_no, self.path.name)
                continue
            if isinstance(item, dict):
                records.append(item)
        return records


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)


class JsonlSampleStore:
    """Append-only sample store queryable by time window and by city."""

    def __init__(self, path: Path, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("weather_insights.store.samples")
        self._file = JsonlFile(path, logger=self.logger)

    def append(self, sample: Sample) -> None:
        self._file.append(sample.model_dump(mode="json"))

    def _load(self) -> list[Sample]:
        samples: list[Sample] = []
        for record in self._file.read_all():
            try:
                samples.append(Sample.model_validate(record))
            except ValidationError as exc:
                self.logger.warning("Skipping invalid sample record: %s", exc.errors()[:1])
        return samples

    def query_window(self, start: datetime) -> list[Sample]:
        """Samples collected at or after ``start``, oldest first."""
        start = _as_utc(start)
        window = [s for s in self._load() if _as_utc(s.collected_at) >= start]
        window.sort(key=lambda s: _as_utc(s.collected_at))
        return window

    def distinct_cities(self) -> list[str]:
        return sorted({s.city for s in self._load()}, key=lambda c: (c.casefold(), c))

    def query_page(self, city: str | None = None, page: int = 1, limit: int = 10) -> SamplePage:
        """Newest-first page, optionally filtered by case-insensitive city substring."""
        if limit <= 0:
            raise StoreError("limit must be > 0.")
        page = max(page, 1)
        needle = city.strip().casefold() if city and city.strip() else None
        items = [s for s in self._load() if needle is None or needle in s.city.casefold()]
        items.sort(key=lambda s: _as_utc(s.collected_at), reverse=True)
        total = len(items)
        offset = (page - 1) * limit
        return SamplePage(
            items=items[offset : offset + limit],
            total=total,
            page=page,
            limit=limit,
            total_pages=max(1, math.ceil(total / limit)),
        )


class JsonlInsightStore:
    """Insight record history; ``latest`` returns the most recently saved one."""

    def __init__(self, path: Path, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("weather_insights.store.insights")
        self._file = JsonlFile(path, logger=self.logger)

    def save(self, record: InsightRecord) -> None:
        self._file.append(record.model_dump(mode="json"))

    def latest(self) -> InsightRecord | None:
        for raw in reversed(self._file.read_all()):
            try:
                return InsightRecord.model_validate(raw)
            except ValidationError as exc:
                self.logger.warning("Skipping invalid insight record: %s", exc.errors()[:1])
        return None
