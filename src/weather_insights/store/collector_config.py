"""Persisted collector configuration (global collection interval)."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..config import normalize_interval_minutes
from ..exceptions import StoreError
from ..models import CollectorConfig
from .locations import JsonLocationDirectory


class CollectorConfigStore:
    """Reads and updates the global interval, seeding it from settings."""

    def __init__(
        self,
        path: Path,
        *,
        default_interval_minutes: int,
        locations: JsonLocationDirectory | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.path = path
        self.default_interval_minutes = normalize_interval_minutes(default_interval_minutes)
        self.locations = locations
        self.logger = logger or logging.getLogger("weather_insights.store.collector_config")
        self._lock = threading.Lock()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def ensure_default(self) -> CollectorConfig:
        with self._lock:
            existing = self._read()
            if existing is not None:
                return existing
            created = CollectorConfig(collect_interval_minutes=self.default_interval_minutes)
            self._write(created)
        self.logger.info(
            "Collector config created with interval %d minutes",
            created.collect_interval_minutes,
        )
        return created

    def get(self) -> CollectorConfig:
        with self._lock:
            existing = self._read()
        return existing if existing is not None else self.ensure_default()

    def interval_minutes(self) -> int:
        return normalize_interval_minutes(
            self.get().collect_interval_minutes, self.default_interval_minutes
        )

    def update(self, collect_interval_minutes: Any) -> CollectorConfig:
        """Persist a new interval and propagate it to every location."""
        config = CollectorConfig(
            collect_interval_minutes=normalize_interval_minutes(collect_interval_minutes)
        )
        with self._lock:
            self._write(config)
        if self.locations is not None:
            updated = self.locations.set_interval_for_all(config.collect_interval_minutes)
            self.logger.info(
                "Collector interval set to %d minutes (%d locations updated)",
                config.collect_interval_minutes,
                updated,
            )
        return config

    def _read(self) -> CollectorConfig | None:
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            return CollectorConfig.model_validate(payload)
        except (OSError, ValueError, ValidationError) as exc:
            raise StoreError(f"Failed reading {self.path.name}: {exc}") from exc

    def _write(self, config: CollectorConfig) -> None:
        try:
            self.path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Failed writing {self.path.name}: {exc}") from exc
