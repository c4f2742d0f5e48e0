"""JSON-file location directory with simple CRUD."""

from __future__ import annotations

import json
import logging
import math
import threading
import uuid
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..exceptions import LocationNotFoundError, StoreError
from ..journal import json_default
from ..models import Location, LocationPage

_UPDATABLE_FIELDS = {"name", "latitude", "longitude", "interval_minutes", "active"}


class JsonLocationDirectory:
    """Stores monitored locations in a single JSON document."""

    def __init__(self, path: Path, logger: logging.Logger | None = None) -> None:
        self.path = path
        self.logger = logger or logging.getLogger("weather_insights.store.locations")
        self._lock = threading.RLock()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def create(
        self,
        *,
        name: str,
        latitude: float,
        longitude: float,
        interval_minutes: Any = None,
        active: bool = True,
    ) -> Location:
        if not name.strip():
            raise StoreError("Location name must not be empty.")
        try:
            location = Location(
                id=uuid.uuid4().hex,
                name=name.strip(),
                latitude=latitude,
                longitude=longitude,
                interval_minutes=interval_minutes,
                active=active,
            )
        except ValidationError as exc:
            raise StoreError(f"Invalid location: {exc}") from exc
        with self._lock:
            locations = self._read()
            locations.append(location)
            self._write(locations)
        return location

    def get(self, location_id: str) -> Location:
        for location in self._read():
            if location.id == location_id:
                return location
        raise LocationNotFoundError(f"Location not found: {location_id}")

    def list_all(self) -> list[Location]:
        """All locations, newest first."""
        return sorted(self._read(), key=lambda loc: loc.created_at, reverse=True)

    def list_active(self) -> list[Location]:
        return [loc for loc in self.list_all() if loc.active]

    def list_page(self, page: int = 1, limit: int = 10) -> LocationPage:
        if limit <= 0:
            raise StoreError("limit must be > 0.")
        page = max(page, 1)
        items = self.list_all()
        offset = (page - 1) * limit
        return LocationPage(
            items=items[offset : offset + limit],
            total=len(items),
            page=page,
            limit=limit,
            total_pages=max(1, math.ceil(len(items) / limit)),
        )

    def update(self, location_id: str, **changes: Any) -> Location:
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise StoreError(f"Unsupported location fields: {sorted(unknown)}")
        with self._lock:
            locations = self._read()
            for index, location in enumerate(locations):
                if location.id != location_id:
                    continue
                try:
                    updated = Location.model_validate(
                        {**location.model_dump(), **changes}
                    )
                except ValidationError as exc:
                    raise StoreError(f"Invalid location update: {exc}") from exc
                locations[index] = updated
                self._write(locations)
                return updated
        raise LocationNotFoundError(f"Location not found: {location_id}")

    def remove(self, location_id: str) -> None:
        """Delete a location; removing an unknown id is a no-op."""
        with self._lock:
            locations = self._read()
            remaining = [loc for loc in locations if loc.id != location_id]
            if len(remaining) != len(locations):
                self._write(remaining)

    def set_interval_for_all(self, interval_minutes: int) -> int:
        """Apply one interval to every location; returns the number updated."""
        with self._lock:
            locations = [
                loc.model_copy(update={"interval_minutes": interval_minutes})
                for loc in self._read()
            ]
            self._write(locations)
        return len(locations)

    def _read(self) -> list[Location]:
        with self._lock:
            if not self.path.exists():
                return []
            try:
                payload = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                raise StoreError(f"Failed reading {self.path.name}: {exc}") from exc
        if not isinstance(payload, list):
            raise StoreError(f"{self.path.name} must contain a JSON list.")
        try:
            return [Location.model_validate(item) for item in payload]
        except ValidationError as exc:
            raise StoreError(f"Invalid location record in {self.path.name}: {exc}") from exc

    def _write(self, locations: list[Location]) -> None:
        tmp_path = self.path.with_suffix(".tmp")
        try:
            tmp_path.write_text(
                json.dumps(
                    [loc.model_dump(mode="json") for loc in locations],
                    indent=2,
                    default=json_default,
                ),
                encoding="utf-8",
            )
            tmp_path.replace(self.path)
        except (OSError, TypeError, ValueError) as exc:
            raise StoreError(f"Failed writing {self.path.name}: {exc}") from exc
