from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from localmatch.domain.models import Location

"""
Location caching.

Two layers:
- `LocationCache`: an in-memory slot holding one immutable `CacheEntry`. Updates
  replace the entry as a whole; TTL validity is checked at read time.
- `LocationStore`: optional on-disk JSON copy of the last location so a fresh
  position survives process restarts. Writes go through a temporary file plus
  atomic replace to avoid partial/corrupt files.
"""

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    location: Location
    stored_at_millis: int


class LocationCache:
    """Single-slot, TTL-checked cache for the most recent `Location`."""

    def __init__(self, expiry_millis: int):
        self._expiry_millis = int(expiry_millis)
        self._entry: CacheEntry | None = None
        self._lock = threading.Lock()

    @property
    def expiry_millis(self) -> int:
        return self._expiry_millis

    @expiry_millis.setter
    def expiry_millis(self, value: int) -> None:
        self._expiry_millis = int(value)

    def put(self, location: Location, now_millis: int) -> CacheEntry:
        """Replace the cached entry (never merged with the previous one)."""
        entry = CacheEntry(location=location, stored_at_millis=int(now_millis))
        with self._lock:
            self._entry = entry
        return entry

    def get(self, now_millis: int) -> Location | None:
        """Return the cached location if present and not stale; otherwise None.

        Staleness is measured from the location's own acquisition timestamp.
        """
        entry = self._entry
        if entry is None:
            return None
        if entry.location.is_stale(now_millis, self._expiry_millis):
            return None
        return entry.location

    def peek(self) -> CacheEntry | None:
        """Return the raw entry regardless of age."""
        return self._entry

    def clear(self) -> None:
        with self._lock:
            self._entry = None


class LocationStore:
    """A filesystem-backed copy of the last known location."""

    def __init__(self, base_dir: Path, filename: str = "last_location.json"):
        self._path = Path(base_dir) / filename

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Location | None:
        """Read the persisted location, or None if missing/unreadable."""
        if not self._path.exists():
            return None
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return Location.model_validate(raw)
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning("Discarding unreadable cached location at %s: %s", self._path, exc)
            return None

    def save(self, location: Location) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(location.model_dump(mode="json"), ensure_ascii=False), encoding="utf-8")
        tmp.replace(self._path)

    def clear(self) -> None:
        try:
            self._path.unlink()
        except FileNotFoundError:
            pass
