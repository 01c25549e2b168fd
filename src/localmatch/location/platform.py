"""
Platform location capability.

`PositionProvider` never talks to a device directly; it consumes a
`LocationPlatform`. Hosts plug in their own implementation (a mobile bridge, a
GPS daemon, a browser relay). Two implementations ship here:
- `StaticLocationPlatform`: returns a fixed reading (CLI `--lat/--lon`, tests)
- `UnsupportedPlatform`: no device location at all, so acquisition always
  goes to the IP/cache fallbacks
"""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Hashable, Protocol

from localmatch.domain.models import Coordinates


class PositionErrorCode(IntEnum):
    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


class PlatformPositionError(Exception):
    """Raised (or delivered to watch error callbacks) by a platform on failure."""

    def __init__(self, code: PositionErrorCode, message: str = ""):
        super().__init__(message or code.name.lower().replace("_", " "))
        self.code = PositionErrorCode(code)
        self.message = message


@dataclass(frozen=True)
class PositionOptions:
    enable_high_accuracy: bool = True
    timeout_ms: int = 10_000
    maximum_age_ms: int = 300_000


@dataclass(frozen=True)
class RawPosition:
    """A device reading before reverse geocoding."""

    coordinates: Coordinates
    timestamp_millis: int


PositionCallback = Callable[[RawPosition], None]
ErrorCallback = Callable[[PlatformPositionError], None]


class LocationPlatform(Protocol):
    def is_supported(self) -> bool: ...

    def query_permission(self) -> str | None:
        """Return "granted"/"denied"/"prompt", or None if permissions can't be queried."""
        ...

    def get_current_position(self, options: PositionOptions) -> RawPosition:
        """Single-shot reading; raise `PlatformPositionError` on failure."""
        ...

    def watch_position(
        self, on_position: PositionCallback, on_error: ErrorCallback, options: PositionOptions
    ) -> Hashable: ...

    def clear_watch(self, handle: Hashable) -> None: ...


class UnsupportedPlatform:
    def is_supported(self) -> bool:
        return False

    def query_permission(self) -> str | None:
        return None

    def get_current_position(self, options: PositionOptions) -> RawPosition:
        raise PlatformPositionError(
            PositionErrorCode.POSITION_UNAVAILABLE, "Geolocation is not supported on this platform"
        )

    def watch_position(
        self, on_position: PositionCallback, on_error: ErrorCallback, options: PositionOptions
    ) -> Hashable:
        raise PlatformPositionError(
            PositionErrorCode.POSITION_UNAVAILABLE, "Geolocation is not supported on this platform"
        )

    def clear_watch(self, handle: Hashable) -> None:
        return None


class StaticLocationPlatform:
    """Reports a fixed position; `push`/`fail` drive active watches manually."""

    def __init__(
        self,
        coordinates: Coordinates | None,
        *,
        clock_millis: Callable[[], int],
        permission: str | None = "granted",
    ):
        self._coordinates = coordinates
        self._clock_millis = clock_millis
        self._permission = permission
        self._watches: dict[int, tuple[PositionCallback, ErrorCallback]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def is_supported(self) -> bool:
        return True

    def query_permission(self) -> str | None:
        return self._permission

    def _reading(self) -> RawPosition:
        if self._permission == "denied":
            raise PlatformPositionError(PositionErrorCode.PERMISSION_DENIED, "User denied Geolocation")
        if self._coordinates is None:
            raise PlatformPositionError(PositionErrorCode.POSITION_UNAVAILABLE, "No position fix")
        return RawPosition(coordinates=self._coordinates, timestamp_millis=self._clock_millis())

    def get_current_position(self, options: PositionOptions) -> RawPosition:
        return self._reading()

    def watch_position(
        self, on_position: PositionCallback, on_error: ErrorCallback, options: PositionOptions
    ) -> Hashable:
        with self._lock:
            handle = next(self._ids)
            self._watches[handle] = (on_position, on_error)
        try:
            on_position(self._reading())
        except PlatformPositionError as exc:
            on_error(exc)
        return handle

    def clear_watch(self, handle: Hashable) -> None:
        with self._lock:
            self._watches.pop(handle, None)

    def set_position(self, coordinates: Coordinates | None) -> None:
        """Change the reported fix without notifying watches (None = no fix)."""
        self._coordinates = coordinates

    def set_permission(self, permission: str | None) -> None:
        self._permission = permission

    def push(self, coordinates: Coordinates) -> None:
        """Move the device and deliver the new reading to active watches."""
        self._coordinates = coordinates
        with self._lock:
            watches = list(self._watches.values())
        for on_position, _ in watches:
            on_position(RawPosition(coordinates=coordinates, timestamp_millis=self._clock_millis()))

    def fail(self, error: PlatformPositionError) -> None:
        with self._lock:
            watches = list(self._watches.values())
        for _, on_error in watches:
            on_error(error)

    @property
    def active_watches(self) -> int:
        return len(self._watches)
