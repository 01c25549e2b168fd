"""
Requester position acquisition.

`PositionProvider` wraps a platform location capability with:
- permission inspection (`check_permission`)
- single-shot acquisition with a device -> IP -> cache fallback chain
- continuous watching with ordered, isolated listener dispatch
- a TTL-bounded cache (optionally persisted to disk between runs)

Acquisition order for `get_current_position()`:
1. Device reading (bounded by `geolocation.timeout_ms`).
2. On device failure, IP geolocation if `geolocation.fallback_to_ip` is set.
3. Then the cached location, if it is not stale.
4. Otherwise the device error is raised as a typed `NoLocationAvailable`.

There is no automatic retry of a failed device read.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Hashable

from localmatch.config.settings import GeolocationSettings
from localmatch.core.cache import LocationCache, LocationStore
from localmatch.core.events import EventEmitter
from localmatch.core.geo import validate_coordinates
from localmatch.core.time import ClockContext
from localmatch.domain.errors import (
    AcquisitionTimeout,
    GeocodingFailed,
    IPFallbackFailed,
    NoLocationAvailable,
    PermissionDenied,
    PositionUnavailable,
)
from localmatch.domain.models import Address, Location, LocationSource, PermissionState
from localmatch.ingestion.geocoding_client import ReverseGeocoder
from localmatch.ingestion.ip_geolocation_client import IpGeolocator
from localmatch.location.platform import (
    LocationPlatform,
    PlatformPositionError,
    PositionErrorCode,
    PositionOptions,
    RawPosition,
)

logger = logging.getLogger(__name__)

_PERMISSION_MESSAGES = {
    "granted": "Location access granted",
    "denied": "Location access denied. Please enable in settings.",
    "prompt": "Location permission will be requested",
}
_UNKNOWN_PERMISSION_MESSAGE = "Location permission status unknown"

_ERROR_TYPES: dict[PositionErrorCode, tuple[type[NoLocationAvailable], str]] = {
    PositionErrorCode.PERMISSION_DENIED: (PermissionDenied, "Location access denied by user"),
    PositionErrorCode.POSITION_UNAVAILABLE: (PositionUnavailable, "Location information is unavailable"),
    PositionErrorCode.TIMEOUT: (AcquisitionTimeout, "Location request timed out"),
}


def to_location_error(error: PlatformPositionError) -> NoLocationAvailable:
    """Translate a platform error code into the typed acquisition error."""
    exc_type, message = _ERROR_TYPES.get(error.code, (PositionUnavailable, "Location access failed"))
    detail = f": {error.message}" if error.message else ""
    return exc_type(f"{message}{detail}")


class PositionProvider:
    def __init__(
        self,
        platform: LocationPlatform,
        *,
        clock: ClockContext,
        settings: GeolocationSettings | None = None,
        geocoder: ReverseGeocoder | None = None,
        ip_geolocator: IpGeolocator | None = None,
        store: LocationStore | None = None,
    ):
        self._platform = platform
        self._clock = clock
        self._settings = settings or GeolocationSettings()
        self._geocoder = geocoder
        self._ip_geolocator = ip_geolocator
        self._store = store

        self._cache = LocationCache(self._settings.cache_expiry_ms)
        self._acquire_lock = threading.Lock()
        self._watch_lock = threading.RLock()
        self._watch_handle: Hashable | None = None
        self._watch_token: object | None = None

        self._location_updates: EventEmitter[Location] = EventEmitter("location-update")
        self._errors: EventEmitter[NoLocationAvailable] = EventEmitter("location-error")

        if self._store is not None:
            self.load_persisted()

    # ---- configuration ----

    @property
    def settings(self) -> GeolocationSettings:
        return self._settings

    def update_settings(self, **changes: object) -> None:
        """Replace settings with a validated copy carrying `changes`."""
        self._settings = GeolocationSettings.model_validate({**self._settings.model_dump(), **changes})
        self._cache.expiry_millis = self._settings.cache_expiry_ms

    def _position_options(self) -> PositionOptions:
        return PositionOptions(
            enable_high_accuracy=self._settings.enable_high_accuracy,
            timeout_ms=self._settings.timeout_ms,
            maximum_age_ms=self._settings.maximum_age_ms,
        )

    # ---- permissions ----

    def is_supported(self) -> bool:
        return bool(self._platform.is_supported())

    def check_permission(self) -> PermissionState:
        if not self.is_supported():
            return PermissionState(
                state="unknown",
                can_request=False,
                message="Geolocation is not supported on this platform",
            )
        try:
            state = self._platform.query_permission()
        except Exception as exc:
            logger.warning("Permission query failed: %s", exc)
            state = None
        if state in _PERMISSION_MESSAGES:
            return PermissionState(
                state=state,
                can_request=state == "prompt",
                message=_PERMISSION_MESSAGES[state],
            )
        return PermissionState(state="unknown", can_request=True, message=_UNKNOWN_PERMISSION_MESSAGE)

    # ---- listeners ----

    def on_location_update(self, listener: Callable[[Location], None]) -> Callable[[], None]:
        return self._location_updates.subscribe(listener)

    def on_error(self, listener: Callable[[NoLocationAvailable], None]) -> Callable[[], None]:
        return self._errors.subscribe(listener)

    # ---- cache ----

    @property
    def cached_location(self) -> Location | None:
        """The cached location if it is still fresh, else None."""
        return self._cache.get(self._clock.now_millis())

    def load_persisted(self) -> Location | None:
        """Seed the cache from the store; stale or unreadable entries are discarded."""
        if self._store is None:
            return None
        location = self._store.load()
        if location is None:
            self._store.clear()
            return None
        if location.is_stale(self._clock.now_millis(), self._settings.cache_expiry_ms):
            logger.debug("Persisted location is stale; clearing %s", self._store.path)
            self._store.clear()
            return None
        self._cache.put(location, self._clock.now_millis())
        return location

    def _commit(self, location: Location) -> Location:
        """Cache, persist and announce a freshly acquired location."""
        self._cache.put(location, self._clock.now_millis())
        if self._store is not None and self._settings.persist_cache:
            try:
                self._store.save(location)
            except OSError as exc:
                logger.warning("Failed to persist location to %s: %s", self._store.path, exc)
        self._location_updates.emit(location)
        return location

    # ---- acquisition ----

    def _reverse_geocode(self, raw: RawPosition) -> Address:
        if self._geocoder is None:
            return Address.placeholder()
        try:
            return self._geocoder.reverse_geocode(raw.coordinates)
        except GeocodingFailed as exc:
            logger.warning("Reverse geocoding failed: %s", exc)
        except Exception:
            logger.exception("Reverse geocoder raised unexpectedly")
        return Address.placeholder()

    def _process_position(self, raw: RawPosition, source: LocationSource = "device") -> Location:
        validate_coordinates(raw.coordinates.latitude, raw.coordinates.longitude)
        return Location(
            coordinates=raw.coordinates,
            address=self._reverse_geocode(raw),
            timestamp_millis=int(raw.timestamp_millis),
            source=source,
        )

    def _try_ip_fallback(self) -> Location | None:
        if not self._settings.fallback_to_ip or self._ip_geolocator is None:
            return None
        try:
            return self._ip_geolocator.lookup()
        except IPFallbackFailed as exc:
            logger.warning("IP geolocation fallback failed: %s", exc)
        except Exception:
            logger.exception("IP geolocator raised unexpectedly")
        return None

    def get_current_position(self) -> Location:
        """Acquire the current location (device, then IP, then cache)."""
        entry_before = self._cache.peek()
        with self._acquire_lock:
            # Another caller finished an acquisition while we waited: share its result.
            entry_now = self._cache.peek()
            if entry_now is not None and entry_now is not entry_before:
                fresh = self._cache.get(self._clock.now_millis())
                if fresh is not None:
                    return fresh
            return self._acquire()

    def _acquire(self) -> Location:
        try:
            raw = self._platform.get_current_position(self._position_options())
            return self._commit(self._process_position(raw))
        except PlatformPositionError as exc:
            device_error = to_location_error(exc)
        except ValueError as exc:
            device_error = PositionUnavailable(f"Location information is unavailable: {exc}")
        logger.warning("Device location failed: %s", device_error)

        ip_location = self._try_ip_fallback()
        if ip_location is not None:
            return self._commit(ip_location)

        cached = self._cache.get(self._clock.now_millis())
        if cached is not None:
            logger.info("Using cached location (originally from %s)", cached.source)
            return cached.model_copy(update={"source": "cache"})

        self._errors.emit(device_error)
        raise device_error

    # ---- watching ----

    @property
    def is_watching(self) -> bool:
        return self._watch_token is not None

    def start_watching(self) -> None:
        """Start continuous updates; a second call while watching is a no-op."""
        with self._watch_lock:
            if self._watch_token is not None or not self.is_supported():
                return
            token = object()
            self._watch_token = token
            try:
                handle = self._platform.watch_position(
                    lambda raw: self._on_watch_position(token, raw),
                    lambda err: self._on_watch_error(token, err),
                    self._position_options(),
                )
            except PlatformPositionError as exc:
                self._watch_token = None
                self._errors.emit(to_location_error(exc))
                return
            if self._watch_token is not token:
                # A listener stopped the watch during the initial synchronous update.
                self._platform.clear_watch(handle)
                return
            self._watch_handle = handle

    def stop_watching(self) -> None:
        with self._watch_lock:
            handle = self._watch_handle
            self._watch_token = None
            self._watch_handle = None
        if handle is not None:
            self._platform.clear_watch(handle)

    def _on_watch_position(self, token: object, raw: RawPosition) -> None:
        if token is not self._watch_token:
            return
        try:
            location = self._process_position(raw)
        except ValueError as exc:
            logger.error("Watch position error: %s", exc)
            self._errors.emit(PositionUnavailable(f"Location information is unavailable: {exc}"))
            return
        # Re-check: the watch may have been stopped while geocoding.
        if token is not self._watch_token:
            return
        self._commit(location)

    def _on_watch_error(self, token: object, error: PlatformPositionError) -> None:
        if token is not self._watch_token:
            return
        logger.warning("Watch position error: %s", error)
        self._errors.emit(to_location_error(error))

    def close(self) -> None:
        """Stop watching and drop listeners and cached state."""
        self.stop_watching()
        self._location_updates.clear()
        self._errors.clear()
        self._cache.clear()
