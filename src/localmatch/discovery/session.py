from __future__ import annotations

# Orchestrator for one requester's discovery pipeline:
#   location -> attribute filters -> radius filter -> ranking -> sorted results
#
# Each layer stays focused: PositionProvider acquires positions, ProximityFilter does
# geometry, MatchRankingEngine does scoring math, and this module only wires them.

import enum
import logging
import threading
import time
from typing import Any, Callable, Iterable, Mapping

from pydantic import TypeAdapter, ValidationError

from localmatch.config.overrides import apply_settings_overrides
from localmatch.config.settings import Settings, get_settings
from localmatch.core.time import ClockContext
from localmatch.domain.errors import DiscoveryLocationError, InvalidCandidateError, NoLocationAvailable
from localmatch.domain.models import (
    Address,
    Coordinates,
    DiscoveryFilters,
    DiscoveryOptions,
    Location,
    MatchResult,
    ProviderCandidate,
)
from localmatch.location.provider import PositionProvider
from localmatch.matching.arrival import ArrivalEstimator
from localmatch.matching.proximity import filter_within_radius
from localmatch.matching.ranking import MatchRankingEngine

logger = logging.getLogger(__name__)

_CANDIDATES_ADAPTER = TypeAdapter(list[ProviderCandidate])


class DiscoveryState(str, enum.Enum):
    IDLE = "idle"
    ACQUIRING_LOCATION = "acquiring_location"
    FILTERING = "filtering"
    RANKING = "ranking"
    COMPLETE = "complete"
    ERROR = "error"


def validate_candidates(candidates: Iterable[ProviderCandidate | Mapping[str, Any]]) -> list[ProviderCandidate]:
    """Validate caller-supplied candidates up front (raises `InvalidCandidateError`)."""
    items = list(candidates)
    if all(isinstance(c, ProviderCandidate) for c in items):
        return items
    payload = [c.model_dump() if isinstance(c, ProviderCandidate) else c for c in items]
    try:
        return _CANDIDATES_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        raise InvalidCandidateError(f"Invalid provider candidate data: {exc}") from exc


def _passes_attribute_filters(candidate: ProviderCandidate, filters: DiscoveryFilters) -> bool:
    # Cheap predicates only; geometry happens after this.
    if filters.category and candidate.category != filters.category:
        return False

    if filters.price_range is not None:
        if not filters.price_range.min <= candidate.hourly_rate <= filters.price_range.max:
            return False

    if filters.rating and candidate.rating < filters.rating:
        return False

    if filters.verified and not candidate.verified:
        return False

    descriptor = candidate.availability.lower()
    if filters.availability == "now":
        return candidate.is_available_now
    if filters.availability == "today":
        return "today" in descriptor or candidate.is_available_now
    if filters.availability == "this_week":
        return "week" in descriptor or "today" in descriptor or candidate.is_available_now
    return True


def apply_attribute_filters(
    candidates: Iterable[ProviderCandidate], filters: DiscoveryFilters
) -> list[ProviderCandidate]:
    """Category, price range, rating floor, verified flag, availability window (in that order)."""
    return [c for c in candidates if _passes_attribute_filters(c, filters)]


class DiscoverySession:
    """One requester's discovery context; owns no global state."""

    def __init__(
        self,
        provider: PositionProvider,
        *,
        clock: ClockContext,
        settings: Settings | None = None,
        max_workers: int | None = None,
    ):
        self._provider = provider
        self._clock = clock
        self._settings = settings or get_settings()
        self._max_workers = max_workers
        self._location: Location | None = None
        self._state = DiscoveryState.IDLE
        self._unsubscribe: Callable[[], None] | None = None
        self._lock = threading.Lock()

    @property
    def state(self) -> DiscoveryState:
        return self._state

    @property
    def current_location(self) -> Location | None:
        return self._location

    @property
    def is_keeping_fresh(self) -> bool:
        return self._unsubscribe is not None

    def set_location(self, coordinates: Coordinates, *, address: Address | None = None) -> Location:
        """Pin a manually entered position for subsequent discoveries."""
        payload: dict[str, Any] = {
            "coordinates": coordinates,
            "timestamp_millis": self._clock.now_millis(),
            "source": "manual",
        }
        if address is not None:
            payload["address"] = address
        self._location = Location(**payload)
        return self._location

    def _held_location_is_fresh(self) -> bool:
        if self._location is None:
            return False
        if self._location.source == "manual":
            return True
        return not self._location.is_stale(
            self._clock.now_millis(), self._provider.settings.cache_expiry_ms
        )

    def ensure_location(self) -> Location:
        """Return a usable location, acquiring one if the held value is missing or stale."""
        if self._held_location_is_fresh():
            return self._location
        cached = self._provider.cached_location
        if cached is not None:
            self._location = cached
            return cached
        self._state = DiscoveryState.ACQUIRING_LOCATION
        try:
            self._location = self._provider.get_current_position()
        except NoLocationAvailable as exc:
            self._state = DiscoveryState.ERROR
            logger.error("Discovery aborted, no location: %s", exc)
            raise DiscoveryLocationError("Location access required for discovery") from exc
        return self._location

    def discover(
        self,
        candidates: Iterable[ProviderCandidate | Mapping[str, Any]],
        filters: DiscoveryFilters | Mapping[str, Any] | None = None,
        options: DiscoveryOptions | Mapping[str, Any] | None = None,
        *,
        overrides: Mapping[str, Any] | None = None,
    ) -> list[MatchResult]:
        """Rank `candidates` for the current location, most relevant first."""
        t0 = time.monotonic()

        # ---- Step 0: validate inputs at the boundary ----
        settings = apply_settings_overrides(self._settings, overrides)
        validated = validate_candidates(candidates)
        filters = DiscoveryFilters.model_validate(filters or {})
        if options is None:
            options = settings.discovery
        elif not isinstance(options, DiscoveryOptions):
            options = DiscoveryOptions.model_validate({**settings.discovery.model_dump(), **dict(options)})

        with self._lock:
            # ---- Step 1: location ----
            self._state = DiscoveryState.ACQUIRING_LOCATION
            location = self.ensure_location()
            center = location.coordinates

            # ---- Step 2: attribute filters (cheap, before any geometry) ----
            self._state = DiscoveryState.FILTERING
            eligible = apply_attribute_filters(validated, filters)

            # ---- Step 3: radius filter ----
            radius = filters.radius or options.max_radius_km
            in_radius = filter_within_radius(eligible, center, radius)

            # ---- Step 4-5: score + sort ----
            self._state = DiscoveryState.RANKING
            engine = MatchRankingEngine(
                ArrivalEstimator(self._clock, settings.arrival),
                clock=self._clock,
                settings=settings.scoring,
                max_workers=self._max_workers,
            )
            results = engine.rank(in_radius, filters=filters, options=options)

            self._state = DiscoveryState.COMPLETE

        logger.info(
            "Discovery from %s location: %d candidates, %d after filters, %d within %.1f km (%d ms)",
            location.source,
            len(validated),
            len(eligible),
            len(results),
            radius,
            int((time.monotonic() - t0) * 1000),
        )
        return results

    # ---- long-lived sessions ----

    def _adopt(self, location: Location) -> None:
        self._location = location

    def keep_fresh(self) -> None:
        """Follow provider updates so the held location stays current.

        Results already returned are not re-ranked when the requester moves.
        """
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._provider.on_location_update(self._adopt)
        self._provider.start_watching()

    def stop(self) -> None:
        if self._unsubscribe is None:
            return
        self._unsubscribe()
        self._unsubscribe = None
        self._provider.stop_watching()
