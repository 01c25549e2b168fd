"""
Arrival-time estimation.

estimate = provider response minutes + travel minutes, where travel assumes an
average urban speed (30 km/h by default) and is inflated when the requester
sits outside the provider's usual service radius or when traffic is heavy.
"""

from __future__ import annotations

import logging

from localmatch.config.settings import ArrivalSettings
from localmatch.core.numeric import round_half_up
from localmatch.core.time import ClockContext
from localmatch.domain.models import ProviderCandidate
from localmatch.features.response_time import response_minutes
from localmatch.features.time_context import traffic_multiplier

logger = logging.getLogger(__name__)


class ArrivalEstimator:
    def __init__(self, clock: ClockContext, settings: ArrivalSettings | None = None):
        self._clock = clock
        self._settings = settings or ArrivalSettings()

    def traffic_factor(self) -> float:
        return traffic_multiplier(self._clock.local_now())

    def travel_minutes(
        self,
        candidate: ProviderCandidate,
        distance_km: float,
        *,
        traffic_aware: bool,
        traffic_factor: float | None = None,
    ) -> float:
        minutes = (float(distance_km) / float(self._settings.average_speed_kmh)) * 60.0
        radius = candidate.service_radius_km
        if radius is not None and distance_km > radius:
            minutes *= float(self._settings.out_of_area_penalty)
        if traffic_aware:
            factor = self.traffic_factor() if traffic_factor is None else float(traffic_factor)
            minutes *= factor
        return minutes

    def estimate(
        self,
        candidate: ProviderCandidate,
        distance_km: float,
        traffic_aware: bool,
        *,
        traffic_factor: float | None = None,
    ) -> int:
        """Estimated minutes until the provider arrives.

        `traffic_factor` pins the traffic multiplier (e.g. one value per ranking
        pass); when omitted it is read from the clock.
        """
        response = response_minutes(
            candidate.response_time, default=self._settings.default_response_minutes
        )
        travel = self.travel_minutes(
            candidate, distance_km, traffic_aware=traffic_aware, traffic_factor=traffic_factor
        )
        logger.debug(
            "ETA for %s: response=%s travel=%.1f (d=%.2f km)", candidate.id, response, travel, distance_km
        )
        return int(round_half_up(response + travel))
