"""
Multi-factor relevance ranking.

For each in-radius candidate the engine computes five 0..100 subscores
(proximity, urgency, availability, quality, locality), combines them with the
configured composite weights (30/20/20/15/15 by default), applies the
time-of-day multiplier and clamps the result to 0..100.

Per-candidate scoring is pure, so `max_workers > 1` can fan it out over a
thread pool; the output order is identical either way.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable

from localmatch.config.settings import ScoringSettings
from localmatch.core.numeric import round_half_up
from localmatch.core.time import ClockContext
from localmatch.domain.models import (
    DiscoveryFilters,
    DiscoveryOptions,
    MatchResult,
    ProximityMatch,
    Subscores,
)
from localmatch.features.availability import score_availability
from localmatch.features.locality import score_locality
from localmatch.features.proximity import score_proximity
from localmatch.features.quality import score_quality
from localmatch.features.time_context import time_of_day_multiplier, traffic_multiplier
from localmatch.features.urgency import score_urgency
from localmatch.matching.arrival import ArrivalEstimator
from localmatch.scoring.composite import clamp_score, weighted_composite

logger = logging.getLogger(__name__)


class MatchRankingEngine:
    def __init__(
        self,
        estimator: ArrivalEstimator,
        *,
        clock: ClockContext,
        settings: ScoringSettings | None = None,
        max_workers: int | None = None,
    ):
        self._estimator = estimator
        self._clock = clock
        self._settings = settings or ScoringSettings()
        self._max_workers = max_workers

    def time_multiplier(self, options: DiscoveryOptions) -> float:
        if not options.time_of_day_weighting:
            return 1.0
        return time_of_day_multiplier(self._clock.local_now())

    def score(
        self,
        match: ProximityMatch,
        *,
        filters: DiscoveryFilters,
        options: DiscoveryOptions,
        time_multiplier: float | None = None,
        traffic_factor: float | None = None,
    ) -> MatchResult:
        """Build the explainable `MatchResult` for one in-radius candidate."""
        candidate = match.candidate
        d = match.distance_km

        proximity = score_proximity(d, options=options)
        urgency = score_urgency(candidate, filters=filters, options=options, settings=self._settings)
        availability = score_availability(candidate, filters=filters)
        quality = score_quality(candidate)
        locality, factors = score_locality(candidate, d)

        subscores = Subscores(
            proximity=proximity.score,
            urgency=urgency.score,
            availability=availability.score,
            quality=quality.score,
            locality=locality.score,
            locality_factors=factors,
        )
        composite = weighted_composite(
            {
                "proximity": subscores.proximity,
                "urgency": subscores.urgency,
                "availability": subscores.availability,
                "quality": subscores.quality,
                "locality": subscores.locality,
            },
            self._settings.composite_weights,
        )
        multiplier = self.time_multiplier(options) if time_multiplier is None else float(time_multiplier)
        relevance = clamp_score(round_half_up(composite * multiplier, 2))

        eta = self._estimator.estimate(candidate, d, options.traffic_awareness, traffic_factor=traffic_factor)
        reasons = [
            *proximity.reasons,
            *urgency.reasons,
            *availability.reasons,
            *quality.reasons,
            *locality.reasons,
            f"Arrives in ~{eta} min",
        ]
        return MatchResult(
            candidate=candidate,
            distance_km=d,
            bearing_degrees=match.bearing_degrees,
            relevance_score=relevance,
            subscores=subscores,
            estimated_arrival_minutes=eta,
            time_multiplier=multiplier,
            reasons=reasons,
        )

    def rank(
        self,
        matches: Iterable[ProximityMatch],
        *,
        filters: DiscoveryFilters | None = None,
        options: DiscoveryOptions | None = None,
    ) -> list[MatchResult]:
        """Score every match and sort by relevance (descending, stable for ties)."""
        filters = filters or DiscoveryFilters()
        options = options or DiscoveryOptions()
        items = list(matches)
        # One clock read per pass so every candidate sees the same time and traffic multipliers.
        local = self._clock.local_now()
        multiplier = time_of_day_multiplier(local) if options.time_of_day_weighting else 1.0
        traffic = traffic_multiplier(local) if options.traffic_awareness else 1.0

        def _score(m: ProximityMatch) -> MatchResult:
            return self.score(
                m, filters=filters, options=options, time_multiplier=multiplier, traffic_factor=traffic
            )

        if self._max_workers and self._max_workers > 1 and len(items) > 1:
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                results = list(pool.map(_score, items))
        else:
            results = [_score(m) for m in items]

        results.sort(key=lambda r: r.relevance_score, reverse=True)
        logger.debug("Ranked %d candidates (time multiplier %.2f)", len(results), multiplier)
        return results
