"""
Locality feature (hyperlocal factors).

Four neighborhood-level factors are computed and reported for transparency:
- neighborhood_match: distance bands (same neighborhood .. same region)
- local_experience: completed jobs, saturating at 200
- response_time: responsiveness band from the descriptor
- proximity_boost: extra credit for providers within about 10 km

Only `neighborhood_match` feeds the weighted composite; the other three are
diagnostic fields exposed on every result.
"""

from __future__ import annotations

from localmatch.domain.models import LocalityFactors, ProviderCandidate
from localmatch.features.response_time import responsiveness_band
from localmatch.scoring.composite import ComponentResult

_NEIGHBORHOOD_BANDS: tuple[tuple[float, float, str], ...] = (
    (2.0, 100.0, "Same neighborhood"),
    (5.0, 80.0, "Adjacent neighborhood"),
    (10.0, 60.0, "Same district"),
    (15.0, 40.0, "Same city area"),
)
_REGION_SCORE = 20.0


def _neighborhood_match(distance_km: float) -> tuple[float, str]:
    for limit, score, label in _NEIGHBORHOOD_BANDS:
        if distance_km <= limit:
            return score, label
    return _REGION_SCORE, "Same region"


def compute_locality_factors(candidate: ProviderCandidate, distance_km: float) -> LocalityFactors:
    neighborhood, _ = _neighborhood_match(distance_km)
    proximity_boost = 100.0 if distance_km <= 1.0 else max(0.0, 100.0 - distance_km * 10.0)
    return LocalityFactors(
        neighborhood_match=neighborhood,
        local_experience=min(100.0, (candidate.completed_jobs / 200.0) * 100.0),
        response_time=responsiveness_band(candidate.response_time),
        proximity_boost=proximity_boost,
    )


def score_locality(candidate: ProviderCandidate, distance_km: float) -> tuple[ComponentResult, LocalityFactors]:
    factors = compute_locality_factors(candidate, distance_km)
    _, label = _neighborhood_match(distance_km)
    result = ComponentResult(
        score=factors.neighborhood_match,
        details=factors.model_dump(),
        reasons=[label],
    )
    return result, factors
