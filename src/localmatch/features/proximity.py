"""
Proximity feature.

Full marks inside the preferred radius, then a linear decay to zero at the
maximum radius. Candidates beyond the maximum radius are removed upstream by
the proximity filter, but the scorer still returns 0 for them.
"""

from __future__ import annotations

from localmatch.domain.models import DiscoveryOptions
from localmatch.scoring.composite import ComponentResult, clamp_score


def score_proximity(distance_km: float, *, options: DiscoveryOptions) -> ComponentResult:
    preferred = float(options.preferred_radius_km)
    max_radius = float(options.max_radius_km)

    if distance_km <= preferred:
        score = 100.0
        reasons = [f"Within preferred {preferred:g} km radius"]
    elif distance_km <= max_radius and max_radius > preferred:
        ratio = (max_radius - distance_km) / (max_radius - preferred)
        score = clamp_score(ratio * 100.0)
        reasons = [f"{distance_km:.2f} km away (outside preferred {preferred:g} km)"]
    else:
        score = 0.0
        reasons = [f"Beyond {max_radius:g} km"]

    details = {
        "distance_km": distance_km,
        "preferred_radius_km": preferred,
        "max_radius_km": max_radius,
    }
    return ComponentResult(score=score, details=details, reasons=reasons)
