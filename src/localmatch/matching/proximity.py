from __future__ import annotations

from typing import Iterable

from localmatch.core.geo import HasLatLon, bearing, distance
from localmatch.domain.models import ProviderCandidate, ProximityMatch


def filter_within_radius(
    candidates: Iterable[ProviderCandidate], center: HasLatLon, radius_km: float
) -> list[ProximityMatch]:
    """Candidates within `radius_km` of `center`, nearest first.

    The sort is stable, so candidates at equal distance keep their input order.
    """
    radius = float(radius_km)
    if radius < 0:
        raise ValueError("radius_km must be >= 0")

    matches: list[ProximityMatch] = []
    for candidate in candidates:
        d = distance(center, candidate.coordinates, "km")
        if d > radius:
            continue
        matches.append(
            ProximityMatch(
                candidate=candidate,
                distance_km=d,
                bearing_degrees=bearing(center, candidate.coordinates),
            )
        )
    matches.sort(key=lambda m: m.distance_km)
    return matches
