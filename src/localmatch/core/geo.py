from __future__ import annotations

from math import atan2, cos, degrees, radians, sin, sqrt
from typing import Literal, Protocol

from localmatch.core.numeric import round_half_up

"""
Geospatial helpers.

Pure great-circle math on latitude/longitude pairs. Everything here accepts any
object exposing `latitude` and `longitude` in decimal degrees, so domain models
(`Coordinates`) and ad-hoc points can be mixed freely.
"""

DistanceUnit = Literal["km", "miles"]

EARTH_RADIUS_KM = 6371.0
EARTH_RADIUS_MILES = 3956.0


class HasLatLon(Protocol):
    latitude: float
    longitude: float


def validate_coordinates(latitude: float, longitude: float) -> None:
    """Raise `ValueError` if a latitude/longitude pair is outside the valid range."""
    if not -90.0 <= float(latitude) <= 90.0:
        raise ValueError(f"latitude out of range: {latitude}")
    if not -180.0 <= float(longitude) <= 180.0:
        raise ValueError(f"longitude out of range: {longitude}")


def distance(a: HasLatLon, b: HasLatLon, unit: DistanceUnit = "km") -> float:
    """Great-circle distance between two points (Haversine), rounded to 2 decimals."""
    if unit == "km":
        r = EARTH_RADIUS_KM
    elif unit == "miles":
        r = EARTH_RADIUS_MILES
    else:
        raise ValueError(f"Unsupported distance unit '{unit}'; expected 'km' or 'miles'.")

    lat1 = radians(a.latitude)
    lat2 = radians(b.latitude)
    dlat = radians(b.latitude - a.latitude)
    dlon = radians(b.longitude - a.longitude)

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # Rounding can push h just past 1.0 for near-antipodal points.
    h = min(1.0, max(0.0, h))
    c = 2 * atan2(sqrt(h), sqrt(1 - h))
    return round_half_up(r * c, 2)


def bearing(a: HasLatLon, b: HasLatLon) -> float:
    """Initial bearing (forward azimuth) from `a` to `b`, in degrees within [0, 360)."""
    lat1 = radians(a.latitude)
    lat2 = radians(b.latitude)
    dlon = radians(b.longitude - a.longitude)

    y = sin(dlon) * cos(lat2)
    x = cos(lat1) * sin(lat2) - sin(lat1) * cos(lat2) * cos(dlon)
    result = (degrees(atan2(y, x)) + 360.0) % 360.0
    # (-tiny + 360) % 360 can round up to exactly 360.0
    return 0.0 if result >= 360.0 else result


def km_to_miles(km: float) -> float:
    return float(km) * EARTH_RADIUS_MILES / EARTH_RADIUS_KM


def miles_to_km(miles: float) -> float:
    return float(miles) * EARTH_RADIUS_KM / EARTH_RADIUS_MILES


def is_within_radius(point: HasLatLon, center: HasLatLon, radius_km: float) -> bool:
    """Return True if `point` lies within `radius_km` of `center` (inclusive)."""
    return distance(point, center, "km") <= float(radius_km)
