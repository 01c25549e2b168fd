"""
Domain models (Pydantic).

These types are the contract between layers:
- position acquisition output (`Location`, `PermissionState`)
- externally supplied provider records (`ProviderCandidate`)
- discovery request knobs (`DiscoveryFilters`, `DiscoveryOptions`)
- explainable ranking output (`MatchResult`)

Validation happens here so the matching code can assume well-formed input.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


LocationSource = Literal["device", "network", "manual", "cache"]
PermissionName = Literal["granted", "denied", "prompt", "unknown"]
UrgencyLevel = Literal["low", "medium", "high", "emergency"]
AvailabilityWindow = Literal["now", "today", "this_week", "flexible"]

PLACEHOLDER_CITY = "Unknown City"
PLACEHOLDER_STATE = "Unknown State"
PLACEHOLDER_COUNTRY = "Unknown Country"
PLACEHOLDER_COUNTRY_CODE = "XX"


class Coordinates(BaseModel):
    """A position in decimal degrees plus optional device-reported extras."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: float | None = Field(default=None, ge=0)
    altitude: float | None = None
    altitude_accuracy: float | None = Field(default=None, ge=0)
    heading: float | None = None
    speed: float | None = None


class Address(BaseModel):
    model_config = ConfigDict(frozen=True)

    street: str | None = None
    city: str = PLACEHOLDER_CITY
    state: str = PLACEHOLDER_STATE
    country: str = PLACEHOLDER_COUNTRY
    postal_code: str | None = None
    country_code: str = PLACEHOLDER_COUNTRY_CODE

    @classmethod
    def placeholder(cls) -> "Address":
        return cls()


class Location(BaseModel):
    """One acquired position. Superseded by the next acquisition, never mutated."""

    model_config = ConfigDict(frozen=True)

    coordinates: Coordinates
    address: Address = Field(default_factory=Address)
    timestamp_millis: int = Field(..., ge=0)
    source: LocationSource

    def age_millis(self, now_millis: int) -> int:
        return int(now_millis) - int(self.timestamp_millis)

    def is_stale(self, now_millis: int, expiry_millis: int) -> bool:
        return self.age_millis(now_millis) > int(expiry_millis)


class PermissionState(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: PermissionName
    can_request: bool
    message: str = ""


class ProviderCandidate(BaseModel):
    """A service provider record supplied by the caller."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str | None = None
    coordinates: Coordinates
    category: str
    hourly_rate: float = Field(..., ge=0)
    rating: float = Field(0.0, ge=0, le=5)
    review_count: int = Field(0, ge=0)
    completed_jobs: int = Field(0, ge=0)
    response_time: str = ""
    availability: str = ""
    verified: bool = False
    is_available_now: bool = False
    urgency_tags: frozenset[str] = Field(default_factory=frozenset)
    service_radius_km: float | None = Field(default=None, gt=0)

    @field_validator("urgency_tags", mode="before")
    @classmethod
    def _normalize_tags(cls, tags: object) -> frozenset[str]:
        if tags is None:
            return frozenset()
        if isinstance(tags, str):
            tags = [tags]
        return frozenset(str(t).strip().lower() for t in tags if t and str(t).strip())


class PriceRange(BaseModel):
    min: float = Field(0.0, ge=0)
    max: float = Field(..., ge=0)

    @model_validator(mode="after")
    def _validate_order(self) -> "PriceRange":
        if self.max < self.min:
            raise ValueError("price_range.max must be >= price_range.min")
        return self


class DiscoveryFilters(BaseModel):
    """Per-request attribute filters (all optional)."""

    category: str | None = None
    urgency: UrgencyLevel | None = None
    price_range: PriceRange | None = None
    rating: float | None = Field(default=None, ge=0, le=5)
    availability: AvailabilityWindow | None = None
    radius: float | None = Field(default=None, gt=0)
    verified: bool | None = None


class DiscoveryOptions(BaseModel):
    max_radius_km: float = Field(25.0, gt=0)
    preferred_radius_km: float = Field(5.0, ge=0)
    urgency_boost: bool = True
    time_of_day_weighting: bool = True
    traffic_awareness: bool = True

    @model_validator(mode="after")
    def _validate_radii(self) -> "DiscoveryOptions":
        if self.preferred_radius_km > self.max_radius_km:
            raise ValueError("preferred_radius_km must not exceed max_radius_km")
        return self


class ProximityMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    candidate: ProviderCandidate
    distance_km: float = Field(..., ge=0)
    bearing_degrees: float = Field(..., ge=0, lt=360)


class LocalityFactors(BaseModel):
    """Neighborhood-level signals; only `neighborhood_match` feeds the composite."""

    neighborhood_match: float = Field(..., ge=0, le=100)
    local_experience: float = Field(..., ge=0, le=100)
    response_time: float = Field(..., ge=0, le=100)
    proximity_boost: float = Field(..., ge=0, le=100)


class Subscores(BaseModel):
    proximity: float = Field(..., ge=0, le=100)
    urgency: float = Field(..., ge=0, le=100)
    availability: float = Field(..., ge=0, le=100)
    quality: float = Field(..., ge=0, le=100)
    locality: float = Field(..., ge=0, le=100)
    locality_factors: LocalityFactors


class MatchResult(BaseModel):
    """One ranked candidate with its explainable score breakdown."""

    candidate: ProviderCandidate
    distance_km: float = Field(..., ge=0)
    bearing_degrees: float = Field(..., ge=0, lt=360)
    relevance_score: float = Field(..., ge=0, le=100)
    subscores: Subscores
    estimated_arrival_minutes: int = Field(..., ge=0)
    time_multiplier: float = Field(1.0, ge=0)
    reasons: list[str] = Field(default_factory=list)
