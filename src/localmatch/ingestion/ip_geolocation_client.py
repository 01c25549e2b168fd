"""
IP geolocation client (ipapi.co).

Used only when device acquisition fails. The result is coarse (city-level), so
it is tagged `source="network"` with an accuracy of `geolocation.ip_accuracy_m`.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from localmatch.config.settings import Settings
from localmatch.core.http import get_json_object
from localmatch.core.time import ClockContext
from localmatch.domain.errors import IPFallbackFailed
from localmatch.domain.models import (
    PLACEHOLDER_CITY,
    PLACEHOLDER_COUNTRY,
    PLACEHOLDER_COUNTRY_CODE,
    PLACEHOLDER_STATE,
    Address,
    Coordinates,
    Location,
)

logger = logging.getLogger(__name__)


class IpGeolocator(Protocol):
    def lookup(self) -> Location:
        """Locate the caller by IP; raise `IPFallbackFailed` on any failure."""
        ...


def _text(payload: dict[str, Any], key: str, default: str) -> str:
    value = payload.get(key)
    return value.strip() if isinstance(value, str) and value.strip() else default


def location_from_ipapi(payload: dict[str, Any], *, timestamp_millis: int, accuracy_m: float) -> Location:
    """Map an ipapi.co JSON payload onto a network-sourced `Location`."""
    if payload.get("error"):
        raise IPFallbackFailed(f"IP geolocation error: {payload.get('reason') or payload.get('error')}")
    try:
        coordinates = Coordinates(
            latitude=payload["latitude"],
            longitude=payload["longitude"],
            accuracy=accuracy_m,
        )
    except (KeyError, TypeError, ValidationError) as exc:
        raise IPFallbackFailed("IP geolocation payload has no usable coordinates") from exc

    address = Address(
        city=_text(payload, "city", PLACEHOLDER_CITY),
        state=_text(payload, "region", PLACEHOLDER_STATE),
        country=_text(payload, "country_name", PLACEHOLDER_COUNTRY),
        postal_code=_text(payload, "postal", ""),
        country_code=_text(payload, "country_code", PLACEHOLDER_COUNTRY_CODE),
    )
    return Location(
        coordinates=coordinates,
        address=address,
        timestamp_millis=timestamp_millis,
        source="network",
    )


class IpApiGeolocator:
    def __init__(self, settings: Settings, clock: ClockContext):
        self._settings = settings
        self._clock = clock

    def lookup(self) -> Location:
        logger.info("Falling back to IP geolocation via %s", self._settings.services.ip_geolocation_url)
        try:
            payload = get_json_object(
                self._settings.services.ip_geolocation_url,
                timeout_seconds=self._settings.app.http_timeout_seconds,
            )
        except (httpx.HTTPError, ValueError) as exc:
            raise IPFallbackFailed("Failed to get location from IP") from exc
        return location_from_ipapi(
            payload,
            timestamp_millis=self._clock.now_millis(),
            accuracy_m=self._settings.geolocation.ip_accuracy_m,
        )
