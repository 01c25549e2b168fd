"""
Reverse-geocoding client (BigDataCloud).

Turns coordinates into a postal `Address`. `PositionProvider` treats this as an
optional enrichment: any failure here surfaces as `GeocodingFailed` and the
provider degrades to a placeholder address.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from localmatch.config.settings import Settings
from localmatch.core.http import get_json_object
from localmatch.domain.errors import GeocodingFailed
from localmatch.domain.models import (
    PLACEHOLDER_CITY,
    PLACEHOLDER_COUNTRY,
    PLACEHOLDER_COUNTRY_CODE,
    PLACEHOLDER_STATE,
    Address,
    Coordinates,
)

logger = logging.getLogger(__name__)


class ReverseGeocoder(Protocol):
    def reverse_geocode(self, coordinates: Coordinates) -> Address:
        """Resolve coordinates to an address; raise `GeocodingFailed` on any failure."""
        ...


class NullReverseGeocoder:
    """Offline geocoder: always returns the placeholder address."""

    def reverse_geocode(self, coordinates: Coordinates) -> Address:
        return Address.placeholder()


def _text(payload: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def address_from_bigdatacloud(payload: dict[str, Any]) -> Address:
    """Map a BigDataCloud `reverse-geocode-client` payload onto `Address`."""
    return Address(
        street=_text(payload, "locality") or "",
        city=_text(payload, "city", "locality") or PLACEHOLDER_CITY,
        state=_text(payload, "principalSubdivision") or PLACEHOLDER_STATE,
        country=_text(payload, "countryName") or PLACEHOLDER_COUNTRY,
        postal_code=_text(payload, "postcode") or "",
        country_code=_text(payload, "countryCode") or PLACEHOLDER_COUNTRY_CODE,
    )


class BigDataCloudReverseGeocoder:
    """Reverse geocoding over the free BigDataCloud client endpoint."""

    def __init__(self, settings: Settings):
        self._settings = settings

    def reverse_geocode(self, coordinates: Coordinates) -> Address:
        params = {
            "latitude": coordinates.latitude,
            "longitude": coordinates.longitude,
            "localityLanguage": self._settings.services.locality_language,
        }
        logger.debug("Reverse geocoding lat=%.4f lon=%.4f", coordinates.latitude, coordinates.longitude)
        try:
            payload = get_json_object(
                self._settings.services.reverse_geocode_url,
                params=params,
                timeout_seconds=self._settings.app.http_timeout_seconds,
            )
        except (httpx.HTTPError, ValueError) as exc:
            raise GeocodingFailed(f"Geocoding service unavailable: {exc}") from exc
        return address_from_bigdatacloud(payload)
