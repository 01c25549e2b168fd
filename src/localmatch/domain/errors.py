"""
Error taxonomy.

Recoverable failures (`GeocodingFailed`, `IPFallbackFailed`) are raised by
collaborator adapters and absorbed inside `PositionProvider`. `NoLocationAvailable`
and its subclasses are fatal: every acquisition path has been exhausted.
"""

from __future__ import annotations


class LocalMatchError(Exception):
    """Base class for all errors raised by this package."""


class LocationError(LocalMatchError):
    pass


class GeocodingFailed(LocationError):
    """Reverse geocoding failed; callers degrade to a placeholder address."""


class IPFallbackFailed(LocationError):
    """IP-based geolocation failed; acquisition proceeds to the cache check."""


class NoLocationAvailable(LocationError):
    """Device, network and cache paths all failed."""


class PermissionDenied(NoLocationAvailable):
    pass


class PositionUnavailable(NoLocationAvailable):
    pass


class AcquisitionTimeout(NoLocationAvailable):
    pass


class InvalidCandidateError(LocalMatchError, ValueError):
    """A candidate record failed validation at the discovery boundary."""


class DiscoveryLocationError(LocalMatchError):
    """Discovery could not resolve a requester location."""
