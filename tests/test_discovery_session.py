from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from localmatch.config.settings import Settings
from localmatch.core.time import FixedClock
from localmatch.discovery.session import DiscoverySession, DiscoveryState, apply_attribute_filters
from localmatch.domain.errors import DiscoveryLocationError, InvalidCandidateError, PositionUnavailable
from localmatch.domain.models import Address, Coordinates, DiscoveryFilters, ProviderCandidate
from localmatch.location.platform import StaticLocationPlatform, UnsupportedPlatform
from localmatch.location.provider import PositionProvider

KM_PER_DEG_LAT = 111.19493
CENTER = Coordinates(latitude=0.0, longitude=0.0)
T0 = 1_700_000_000_000


def _at_km(km: float) -> dict:
    return {"latitude": km / KM_PER_DEG_LAT, "longitude": 0.0}


def _catalog() -> list[dict]:
    return [
        {
            "id": "fast-plumber",
            "coordinates": _at_km(1),
            "category": "plumbing",
            "hourly_rate": 70,
            "rating": 5,
            "review_count": 100,
            "completed_jobs": 500,
            "verified": True,
            "response_time": "instant",
            "is_available_now": True,
        },
        {
            "id": "steady-plumber",
            "coordinates": _at_km(8),
            "category": "plumbing",
            "hourly_rate": 45,
            "rating": 4,
            "review_count": 50,
            "completed_jobs": 100,
            "response_time": "1 hour",
            "availability": "this week",
        },
        {
            "id": "far-plumber",
            "coordinates": _at_km(40),
            "category": "plumbing",
            "hourly_rate": 30,
            "rating": 5,
        },
        {
            "id": "electrician",
            "coordinates": _at_km(2),
            "category": "electrical",
            "hourly_rate": 90,
            "rating": 4.5,
            "verified": True,
        },
    ]


def _session(coords=CENTER, clock=None, **kw):
    clock = clock or FixedClock(millis=T0)
    if coords is not None:
        platform = StaticLocationPlatform(coords, clock_millis=clock.now_millis)
    else:
        platform = UnsupportedPlatform()
    provider = PositionProvider(platform, clock=clock)
    return DiscoverySession(provider, clock=clock, settings=Settings(), **kw), provider, clock


def test_discover_end_to_end():
    session, _, _ = _session()
    results = session.discover(_catalog(), {"category": "plumbing"})

    assert [r.candidate.id for r in results] == ["fast-plumber", "steady-plumber"]
    assert results[0].relevance_score == pytest.approx(90.0)
    assert results[1].relevance_score == pytest.approx(64.6)
    assert session.state is DiscoveryState.COMPLETE
    assert session.current_location.source == "device"


def test_discover_uses_local_time_multiplier():
    clock = FixedClock(millis=T0, local=datetime(2026, 1, 5, 10, 0, tzinfo=ZoneInfo("UTC")))
    session, _, _ = _session(clock=clock)
    results = session.discover(_catalog(), {"category": "plumbing"})
    assert results[0].relevance_score == pytest.approx(99.0)


def test_request_radius_narrows_search():
    session, _, _ = _session()
    results = session.discover(_catalog(), DiscoveryFilters(radius=3))
    assert [r.candidate.id for r in results] == ["fast-plumber", "electrician"]
    assert results[1].relevance_score == pytest.approx(73.25)
    assert all(r.distance_km <= 3 for r in results)


def test_options_mapping_merges_with_configured_defaults():
    session, _, _ = _session()
    results = session.discover(_catalog(), options={"max_radius_km": 50})
    assert "far-plumber" in {r.candidate.id for r in results}


def test_no_matches_is_an_empty_list():
    session, _, _ = _session()
    assert session.discover(_catalog(), {"category": "landscaping"}) == []
    assert session.state is DiscoveryState.COMPLETE


def test_location_failure_raises_discovery_error():
    session, _, _ = _session(coords=None)
    with pytest.raises(DiscoveryLocationError, match="Location access required") as excinfo:
        session.discover(_catalog())
    assert isinstance(excinfo.value.__cause__, PositionUnavailable)
    assert session.state is DiscoveryState.ERROR


def test_invalid_candidate_is_rejected_up_front():
    session, _, _ = _session()
    bad = _catalog() + [
        {"id": "broken", "coordinates": {"latitude": 123, "longitude": 0}, "category": "x", "hourly_rate": 1}
    ]
    with pytest.raises(InvalidCandidateError):
        session.discover(bad)
    assert session.state is DiscoveryState.IDLE


def test_manual_location_is_used_without_acquisition():
    session, _, clock = _session(coords=None)
    session.set_location(Coordinates(latitude=7 / KM_PER_DEG_LAT, longitude=0.0), address=Address(city="Elsewhere"))
    clock.advance(24 * 3600 * 1000)

    results = session.discover(_catalog(), {"category": "plumbing"})

    assert session.current_location.source == "manual"
    assert session.current_location.address.city == "Elsewhere"
    by_id = {r.candidate.id: r for r in results}
    assert by_id["steady-plumber"].distance_km == pytest.approx(1.0)
    assert by_id["fast-plumber"].distance_km == pytest.approx(6.0)


def test_held_location_is_refreshed_when_stale():
    session, provider, clock = _session()
    session.discover(_catalog())
    first = session.current_location

    clock.advance(600_001)
    session.discover(_catalog())

    assert session.current_location.timestamp_millis == first.timestamp_millis + 600_001


def test_staleness_follows_provider_cache_expiry():
    session, provider, clock = _session()
    session.discover(_catalog())

    provider.update_settings(cache_expiry_ms=1_000)
    clock.advance(5_000)
    session.discover(_catalog())

    assert session.current_location.timestamp_millis == T0 + 5_000


def test_keep_fresh_follows_provider_updates():
    session, provider, clock = _session()
    session.keep_fresh()
    assert session.is_keeping_fresh
    assert session.current_location.coordinates == CENTER

    platform = provider._platform
    moved = Coordinates(latitude=8 / KM_PER_DEG_LAT, longitude=0.0)
    platform.push(moved)
    assert session.current_location.coordinates == moved

    results = session.discover(_catalog(), {"category": "plumbing"})
    by_id = {r.candidate.id: r for r in results}
    assert by_id["steady-plumber"].distance_km == pytest.approx(0.0)
    assert by_id["fast-plumber"].distance_km == pytest.approx(7.0)

    session.stop()
    assert not session.is_keeping_fresh
    assert not provider.is_watching


def test_overrides_apply_to_single_request():
    session, _, _ = _session()
    wide = session.discover(_catalog(), overrides={"discovery": {"max_radius_km": 50}})
    default = session.discover(_catalog())
    assert len(wide) == 4
    assert len(default) == 3


def test_disallowed_override_is_rejected():
    session, _, _ = _session()
    with pytest.raises(ValueError, match="geolocation"):
        session.discover(_catalog(), overrides={"geolocation": {"fallback_to_ip": False}})


def test_attribute_filters():
    candidates = [ProviderCandidate(**c) for c in _catalog()]

    def ids(**filters):
        return [c.id for c in apply_attribute_filters(candidates, DiscoveryFilters(**filters))]

    assert ids(category="electrical") == ["electrician"]
    assert ids(price_range={"min": 40, "max": 80}) == ["fast-plumber", "steady-plumber"]
    assert ids(rating=4.5) == ["fast-plumber", "far-plumber", "electrician"]
    assert ids(verified=True) == ["fast-plumber", "electrician"]
    assert ids(availability="now") == ["fast-plumber"]
    assert ids(availability="this_week") == ["fast-plumber", "steady-plumber"]
