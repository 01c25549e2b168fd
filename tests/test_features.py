from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from localmatch.config.settings import ScoringSettings
from localmatch.domain.models import Coordinates, DiscoveryFilters, DiscoveryOptions, ProviderCandidate
from localmatch.features.availability import score_availability
from localmatch.features.locality import compute_locality_factors, score_locality
from localmatch.features.proximity import score_proximity
from localmatch.features.quality import score_quality
from localmatch.features.response_time import availability_bonus, response_minutes, responsiveness_band
from localmatch.features.time_context import time_of_day_multiplier, traffic_multiplier
from localmatch.features.urgency import score_urgency
from localmatch.scoring.composite import normalize_weights, weighted_composite

UTC = ZoneInfo("UTC")


def _candidate(**kw) -> ProviderCandidate:
    base = dict(
        id="p1",
        coordinates=Coordinates(latitude=0.0, longitude=0.0),
        category="electrical",
        hourly_rate=80,
    )
    base.update(kw)
    return ProviderCandidate(**base)


def test_proximity_full_marks_inside_preferred_radius():
    opts = DiscoveryOptions()
    assert score_proximity(0.0, options=opts).score == 100.0
    assert score_proximity(5.0, options=opts).score == 100.0


def test_proximity_linear_decay_to_max_radius():
    opts = DiscoveryOptions(max_radius_km=25, preferred_radius_km=5)
    assert score_proximity(8.0, options=opts).score == pytest.approx(85.0)
    assert score_proximity(15.0, options=opts).score == pytest.approx(50.0)
    assert score_proximity(25.0, options=opts).score == pytest.approx(0.0)
    assert score_proximity(30.0, options=opts).score == 0.0


def test_urgency_is_neutral_without_request_or_boost():
    settings = ScoringSettings()
    c = _candidate(urgency_tags=["emergency"], is_available_now=True)
    assert score_urgency(c, filters=DiscoveryFilters(), options=DiscoveryOptions(), settings=settings).score == 50.0
    off = DiscoveryOptions(urgency_boost=False)
    assert (
        score_urgency(c, filters=DiscoveryFilters(urgency="emergency"), options=off, settings=settings).score
        == 50.0
    )


@pytest.mark.parametrize(
    "level,expected",
    [("low", 40.0), ("medium", 65.0), ("high", 85.0), ("emergency", 100.0)],
)
def test_urgency_levels_without_multipliers(level, expected):
    res = score_urgency(
        _candidate(),
        filters=DiscoveryFilters(urgency=level),
        options=DiscoveryOptions(),
        settings=ScoringSettings(),
    )
    assert res.score == expected


def test_urgency_available_now_boost_for_high():
    res = score_urgency(
        _candidate(is_available_now=True),
        filters=DiscoveryFilters(urgency="high"),
        options=DiscoveryOptions(),
        settings=ScoringSettings(),
    )
    assert res.score == pytest.approx(93.5)
    assert "Available right now" in res.reasons


def test_urgency_emergency_multipliers_are_capped():
    res = score_urgency(
        _candidate(is_available_now=True, urgency_tags=["Emergency"]),
        filters=DiscoveryFilters(urgency="emergency"),
        options=DiscoveryOptions(),
        settings=ScoringSettings(),
    )
    assert res.score == 100.0
    assert res.details["uncapped"] == pytest.approx(132.0)


def test_availability_instant_and_available_now_caps_at_100():
    c = _candidate(response_time="instant", is_available_now=True)
    res = score_availability(c, filters=DiscoveryFilters(availability="now"))
    assert res.score == 100.0


def test_availability_components():
    c = _candidate(response_time="1 hour", availability="This week")
    assert score_availability(c, filters=DiscoveryFilters()).score == 60.0
    assert score_availability(c, filters=DiscoveryFilters(availability="this_week")).score == 70.0
    assert score_availability(c, filters=DiscoveryFilters(availability="now")).score == 60.0


def test_quality_maximum_and_partial():
    top = _candidate(rating=5, review_count=100, completed_jobs=500, verified=True)
    assert score_quality(top).score == 100.0
    mid = _candidate(rating=4, review_count=50, completed_jobs=100)
    assert score_quality(mid).score == pytest.approx(54.0)
    fresh = _candidate()
    assert score_quality(fresh).score == 0.0


@pytest.mark.parametrize(
    "distance_km,expected",
    [(0.5, 100.0), (2.0, 100.0), (3.0, 80.0), (8.0, 60.0), (12.0, 40.0), (20.0, 20.0)],
)
def test_locality_neighborhood_bands(distance_km, expected):
    result, factors = score_locality(_candidate(), distance_km)
    assert result.score == expected
    assert factors.neighborhood_match == expected


def test_locality_diagnostic_factors():
    c = _candidate(completed_jobs=100, response_time="within 15 min")
    factors = compute_locality_factors(c, 4.0)
    assert factors.local_experience == pytest.approx(50.0)
    assert factors.response_time == 80.0
    assert factors.proximity_boost == pytest.approx(60.0)
    assert compute_locality_factors(c, 0.5).proximity_boost == 100.0
    assert compute_locality_factors(c, 12.0).proximity_boost == 0.0


def test_response_descriptors_match_whole_numbers():
    assert response_minutes("within 15 min") == 15
    assert response_minutes("5 min") == 5
    assert response_minutes("Immediate") == 0
    assert response_minutes("2 hours") == 120
    assert response_minutes("12 hours", default=45) == 45
    assert responsiveness_band("15 min") == 80.0
    assert responsiveness_band("5 minutes") == 90.0
    assert availability_bonus("30 minutes") == 15.0
    assert availability_bonus("") == 0.0


@pytest.mark.parametrize(
    "hour,expected",
    [(3, 0.95), (6, 1.05), (10, 1.1), (11, 1.1), (12, 1.05), (15, 1.1), (19, 1.05), (21, 1.0), (23, 0.95)],
)
def test_time_of_day_multiplier(hour, expected):
    assert time_of_day_multiplier(datetime(2026, 1, 5, hour, 30, tzinfo=UTC)) == expected


def test_time_multipliers_neutral_without_local_time():
    assert time_of_day_multiplier(None) == 1.0
    assert traffic_multiplier(None) == 1.0


@pytest.mark.parametrize(
    "day,hour,expected",
    [(5, 8, 1.5), (5, 18, 1.5), (5, 12, 1.2), (5, 21, 1.2), (5, 2, 1.0), (10, 8, 0.9), (11, 18, 0.9)],
)
def test_traffic_multiplier(day, hour, expected):
    assert traffic_multiplier(datetime(2026, 1, day, hour, 0, tzinfo=UTC)) == expected


def test_weighted_composite_normalizes_weights():
    weights = {"a": 2, "b": 2}
    assert normalize_weights(weights) == {"a": 0.5, "b": 0.5}
    assert weighted_composite({"a": 100, "b": 0}, weights) == pytest.approx(50.0)
    assert normalize_weights({"a": 0, "b": 0}) == {"a": 0.5, "b": 0.5}
