from dataclasses import dataclass
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from localmatch.core.time import FixedClock
from localmatch.domain.models import (
    Coordinates,
    DiscoveryFilters,
    DiscoveryOptions,
    ProviderCandidate,
)
from localmatch.matching.arrival import ArrivalEstimator
from localmatch.matching.proximity import filter_within_radius
from localmatch.matching.ranking import MatchRankingEngine

KM_PER_DEG_LAT = 111.19493
CENTER = Coordinates(latitude=0.0, longitude=0.0)
UTC = ZoneInfo("UTC")
MONDAY_10AM = datetime(2026, 1, 5, 10, 0, tzinfo=UTC)


def _at_km(km: float) -> Coordinates:
    return Coordinates(latitude=km / KM_PER_DEG_LAT, longitude=0.0)


def _top_provider(**kw) -> ProviderCandidate:
    base = dict(
        id="top",
        coordinates=_at_km(1),
        category="plumbing",
        hourly_rate=70,
        rating=5,
        review_count=100,
        completed_jobs=500,
        verified=True,
        response_time="instant",
        is_available_now=True,
    )
    base.update(kw)
    return ProviderCandidate(**base)


def _average_provider(**kw) -> ProviderCandidate:
    base = dict(
        id="avg",
        coordinates=_at_km(8),
        category="plumbing",
        hourly_rate=45,
        rating=4,
        review_count=50,
        completed_jobs=100,
        response_time="1 hour",
        availability="this week",
    )
    base.update(kw)
    return ProviderCandidate(**base)


def _engine(clock: FixedClock, **kw) -> MatchRankingEngine:
    return MatchRankingEngine(ArrivalEstimator(clock), clock=clock, **kw)


def _rank(candidates, clock=None, filters=None, options=None, **kw):
    clock = clock or FixedClock()
    matches = filter_within_radius(candidates, CENTER, 25)
    return _engine(clock, **kw).rank(matches, filters=filters, options=options)


def test_rank_top_provider_without_local_time():
    (result,) = _rank([_top_provider()])
    s = result.subscores
    assert (s.proximity, s.urgency, s.availability, s.quality, s.locality) == (100, 50, 100, 100, 100)
    assert result.relevance_score == pytest.approx(90.0)
    assert result.time_multiplier == 1.0
    assert result.estimated_arrival_minutes == 2
    assert result.distance_km == pytest.approx(1.0)
    assert "Arrives in ~2 min" in result.reasons


def test_rank_average_provider_subscores():
    (result,) = _rank([_average_provider()])
    s = result.subscores
    assert s.proximity == pytest.approx(85.0)
    assert s.urgency == 50.0
    assert s.availability == 60.0
    assert s.quality == pytest.approx(54.0)
    assert s.locality == 60.0
    assert result.relevance_score == pytest.approx(64.6)
    assert result.estimated_arrival_minutes == 76


def test_rank_orders_by_relevance_descending():
    results = _rank([_average_provider(), _top_provider()])
    assert [r.candidate.id for r in results] == ["top", "avg"]
    scores = [r.relevance_score for r in results]
    assert scores == sorted(scores, reverse=True)


def test_time_of_day_multiplier_applies_to_all_results():
    clock = FixedClock(local=MONDAY_10AM)
    results = _rank([_top_provider(), _average_provider()], clock=clock)
    assert all(r.time_multiplier == pytest.approx(1.1) for r in results)
    assert results[0].relevance_score == pytest.approx(99.0)


def test_time_weighting_can_be_disabled():
    clock = FixedClock(local=MONDAY_10AM)
    (result,) = _rank([_top_provider()], clock=clock, options=DiscoveryOptions(time_of_day_weighting=False))
    assert result.time_multiplier == 1.0
    assert result.relevance_score == pytest.approx(90.0)


def test_relevance_is_clamped_to_100():
    clock = FixedClock(local=MONDAY_10AM)
    (result,) = _rank(
        [_top_provider(urgency_tags=["emergency"])],
        clock=clock,
        filters=DiscoveryFilters(urgency="emergency"),
    )
    assert result.subscores.urgency == 100.0
    assert result.relevance_score == 100.0


def test_equal_scores_keep_proximity_order():
    twins = [_top_provider(id="a", coordinates=_at_km(1.5)), _top_provider(id="b", coordinates=_at_km(0.5))]
    results = _rank(twins)
    # Same subscores, so ordering falls back to the distance-sorted input.
    assert [r.candidate.id for r in results] == ["b", "a"]


def test_thread_pool_scoring_matches_sequential():
    candidates = [
        _average_provider(id=f"avg-{i}", coordinates=_at_km(2 + i)) for i in range(8)
    ] + [_top_provider()]
    clock = FixedClock(local=MONDAY_10AM)
    sequential = _rank(candidates, clock=clock)
    pooled = _rank(candidates, clock=clock, max_workers=4)
    assert [r.model_dump() for r in pooled] == [r.model_dump() for r in sequential]


def test_rank_empty_input():
    assert _rank([]) == []


def test_reasons_explain_each_component():
    (result,) = _rank([_top_provider()])
    assert "Available now" in result.reasons
    assert "Verified provider" in result.reasons
    assert "Same neighborhood" in result.reasons


def test_higher_rating_never_ranks_lower():
    results = _rank([_average_provider(id="lo", rating=3.0), _average_provider(id="hi", rating=4.8)])
    by_id = {r.candidate.id: r for r in results}
    hi, lo = by_id["hi"], by_id["lo"]
    assert hi.subscores.quality > lo.subscores.quality
    assert hi.relevance_score >= lo.relevance_score
    # Same distance, so only the score can move "hi" ahead of the earlier "lo".
    assert [r.candidate.id for r in results] == ["hi", "lo"]


@dataclass
class _TickingClock:
    """Local time moves forward an hour on every read."""

    local: datetime
    reads: int = 0

    def now_millis(self) -> int:
        return 0

    def local_now(self) -> datetime:
        current = self.local
        self.local += timedelta(hours=1)
        self.reads += 1
        return current


def test_one_clock_read_per_ranking_pass():
    # 06:00 is free-flowing; the next hour would be rush hour.
    clock = _TickingClock(local=datetime(2026, 1, 5, 6, 0, tzinfo=UTC))
    twins = [_average_provider(id=f"twin-{i}") for i in range(4)]
    results = _rank(twins, clock=clock)
    assert clock.reads == 1
    assert {r.estimated_arrival_minutes for r in results} == {76}
    assert len({r.time_multiplier for r in results}) == 1
