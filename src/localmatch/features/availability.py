"""
Availability feature.

Baseline 50, plus:
- +30 if the provider is available right now
- a responsiveness bonus from the response-time descriptor (+20/+15/+10)
- a bonus when the provider fits the requested availability window
Capped at 100.
"""

from __future__ import annotations

from localmatch.domain.models import DiscoveryFilters, ProviderCandidate
from localmatch.features.response_time import availability_bonus
from localmatch.scoring.composite import ComponentResult, clamp_score

BASELINE = 50.0
AVAILABLE_NOW_BONUS = 30.0


def _window_bonus(candidate: ProviderCandidate, window: str | None) -> float:
    descriptor = candidate.availability.lower()
    if window == "now":
        return 20.0 if candidate.is_available_now else 0.0
    if window == "today":
        return 15.0 if ("today" in descriptor or candidate.is_available_now) else 0.0
    if window == "this_week":
        return 10.0 if "week" in descriptor else 0.0
    return 0.0


def score_availability(candidate: ProviderCandidate, *, filters: DiscoveryFilters) -> ComponentResult:
    now_bonus = AVAILABLE_NOW_BONUS if candidate.is_available_now else 0.0
    response_bonus = availability_bonus(candidate.response_time)
    window_bonus = _window_bonus(candidate, filters.availability)

    raw = BASELINE + now_bonus + response_bonus + window_bonus

    reasons: list[str] = []
    if candidate.is_available_now:
        reasons.append("Available now")
    if candidate.response_time:
        reasons.append(f"Responds: {candidate.response_time}")

    details = {
        "available_now_bonus": now_bonus,
        "response_bonus": response_bonus,
        "window_bonus": window_bonus,
        "requested_window": filters.availability,
    }
    return ComponentResult(score=clamp_score(raw), details=details, reasons=reasons)
