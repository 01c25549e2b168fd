from __future__ import annotations

from localmatch.config.settings import ScoringSettings
from localmatch.domain.models import DiscoveryFilters, DiscoveryOptions, ProviderCandidate
from localmatch.scoring.composite import ComponentResult, clamp_score


def score_urgency(
    candidate: ProviderCandidate,
    *,
    filters: DiscoveryFilters,
    options: DiscoveryOptions,
    settings: ScoringSettings,
) -> ComponentResult:
    """Urgency fit: requested urgency level, boosted for emergency-ready providers."""
    urgency = filters.urgency
    if urgency is None or not options.urgency_boost:
        return ComponentResult(
            score=float(settings.neutral_urgency),
            details={"requested": urgency, "boost_enabled": bool(options.urgency_boost)},
            reasons=[],
        )

    base = float(settings.urgency_levels.get(urgency, settings.neutral_urgency))
    score = base
    reasons: list[str] = []

    # Multipliers compound before the cap (100 * 1.2 * 1.1 still ends at 100).
    if urgency == "emergency" and "emergency" in candidate.urgency_tags:
        score *= float(settings.emergency_tag_multiplier)
        reasons.append("Handles emergencies")
    if candidate.is_available_now and urgency in ("emergency", "high"):
        score *= float(settings.available_now_urgency_multiplier)
        reasons.append("Available right now")

    return ComponentResult(
        score=clamp_score(score),
        details={"requested": urgency, "base": base, "uncapped": score},
        reasons=reasons,
    )
