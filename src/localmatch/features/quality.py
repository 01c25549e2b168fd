from __future__ import annotations

from localmatch.domain.models import ProviderCandidate
from localmatch.scoring.composite import ComponentResult, clamp_score


def score_quality(candidate: ProviderCandidate) -> ComponentResult:
    """Reputation score: rating (50) + reviews (20) + completed jobs (20) + verification (10)."""
    rating_points = (float(candidate.rating) / 5.0) * 50.0
    review_points = min(20.0, (candidate.review_count / 100.0) * 20.0)
    jobs_points = min(20.0, (candidate.completed_jobs / 500.0) * 20.0)
    verified_points = 10.0 if candidate.verified else 0.0

    reasons = [f"Rated {candidate.rating:.1f} from {candidate.review_count} reviews"]
    if candidate.verified:
        reasons.append("Verified provider")

    details = {
        "rating_points": rating_points,
        "review_points": review_points,
        "jobs_points": jobs_points,
        "verified_points": verified_points,
    }
    return ComponentResult(
        score=clamp_score(rating_points + review_points + jobs_points + verified_points),
        details=details,
        reasons=reasons,
    )
