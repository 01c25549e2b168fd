"""
Shared scoring utilities.

Small, reusable helpers used across the subscore features:
- `clamp_score`: keep values within 0..100 for stable output
- `normalize_weights`: convert arbitrary non-negative weights into a 1.0-summing distribution
- `weighted_composite`: combine named subscores with normalized weights
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

from localmatch.core.numeric import clamp

ComponentName = Literal["proximity", "urgency", "availability", "quality", "locality"]
COMPONENT_NAMES: tuple[ComponentName, ...] = ("proximity", "urgency", "availability", "quality", "locality")


def clamp_score(x: float) -> float:
    """Clamp a number into the [0, 100] range."""
    return clamp(x, 0.0, 100.0)


@dataclass(frozen=True)
class ComponentResult:
    """A 0..100 subscore plus explainability payload."""

    score: float
    details: dict[str, Any] = field(default_factory=dict)
    reasons: list[str] = field(default_factory=list)


def normalize_weights(weights: Mapping[str, float]) -> dict[str, float]:
    """Normalize a dict of weights so they sum to 1.0 (non-negative)."""
    cleaned = {k: max(0.0, float(v)) for k, v in weights.items()}
    total = sum(cleaned.values())
    if total <= 0:
        return {k: 1.0 / len(weights) for k in weights}
    return {k: v / total for k, v in cleaned.items()}


def weighted_composite(scores: Mapping[str, float], weights: Mapping[str, float]) -> float:
    """Sum of `score * weight` over the weighted components (weights normalized first)."""
    normalized = normalize_weights(weights)
    return sum(float(scores[name]) * w for name, w in normalized.items())
