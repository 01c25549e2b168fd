"""
Small explainability formatting helpers.

Used by the CLI to print compact summaries of discovery results.
"""

from __future__ import annotations

from localmatch.domain.models import MatchResult
from localmatch.scoring.composite import COMPONENT_NAMES


def one_line_summary(result: MatchResult) -> str:
    """Render a compact single-line summary for a match result."""
    parts = [f"score={result.relevance_score:.2f}"]
    for name in COMPONENT_NAMES:
        parts.append(f"{name}={getattr(result.subscores, name):.0f}")
    parts.append(f"eta={result.estimated_arrival_minutes}m")
    if result.time_multiplier != 1.0:
        parts.append(f"x{result.time_multiplier:.2f}")
    return " | ".join(parts)


def compass_point(bearing_degrees: float) -> str:
    """Eight-wind compass label for a bearing (N, NE, E, ...)."""
    points = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")
    return points[int(((bearing_degrees % 360) + 22.5) // 45) % 8]
